"""
Order Reports

Read-only analytical reports over transactional order data.
"""

__version__ = "1.0.0"
