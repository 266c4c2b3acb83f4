"""
Order Reports
Configuration Module
"""
from .settings import DatabaseSettings, Settings, get_settings

__all__ = ["DatabaseSettings", "Settings", "get_settings"]
