"""
Report Errors

- FilterValidationError: a request parameter was malformed or out of range;
  raised before any query runs
- ReportQueryError: the database could not answer (connection refused,
  permission denied, missing view, timeout); never retried
- UnknownReportError: a query name outside the fixed catalog
"""

from typing import Any, Dict, List, Optional


class ReportError(Exception):
    """Base class for report subsystem errors"""


class FilterValidationError(ReportError, ValueError):
    """Raised when request parameters fail validation as a whole."""

    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors
        summary = "; ".join(f"{e['param']}: {e['message']}" for e in errors)
        super().__init__(f"Invalid report parameters: {summary}")


class ReportQueryError(ReportError):
    """Raised when a catalog query fails at the data-access layer."""

    def __init__(self, query: str, message: str, cause: Optional[BaseException] = None):
        self.query = query
        self.cause = cause
        super().__init__(f"Report query '{query}' failed: {message}")


class UnknownReportError(ReportError, LookupError):
    """Raised for any query that is not part of the catalog."""

    def __init__(self, name: Any):
        self.name = name
        super().__init__(f"Unknown report query: {name!r}")
