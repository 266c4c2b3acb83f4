"""
Reports Module
"""
from .exceptions import FilterValidationError, ReportError, ReportQueryError, UnknownReportError
from .filters import (
    CategoryFilter,
    DateRangeFilter,
    Pagination,
    StatusFilter,
    TopNFilter,
    validate_filters,
)
from .gateway import ReportGateway

__all__ = [
    "CategoryFilter",
    "DateRangeFilter",
    "FilterValidationError",
    "Pagination",
    "ReportError",
    "ReportGateway",
    "ReportQueryError",
    "StatusFilter",
    "TopNFilter",
    "UnknownReportError",
    "validate_filters",
]
