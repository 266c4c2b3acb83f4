"""
Database Module
"""
from .connection import ReportDatabase
from .models import Base
from .views import create_views, drop_views

__all__ = [
    "ReportDatabase",
    "Base",
    "create_views",
    "drop_views",
]
