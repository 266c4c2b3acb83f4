"""
FastAPI dependencies shared by the routers.
"""

from typing import Dict

from fastapi import Request

from order_reports.database.connection import ReportDatabase
from order_reports.reports.gateway import ReportGateway


def get_database(request: Request) -> ReportDatabase:
    return request.app.state.database


def get_gateway(request: Request) -> ReportGateway:
    return request.app.state.gateway


def get_raw_params(request: Request) -> Dict[str, list]:
    """Raw query parameters, every value kept as sent (strings only)."""
    raw: Dict[str, list] = {}
    for key, value in request.query_params.multi_items():
        raw.setdefault(key, []).append(value)
    return raw
