"""
Report API Endpoints

REST API over the five report views and the dashboard KPIs. Query
parameters are read raw and validated in one pass by
``validate_filters``; nothing from the request reaches SQL except as bound
values.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends
import structlog

from order_reports.api.dependencies import get_gateway, get_raw_params
from order_reports.reports.filters import (
    CategoryFilter,
    DateRangeFilter,
    Pagination,
    StatusFilter,
    TopNFilter,
    validate_filters,
)
from order_reports.reports.gateway import ReportGateway
from order_reports.reports.schemas import (
    CategorySalesRow,
    DailySummaryRow,
    DashboardKPIs,
    Page,
    ProductRankingRow,
    ReportInfo,
    StatusSummaryRow,
    UserSummaryRow,
)

router = APIRouter()
logger = structlog.get_logger(__name__)


REPORTS: List[ReportInfo] = [
    ReportInfo(
        slug="category-sales",
        title="Sales by Category",
        description="Sales grouped by product category with each category's share of total revenue.",
        grain="One row = one product category with sales",
        parameters=["categoriaId"],
    ),
    ReportInfo(
        slug="product-ranking",
        title="Best-Selling Products",
        description="Products ranked by units sold, limited to the top N.",
        grain="One row = one product that has been sold",
        parameters=["topN", "page", "limit"],
    ),
    ReportInfo(
        slug="user-summary",
        title="Customer Summary",
        description="Purchase activity per user, including users who never ordered.",
        grain="One row = one user",
        parameters=["page", "limit"],
    ),
    ReportInfo(
        slug="status-summary",
        title="Orders by Status",
        description="Orders grouped by status with shares of the global order count and amount.",
        grain="One row = one order status",
        parameters=["status"],
    ),
    ReportInfo(
        slug="daily-summary",
        title="Daily Sales",
        description="Daily sales with a running cumulative revenue total.",
        grain="One row = one day with at least one order",
        parameters=["startDate", "endDate", "page", "limit"],
    ),
]


@router.get("", response_model=List[ReportInfo])
async def list_reports() -> List[ReportInfo]:
    """List the available reports."""
    return REPORTS


@router.get("/dashboard", response_model=DashboardKPIs)
async def get_dashboard(
    gateway: ReportGateway = Depends(get_gateway),
) -> DashboardKPIs:
    """Headline KPIs across all reports."""
    return await gateway.dashboard_kpis()


@router.get("/category-sales", response_model=List[CategorySalesRow])
async def get_category_sales(
    raw: Dict[str, list] = Depends(get_raw_params),
    gateway: ReportGateway = Depends(get_gateway),
) -> List[CategorySalesRow]:
    """Sales by category, highest revenue first."""
    (category,) = validate_filters(raw, CategoryFilter)
    logger.info("get_category_sales called", category_id=category.category_id)
    return await gateway.category_sales(category)


@router.get("/product-ranking", response_model=Page[ProductRankingRow])
async def get_product_ranking(
    raw: Dict[str, list] = Depends(get_raw_params),
    gateway: ReportGateway = Depends(get_gateway),
) -> Page[ProductRankingRow]:
    """Top N products by units sold, paginated."""
    top, pagination = validate_filters(raw, TopNFilter, Pagination)
    logger.info("get_product_ranking called", top_n=top.top_n, page=pagination.page, limit=pagination.limit)
    return await gateway.product_ranking(top, pagination)


@router.get("/user-summary", response_model=Page[UserSummaryRow])
async def get_user_summary(
    raw: Dict[str, list] = Depends(get_raw_params),
    gateway: ReportGateway = Depends(get_gateway),
) -> Page[UserSummaryRow]:
    """Per-user purchase summary, paginated."""
    (pagination,) = validate_filters(raw, Pagination)
    logger.info("get_user_summary called", page=pagination.page, limit=pagination.limit)
    return await gateway.user_summary(pagination)


@router.get("/status-summary", response_model=List[StatusSummaryRow])
async def get_status_summary(
    raw: Dict[str, list] = Depends(get_raw_params),
    gateway: ReportGateway = Depends(get_gateway),
) -> List[StatusSummaryRow]:
    """Orders grouped by status, optionally a single status."""
    (status,) = validate_filters(raw, StatusFilter)
    logger.info("get_status_summary called", status=status.status.value if status.status else None)
    return await gateway.status_summary(status)


@router.get("/daily-summary", response_model=Page[DailySummaryRow])
async def get_daily_summary(
    raw: Dict[str, list] = Depends(get_raw_params),
    gateway: ReportGateway = Depends(get_gateway),
) -> Page[DailySummaryRow]:
    """Daily sales within an optional date range, paginated."""
    date_range, pagination = validate_filters(raw, DateRangeFilter, Pagination)
    logger.info(
        "get_daily_summary called",
        start_date=str(date_range.start_date) if date_range.start_date else None,
        end_date=str(date_range.end_date) if date_range.end_date else None,
        page=pagination.page,
        limit=pagination.limit,
    )
    return await gateway.daily_summary(date_range, pagination)
