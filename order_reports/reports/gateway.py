"""
Report Gateway

One typed read function per report view. Each accepts only validated filter
models and returns typed rows; the SQL comes from the closed catalog and the
filters reach it only as bound parameters.

Every count and fetch is a single query on its own pooled connection.
Data-access failures surface as ``ReportQueryError`` and are not retried.
"""

import asyncio
import time
from typing import Any, List, Optional

import structlog
from prometheus_client import Counter, Histogram
from sqlalchemy import Date, Integer, String
from sqlalchemy.exc import SQLAlchemyError

from order_reports.database.connection import DatabaseNotInitializedError, ReportDatabase
from order_reports.reports.catalog import (
    CATEGORY_ID_PREDICATE,
    END_DATE_PREDICATE,
    RANK_CEILING_PREDICATE,
    START_DATE_PREDICATE,
    STATUS_PREDICATE,
    ReportQuery,
    render,
)
from order_reports.reports.composer import ComposedClause, QueryComposer
from order_reports.reports.exceptions import ReportQueryError
from order_reports.reports.filters import (
    CategoryFilter,
    DateRangeFilter,
    Pagination,
    StatusFilter,
    TopNFilter,
)
from order_reports.reports.pagination import Paginator
from order_reports.reports.schemas import (
    CategorySalesRow,
    DailySummaryRow,
    DashboardKPIs,
    Page,
    ProductRankingRow,
    StatusSummaryRow,
    UserSummaryRow,
)

logger = structlog.get_logger(__name__)

DATA_ACCESS_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError, DatabaseNotInitializedError)


# =============================================================================
# METRICS
# =============================================================================

REPORT_QUERIES = Counter(
    "order_reports_queries_total",
    "Total number of report queries executed",
    ["query", "status"],
)

REPORT_QUERY_TIME = Histogram(
    "order_reports_query_seconds",
    "Time spent running report queries",
    ["query"],
)


class ReportGateway:
    """
    Read-only access to the report views.

    Example:
        gateway = ReportGateway(db)
        page = await gateway.product_ranking(TopNFilter(top_n=5), Pagination(page=2, limit=2))
    """

    def __init__(self, db: ReportDatabase):
        self.db = db
        self.paginator = Paginator(self)

    # -------------------------------------------------------------------------
    # Query execution
    # -------------------------------------------------------------------------

    async def fetch(self, query: ReportQuery, clause: ComposedClause, page: str = "") -> List[Any]:
        """Run a catalog query and return its rows as mappings."""
        statement = render(query, clause, page=page)
        start = time.perf_counter()
        try:
            rows = await self.db.fetch_all(statement)
        except DATA_ACCESS_ERRORS as e:
            REPORT_QUERIES.labels(query=query.value, status="error").inc()
            logger.error(
                "Report query failed",
                query=query.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ReportQueryError(query.value, str(e), cause=e) from e

        duration = time.perf_counter() - start
        REPORT_QUERIES.labels(query=query.value, status="success").inc()
        REPORT_QUERY_TIME.labels(query=query.value).observe(duration)
        logger.debug(
            "Report query executed",
            query=query.value,
            params=len(clause.params),
            rows=len(rows),
            duration_ms=round(duration * 1000, 2),
        )
        return rows

    async def scalar(self, query: ReportQuery, clause: Optional[ComposedClause] = None) -> Any:
        """Run a catalog query and return the first column of the first row."""
        rows = await self.fetch(query, clause or ComposedClause())
        if not rows:
            return None
        return next(iter(rows[0].values()))

    async def count(self, query: ReportQuery, clause: ComposedClause) -> int:
        return int(await self.scalar(query, clause) or 0)

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    async def category_sales(self, category: CategoryFilter = CategoryFilter()) -> List[CategorySalesRow]:
        """Sales per category, highest revenue first."""
        clause = (
            QueryComposer()
            .where(CATEGORY_ID_PREDICATE, category.category_id, Integer())
            .compose()
        )
        rows = await self.fetch(ReportQuery.CATEGORY_SALES, clause)
        return [CategorySalesRow.model_validate(dict(row)) for row in rows]

    async def product_ranking(
        self,
        top: TopNFilter = TopNFilter(),
        pagination: Pagination = Pagination(),
    ) -> Page[ProductRankingRow]:
        """
        Best sellers by units sold, restricted to ranks <= top N.

        ``total`` counts the ranked rows inside the top N, not every sold
        product.
        """
        clause = (
            QueryComposer()
            .where(RANK_CEILING_PREDICATE, top.top_n, Integer())
            .compose()
        )
        return await self.paginator.paginate(
            ReportQuery.PRODUCT_RANKING_COUNT,
            ReportQuery.PRODUCT_RANKING,
            clause,
            pagination,
            ProductRankingRow,
        )

    async def user_summary(self, pagination: Pagination = Pagination()) -> Page[UserSummaryRow]:
        """Purchase summary per user, biggest spenders first."""
        return await self.paginator.paginate(
            ReportQuery.USER_SUMMARY_COUNT,
            ReportQuery.USER_SUMMARY,
            QueryComposer().compose(),
            pagination,
            UserSummaryRow,
        )

    async def status_summary(self, status: StatusFilter = StatusFilter()) -> List[StatusSummaryRow]:
        """Orders grouped by status in priority order."""
        clause = (
            QueryComposer()
            .where(STATUS_PREDICATE, status.status.value if status.status else None, String())
            .compose()
        )
        rows = await self.fetch(ReportQuery.STATUS_SUMMARY, clause)
        return [StatusSummaryRow.model_validate(dict(row)) for row in rows]

    async def daily_summary(
        self,
        date_range: DateRangeFilter = DateRangeFilter(),
        pagination: Pagination = Pagination(),
    ) -> Page[DailySummaryRow]:
        """Daily sales with running totals, most recent day first."""
        clause = (
            QueryComposer()
            .where(START_DATE_PREDICATE, date_range.start_date, Date())
            .where(END_DATE_PREDICATE, date_range.end_date, Date())
            .compose()
        )
        return await self.paginator.paginate(
            ReportQuery.DAILY_SUMMARY_COUNT,
            ReportQuery.DAILY_SUMMARY,
            clause,
            pagination,
            DailySummaryRow,
        )

    async def dashboard_kpis(self) -> DashboardKPIs:
        """Headline numbers for the dashboard, read from the views only."""
        total_sales = float(await self.scalar(ReportQuery.KPI_SALES_TOTAL) or 0)
        total_orders = int(await self.scalar(ReportQuery.KPI_ORDER_TOTAL) or 0)
        total_products = int(await self.scalar(ReportQuery.KPI_PRODUCT_COUNT) or 0)
        total_users = int(await self.scalar(ReportQuery.KPI_USER_COUNT) or 0)
        top_category = await self.scalar(ReportQuery.KPI_TOP_CATEGORY)
        top_product = await self.scalar(ReportQuery.KPI_TOP_PRODUCT)

        return DashboardKPIs(
            total_sales=total_sales,
            total_orders=total_orders,
            total_products_sold=total_products,
            total_users=total_users,
            avg_ticket=round(total_sales / total_orders, 2) if total_orders > 0 else 0.0,
            top_category=top_category,
            top_product=top_product,
        )
