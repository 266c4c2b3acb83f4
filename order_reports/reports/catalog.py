"""
Report Query Catalog

The closed set of read queries the service may run. Callers pick a
``ReportQuery`` member; the SQL text lives here and is only ever combined
with clauses produced by ``QueryComposer``. Every template reads a report
view, never a base table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict

from sqlalchemy import text
from sqlalchemy.sql.elements import TextClause

from order_reports.reports.composer import ComposedClause
from order_reports.reports.exceptions import UnknownReportError


class ReportQuery(str, Enum):
    """Named query templates"""
    CATEGORY_SALES = "category_sales"
    PRODUCT_RANKING = "product_ranking"
    PRODUCT_RANKING_COUNT = "product_ranking_count"
    USER_SUMMARY = "user_summary"
    USER_SUMMARY_COUNT = "user_summary_count"
    STATUS_SUMMARY = "status_summary"
    DAILY_SUMMARY = "daily_summary"
    DAILY_SUMMARY_COUNT = "daily_summary_count"

    # Dashboard KPIs
    KPI_SALES_TOTAL = "kpi_sales_total"
    KPI_ORDER_TOTAL = "kpi_order_total"
    KPI_TOP_CATEGORY = "kpi_top_category"
    KPI_TOP_PRODUCT = "kpi_top_product"
    KPI_PRODUCT_COUNT = "kpi_product_count"
    KPI_USER_COUNT = "kpi_user_count"


@dataclass(frozen=True)
class QueryTemplate:
    view: str
    sql: str
    paginated: bool = False


# Predicate templates, one ``{}`` slot each
CATEGORY_ID_PREDICATE = "category_id = {}"
RANK_CEILING_PREDICATE = "product_rank <= {}"
STATUS_PREDICATE = "status = {}"
START_DATE_PREDICATE = "sale_date >= {}"
END_DATE_PREDICATE = "sale_date <= {}"


CATALOG: Dict[ReportQuery, QueryTemplate] = {
    ReportQuery.CATEGORY_SALES: QueryTemplate(
        "view_category_sales",
        "SELECT * FROM view_category_sales {where} ORDER BY revenue DESC, category_id ASC",
    ),
    ReportQuery.PRODUCT_RANKING: QueryTemplate(
        "view_product_ranking",
        "SELECT * FROM view_product_ranking {where} ORDER BY product_rank ASC {page}",
        paginated=True,
    ),
    ReportQuery.PRODUCT_RANKING_COUNT: QueryTemplate(
        "view_product_ranking",
        "SELECT COUNT(*) AS total FROM view_product_ranking {where}",
    ),
    ReportQuery.USER_SUMMARY: QueryTemplate(
        "view_user_summary",
        "SELECT * FROM view_user_summary {where} ORDER BY total_spent DESC, user_id ASC {page}",
        paginated=True,
    ),
    ReportQuery.USER_SUMMARY_COUNT: QueryTemplate(
        "view_user_summary",
        "SELECT COUNT(*) AS total FROM view_user_summary {where}",
    ),
    ReportQuery.STATUS_SUMMARY: QueryTemplate(
        "view_status_summary",
        "SELECT * FROM view_status_summary {where} ORDER BY priority ASC, status ASC",
    ),
    ReportQuery.DAILY_SUMMARY: QueryTemplate(
        "view_daily_summary",
        "SELECT * FROM view_daily_summary {where} ORDER BY sale_date DESC {page}",
        paginated=True,
    ),
    ReportQuery.DAILY_SUMMARY_COUNT: QueryTemplate(
        "view_daily_summary",
        "SELECT COUNT(*) AS total FROM view_daily_summary {where}",
    ),
    ReportQuery.KPI_SALES_TOTAL: QueryTemplate(
        "view_category_sales",
        "SELECT COALESCE(SUM(revenue), 0) AS total_sales FROM view_category_sales {where}",
    ),
    ReportQuery.KPI_ORDER_TOTAL: QueryTemplate(
        "view_status_summary",
        "SELECT COALESCE(SUM(order_count), 0) AS total_orders FROM view_status_summary {where}",
    ),
    ReportQuery.KPI_TOP_CATEGORY: QueryTemplate(
        "view_category_sales",
        "SELECT category_name FROM view_category_sales {where} "
        "ORDER BY revenue DESC, category_id ASC LIMIT 1",
    ),
    ReportQuery.KPI_TOP_PRODUCT: QueryTemplate(
        "view_product_ranking",
        "SELECT product_name FROM view_product_ranking {where} ORDER BY product_rank ASC LIMIT 1",
    ),
    ReportQuery.KPI_PRODUCT_COUNT: QueryTemplate(
        "view_product_ranking",
        "SELECT COUNT(*) AS total FROM view_product_ranking {where}",
    ),
    ReportQuery.KPI_USER_COUNT: QueryTemplate(
        "view_user_summary",
        "SELECT COUNT(*) AS total FROM view_user_summary {where}",
    ),
}


def get_template(query: ReportQuery) -> QueryTemplate:
    """
    Look up a catalog template.

    Raises:
        UnknownReportError: If ``query`` is not a catalog member
    """
    if not isinstance(query, ReportQuery) or query not in CATALOG:
        raise UnknownReportError(query)
    return CATALOG[query]


def render(query: ReportQuery, clause: ComposedClause, page: str = "") -> TextClause:
    """
    Render ``query`` with a composed clause into an executable statement.

    ``page`` is the ``LIMIT ... OFFSET ...`` fragment built from the clause's
    own trailing placeholders; it is required for paginated templates and
    refused for the others.
    """
    template = get_template(query)
    if template.paginated != bool(page):
        raise ValueError(
            f"Query '{query.value}' {'requires' if template.paginated else 'does not accept'} a page fragment"
        )
    sql = template.sql.format(where=clause.where, page=page)
    return text(sql).bindparams(*clause.bindparams())


def page_fragment(limit_marker: str, offset_marker: str) -> str:
    return f"LIMIT {limit_marker} OFFSET {offset_marker}"
