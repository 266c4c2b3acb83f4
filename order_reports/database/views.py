"""
Report Views - Aggregation Pipelines

The five read-only aggregation views every report query reads from. Each view
is defined once here and queried many times with different filters through
the catalog in ``order_reports.reports.catalog``.

The SQL sticks to the subset shared by PostgreSQL and SQLite (CTEs, window
functions, NULLIF/COALESCE) so the same definitions back production and the
test suite.

Views:
- view_category_sales: one row per category with revenue > 0
- view_product_ranking: one row per sold product, ranked by units sold
- view_user_summary: one row per user, including users without orders
- view_status_summary: one row per order status
- view_daily_summary: one row per calendar date with at least one order
"""

from typing import Dict, List

import structlog
from sqlalchemy import text
from sqlalchemy.engine import Connection

from order_reports.database.models import (
    FREQUENT_MIN_ORDERS,
    OCCASIONAL_MIN_ORDERS,
    STATUS_CATALOG,
    UNKNOWN_STATUS,
    CustomerTier,
)

logger = structlog.get_logger(__name__)


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _status_case(column: str, attribute: str) -> str:
    """Render the status lookup table as a CASE expression over ``column``."""
    branches = []
    for status, info in STATUS_CATALOG.items():
        result = getattr(info, attribute)
        rendered = _quote(result) if isinstance(result, str) else str(result)
        branches.append(f"WHEN {_quote(status.value)} THEN {rendered}")
    default = getattr(UNKNOWN_STATUS, attribute)
    default = _quote(default) if isinstance(default, str) else str(default)
    return f"CASE {column} " + " ".join(branches) + f" ELSE {default} END"


# =============================================================================
# VIEW DEFINITIONS
# =============================================================================

# Average is taken per order line, not per order.
CATEGORY_SALES_SQL = """
SELECT
    c.id AS category_id,
    c.name AS category_name,
    COUNT(DISTINCT o.id) AS order_count,
    SUM(ol.quantity) AS units_sold,
    SUM(ol.subtotal) AS revenue,
    ROUND(AVG(ol.subtotal), 2) AS avg_line_value,
    ROUND(
        SUM(ol.subtotal) * 100.0
        / NULLIF((SELECT SUM(subtotal) FROM order_lines), 0),
        2
    ) AS pct_of_total
FROM categories c
INNER JOIN products p ON p.category_id = c.id
INNER JOIN order_lines ol ON ol.product_id = p.id
INNER JOIN orders o ON o.id = ol.order_id
GROUP BY c.id, c.name
HAVING SUM(ol.subtotal) > 0
"""

# Window functions run after HAVING, so ranks stay gap-free over sold products.
PRODUCT_RANKING_SQL = """
SELECT
    ROW_NUMBER() OVER (ORDER BY SUM(ol.quantity) DESC, p.id ASC) AS product_rank,
    p.id AS product_id,
    p.code AS product_code,
    p.name AS product_name,
    c.name AS category_name,
    SUM(ol.quantity) AS units_sold,
    SUM(ol.subtotal) AS revenue,
    COUNT(DISTINCT ol.order_id) AS order_count,
    p.price AS current_price,
    p.stock AS current_stock
FROM products p
INNER JOIN order_lines ol ON ol.product_id = p.id
INNER JOIN categories c ON c.id = p.category_id
GROUP BY p.id, p.code, p.name, p.price, p.stock, c.name
HAVING SUM(ol.quantity) > 0
"""

# Order and line aggregates are computed separately so multi-line orders are
# not counted once per line.
USER_SUMMARY_SQL = f"""
WITH order_stats AS (
    SELECT
        user_id,
        COUNT(*) AS order_count,
        SUM(total) AS total_spent,
        AVG(total) AS avg_per_order,
        MAX(created_at) AS last_purchase
    FROM orders
    GROUP BY user_id
),
product_stats AS (
    SELECT
        o.user_id,
        COUNT(DISTINCT ol.product_id) AS distinct_products
    FROM orders o
    INNER JOIN order_lines ol ON ol.order_id = o.id
    GROUP BY o.user_id
)
SELECT
    u.id AS user_id,
    u.name AS user_name,
    u.email AS user_email,
    COALESCE(os.order_count, 0) AS order_count,
    COALESCE(os.total_spent, 0) AS total_spent,
    COALESCE(ROUND(os.avg_per_order, 2), 0) AS avg_per_order,
    COALESCE(ps.distinct_products, 0) AS distinct_products,
    os.last_purchase AS last_purchase,
    CASE
        WHEN COALESCE(os.order_count, 0) >= {FREQUENT_MIN_ORDERS} THEN {_quote(CustomerTier.FREQUENT.value)}
        WHEN COALESCE(os.order_count, 0) >= {OCCASIONAL_MIN_ORDERS} THEN {_quote(CustomerTier.OCCASIONAL.value)}
        ELSE {_quote(CustomerTier.NONE.value)}
    END AS tier
FROM users u
LEFT JOIN order_stats os ON os.user_id = u.id
LEFT JOIN product_stats ps ON ps.user_id = u.id
"""

# Both percentages divide by the single row of the totals CTE.
STATUS_SUMMARY_SQL = f"""
WITH totals AS (
    SELECT
        COUNT(*) AS order_count_global,
        SUM(total) AS amount_global
    FROM orders
)
SELECT
    o.status AS status,
    {_status_case("o.status", "description")} AS description,
    COUNT(*) AS order_count,
    SUM(o.total) AS amount_total,
    ROUND(AVG(o.total), 2) AS amount_avg,
    MIN(o.total) AS amount_min,
    MAX(o.total) AS amount_max,
    ROUND(COUNT(*) * 100.0 / NULLIF(t.order_count_global, 0), 2) AS pct_of_orders,
    ROUND(SUM(o.total) * 100.0 / NULLIF(t.amount_global, 0), 2) AS pct_of_amount,
    {_status_case("o.status", "priority")} AS priority
FROM orders o
CROSS JOIN totals t
GROUP BY o.status, t.order_count_global, t.amount_global
"""

DAILY_SUMMARY_SQL = """
WITH order_units AS (
    SELECT
        o.id AS order_id,
        o.user_id,
        o.total,
        DATE(o.created_at) AS sale_date,
        COALESCE(SUM(ol.quantity), 0) AS units
    FROM orders o
    LEFT JOIN order_lines ol ON ol.order_id = o.id
    GROUP BY o.id, o.user_id, o.total, DATE(o.created_at)
),
daily AS (
    SELECT
        sale_date,
        COUNT(*) AS order_count,
        SUM(total) AS revenue,
        SUM(units) AS units_sold,
        COUNT(DISTINCT user_id) AS distinct_customers,
        ROUND(AVG(total), 2) AS avg_ticket
    FROM order_units
    GROUP BY sale_date
)
SELECT
    sale_date,
    order_count,
    revenue,
    SUM(revenue) OVER (
        ORDER BY sale_date ROWS BETWEEN UNBOUNDED PRECEDING AND CURRENT ROW
    ) AS running_total,
    units_sold,
    distinct_customers,
    avg_ticket
FROM daily
"""

REPORT_VIEWS: Dict[str, str] = {
    "view_category_sales": CATEGORY_SALES_SQL,
    "view_product_ranking": PRODUCT_RANKING_SQL,
    "view_user_summary": USER_SUMMARY_SQL,
    "view_status_summary": STATUS_SUMMARY_SQL,
    "view_daily_summary": DAILY_SUMMARY_SQL,
}


def view_names() -> List[str]:
    return list(REPORT_VIEWS)


def drop_views(conn: Connection) -> None:
    """Drop every report view if present."""
    for name in REPORT_VIEWS:
        conn.execute(text(f"DROP VIEW IF EXISTS {name}"))


def create_views(conn: Connection) -> None:
    """
    Create (or recreate) the report views.

    Runs on a synchronous connection; async callers use
    ``await conn.run_sync(create_views)``. Dropping first keeps the call
    idempotent on SQLite, which has no CREATE OR REPLACE VIEW.
    """
    drop_views(conn)
    for name, definition in REPORT_VIEWS.items():
        conn.execute(text(f"CREATE VIEW {name} AS {definition}"))
        logger.debug("View created", view=name)
    logger.info("Report views created", views=len(REPORT_VIEWS))
