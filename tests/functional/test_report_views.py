"""
Functional Tests - Report Views through the Gateway

Runs every report against the hand-checked sample described in conftest.
"""
import asyncio
from datetime import date, datetime
from decimal import Decimal

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import create_engine, text

from order_reports.config import DatabaseSettings
from order_reports.database.connection import DatabaseNotInitializedError, ReportDatabase
from order_reports.database.models import Order, OrderLine
from order_reports.reports.exceptions import ReportQueryError
from order_reports.reports.filters import (
    CategoryFilter,
    DateRangeFilter,
    Pagination,
    StatusFilter,
    TopNFilter,
)
from order_reports.reports.gateway import ReportGateway

from tests.conftest import insert_rows, sqlite_settings


class TestCategorySales:
    """Tests for view_category_sales"""

    @pytest.mark.asyncio
    async def test_revenue_share(self, gateway):
        """Test 600 and 400 of 1000 report as 60.00 and 40.00 percent"""
        rows = await gateway.category_sales()
        assert [r.category_name for r in rows] == ["Electronics", "Books"]
        assert [r.revenue for r in rows] == [600.0, 400.0]
        assert [r.pct_of_total for r in rows] == [60.0, 40.0]
        assert sum(r.pct_of_total for r in rows) == pytest.approx(100.0, abs=0.05)

    @pytest.mark.asyncio
    async def test_aggregates(self, gateway):
        electronics, books = await gateway.category_sales()
        assert (electronics.order_count, electronics.units_sold) == (3, 7)
        assert electronics.avg_line_value == 150.0
        assert (books.order_count, books.units_sold) == (3, 20)
        assert books.avg_line_value == 133.33

    @pytest.mark.asyncio
    async def test_category_without_sales_is_excluded(self, gateway):
        rows = await gateway.category_sales()
        assert "Toys" not in [r.category_name for r in rows]

    @pytest.mark.asyncio
    async def test_category_filter(self, gateway):
        """Test filtering keeps the share relative to all sales"""
        rows = await gateway.category_sales(CategoryFilter(category_id=2))
        assert len(rows) == 1
        assert rows[0].category_name == "Books"
        assert rows[0].pct_of_total == 40.0

    @pytest.mark.asyncio
    async def test_category_filter_without_sales(self, gateway):
        assert await gateway.category_sales(CategoryFilter(category_id=3)) == []


class TestProductRanking:
    """Tests for view_product_ranking"""

    @pytest.mark.asyncio
    async def test_ranks_are_dense_and_ordered(self, gateway):
        """Test ranks run 1..N with non-increasing units sold"""
        page = await gateway.product_ranking()
        assert page.total == 4
        assert [r.rank for r in page.rows] == [1, 2, 3, 4]
        units = [r.units_sold for r in page.rows]
        assert units == sorted(units, reverse=True)

    @pytest.mark.asyncio
    async def test_ties_break_on_product_id(self, gateway):
        """Test Mouse (id 2) ranks ahead of Atlas (id 4) at 5 units each"""
        page = await gateway.product_ranking()
        assert [r.product_name for r in page.rows] == ["Novel", "Mouse", "Atlas", "Laptop"]
        assert page.rows[1].units_sold == page.rows[2].units_sold == 5

    @pytest.mark.asyncio
    async def test_unsold_product_is_excluded(self, gateway):
        page = await gateway.product_ranking()
        assert "Robot" not in [r.product_name for r in page.rows]

    @pytest.mark.asyncio
    async def test_row_details(self, gateway):
        page = await gateway.product_ranking()
        laptop = page.rows[3]
        assert laptop.product_code == "SKU-001"
        assert laptop.category_name == "Electronics"
        assert laptop.revenue == 500.0
        assert laptop.order_count == 2
        assert laptop.current_price == 250.0
        assert laptop.current_stock == 4

    @pytest.mark.asyncio
    async def test_top_n_with_pagination(self, gateway):
        """Test topN=3, page=2, limit=2 returns rank 3 with a total of 3"""
        page = await gateway.product_ranking(TopNFilter(top_n=3), Pagination(page=2, limit=2))
        assert [r.rank for r in page.rows] == [3]
        assert page.total == 3
        assert page.total_pages == 2

    @pytest.mark.asyncio
    async def test_second_page_of_top_five(self, gateway):
        """Test topN=5, page=2, limit=2 returns ranks 3 and 4"""
        page = await gateway.product_ranking(TopNFilter(top_n=5), Pagination(page=2, limit=2))
        assert [r.rank for r in page.rows] == [3, 4]
        assert page.total == 4

    @pytest.mark.asyncio
    async def test_page_beyond_end(self, gateway):
        page = await gateway.product_ranking(TopNFilter(top_n=10), Pagination(page=5, limit=2))
        assert page.rows == []
        assert page.total == 4

    @pytest.mark.asyncio
    async def test_largest_valid_page(self, gateway):
        """Test the maximum page binds its offset and returns no rows"""
        page = await gateway.product_ranking(TopNFilter(top_n=10), Pagination(page=2_147_483_647, limit=100))
        assert page.rows == []
        assert page.total == 4


class TestUserSummary:
    """Tests for view_user_summary"""

    @pytest.mark.asyncio
    async def test_every_user_listed_biggest_spender_first(self, gateway):
        page = await gateway.user_summary()
        assert page.total == 3
        assert [r.user_name for r in page.rows] == ["Ben", "Ana", "Cleo"]

    @pytest.mark.asyncio
    async def test_order_totals_are_not_multiplied_by_lines(self, gateway):
        """Test multi-line orders count once toward spend and averages"""
        page = await gateway.user_summary()
        ben, ana, _ = page.rows
        assert ana.order_count == 3
        assert ana.total_spent == 440.0
        assert ana.avg_per_order == 146.67
        assert ana.distinct_products == 3
        assert ben.order_count == 2
        assert ben.total_spent == 560.0
        assert ben.avg_per_order == 280.0

    @pytest.mark.asyncio
    async def test_user_without_orders(self, gateway):
        """Test zero aggregates, no last purchase and tier 'none'"""
        page = await gateway.user_summary()
        cleo = page.rows[-1]
        assert cleo.order_count == 0
        assert cleo.total_spent == 0
        assert cleo.avg_per_order == 0
        assert cleo.distinct_products == 0
        assert cleo.last_purchase is None
        assert cleo.tier == "none"

    @pytest.mark.asyncio
    async def test_tiers_and_last_purchase(self, gateway):
        page = await gateway.user_summary()
        tiers = {r.user_name: r.tier for r in page.rows}
        assert tiers == {"Ana": "frequent", "Ben": "occasional", "Cleo": "none"}
        ana = page.rows[1]
        assert ana.last_purchase == datetime(2026, 1, 3, 11, 0)

    @pytest.mark.asyncio
    async def test_pagination(self, gateway):
        page = await gateway.user_summary(Pagination(page=2, limit=2))
        assert [r.user_name for r in page.rows] == ["Cleo"]
        assert page.total_pages == 2


class TestStatusSummary:
    """Tests for view_status_summary"""

    @pytest.mark.asyncio
    async def test_rows_in_priority_order(self, gateway):
        rows = await gateway.status_summary()
        assert [r.status for r in rows] == ["paid", "shipped", "delivered", "cancelled"]
        assert [r.priority for r in rows] == [2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_percentages_cover_everything(self, gateway):
        rows = await gateway.status_summary()
        assert sum(r.pct_of_orders for r in rows) == pytest.approx(100.0, abs=0.05)
        assert sum(r.pct_of_amount for r in rows) == pytest.approx(100.0, abs=0.05)

    @pytest.mark.asyncio
    async def test_delivered_row(self, gateway):
        rows = await gateway.status_summary()
        delivered = next(r for r in rows if r.status == "delivered")
        assert delivered.description == "Delivered"
        assert delivered.order_count == 2
        assert delivered.amount_total == 410.0
        assert delivered.amount_avg == 205.0
        assert (delivered.amount_min, delivered.amount_max) == (120.0, 290.0)
        assert delivered.pct_of_orders == 40.0
        assert delivered.pct_of_amount == 41.0

    @pytest.mark.asyncio
    async def test_status_filter_keeps_global_share(self, gateway):
        (row,) = await gateway.status_summary(StatusFilter(status="paid"))
        assert row.status == "paid"
        assert row.pct_of_orders == 20.0
        assert row.pct_of_amount == 3.0

    @pytest.mark.asyncio
    async def test_new_order_changes_every_share(self, gateway, db_path):
        """Test one added order moves the percentages of every status"""
        before = {r.status: r.pct_of_orders for r in await gateway.status_summary()}
        insert_rows(db_path, Order, [{
            "id": 6, "user_id": 3, "status": "pending", "total": Decimal("500.00"),
            "created_at": datetime(2026, 1, 4, 8, 0),
        }])

        after = {r.status: r.pct_of_orders for r in await gateway.status_summary()}
        assert after["pending"] == pytest.approx(16.67)
        for status, share in before.items():
            assert after[status] != share

    @pytest.mark.asyncio
    async def test_unknown_status_sorts_last(self, gateway, db_path):
        insert_rows(db_path, Order, [{
            "id": 6, "user_id": 3, "status": "returned", "total": Decimal("15.00"),
            "created_at": datetime(2026, 1, 4, 8, 0),
        }])
        rows = await gateway.status_summary()
        assert rows[-1].status == "returned"
        assert rows[-1].description == "Unknown"
        assert rows[-1].priority == 6


class TestDailySummary:
    """Tests for view_daily_summary"""

    @pytest.mark.asyncio
    async def test_days_most_recent_first(self, gateway):
        page = await gateway.daily_summary()
        assert page.total == 3
        assert [r.sale_date for r in page.rows] == [date(2026, 1, 3), date(2026, 1, 2), date(2026, 1, 1)]

    @pytest.mark.asyncio
    async def test_daily_figures(self, gateway):
        """Test order totals are not multiplied by their line count"""
        page = await gateway.daily_summary()
        first_day = page.rows[-1]
        assert first_day.order_count == 2
        assert first_day.revenue == 320.0
        assert first_day.units_sold == 6
        assert first_day.distinct_customers == 1
        assert first_day.avg_ticket == 160.0

    @pytest.mark.asyncio
    async def test_running_total(self, gateway):
        """Test the latest running total equals total revenue"""
        page = await gateway.daily_summary()
        assert [r.running_total for r in page.rows] == [1000.0, 630.0, 320.0]
        assert page.rows[0].running_total == sum(r.revenue for r in page.rows)

    @pytest.mark.asyncio
    async def test_date_range(self, gateway):
        """Test filtering keeps the running total computed over all days"""
        page = await gateway.daily_summary(DateRangeFilter(start_date=date(2026, 1, 2), end_date=date(2026, 1, 2)))
        assert page.total == 1
        assert page.rows[0].revenue == 310.0
        assert page.rows[0].running_total == 630.0

    @pytest.mark.asyncio
    async def test_open_ended_range(self, gateway):
        page = await gateway.daily_summary(DateRangeFilter(end_date=date(2026, 1, 2)))
        assert [r.sale_date for r in page.rows] == [date(2026, 1, 2), date(2026, 1, 1)]

    @pytest.mark.asyncio
    async def test_inverted_range_matches_nothing(self, gateway):
        page = await gateway.daily_summary(DateRangeFilter(start_date=date(2026, 1, 3), end_date=date(2026, 1, 1)))
        assert page.rows == []
        assert page.total == 0
        assert page.total_pages == 0

    @pytest.mark.asyncio
    async def test_units_include_all_lines(self, gateway, db_path):
        insert_rows(db_path, Order, [{
            "id": 6, "user_id": 3, "status": "paid", "total": Decimal("200.00"),
            "created_at": datetime(2026, 1, 2, 18, 0),
        }])
        insert_rows(db_path, OrderLine, [{
            "id": 8, "order_id": 6, "product_id": 5, "quantity": 2, "subtotal": Decimal("200.00"),
        }])
        page = await gateway.daily_summary(DateRangeFilter(start_date=date(2026, 1, 2), end_date=date(2026, 1, 2)))
        (day,) = page.rows
        assert (day.order_count, day.units_sold, day.distinct_customers) == (2, 10, 2)
        assert day.revenue == 510.0


class TestDashboard:
    """Tests for dashboard KPIs"""

    @pytest.mark.asyncio
    async def test_kpis(self, gateway):
        kpis = await gateway.dashboard_kpis()
        assert kpis.total_sales == 1000.0
        assert kpis.total_orders == 5
        assert kpis.total_products_sold == 4
        assert kpis.total_users == 3
        assert kpis.avg_ticket == 200.0
        assert kpis.top_category == "Electronics"
        assert kpis.top_product == "Novel"

    @pytest.mark.asyncio
    async def test_empty_database(self, empty_gateway):
        """Test an empty database yields zeros rather than errors"""
        kpis = await empty_gateway.dashboard_kpis()
        assert kpis.total_sales == 0
        assert kpis.total_orders == 0
        assert kpis.avg_ticket == 0.0
        assert kpis.top_category is None
        assert kpis.top_product is None

    @pytest.mark.asyncio
    async def test_empty_reports(self, empty_gateway):
        assert await empty_gateway.category_sales() == []
        assert await empty_gateway.status_summary() == []
        page = await empty_gateway.user_summary()
        assert (page.rows, page.total, page.total_pages) == ([], 0, 0)


class TestDataAccessFailures:
    """Tests for ReportQueryError propagation"""

    @pytest.mark.asyncio
    async def test_missing_view(self, db_path):
        engine = create_engine(f"sqlite:///{db_path}")
        with engine.begin() as conn:
            conn.execute(text("DROP VIEW view_category_sales"))
        engine.dispose()

        db = ReportDatabase(sqlite_settings(db_path))
        await db.init()
        try:
            with pytest.raises(ReportQueryError) as exc_info:
                await ReportGateway(db).category_sales()
            assert exc_info.value.query == "category_sales"
            assert exc_info.value.cause is not None
        finally:
            await db.close()

    @pytest.mark.asyncio
    async def test_unreachable_database(self, tmp_path):
        db = ReportDatabase(sqlite_settings(tmp_path / "missing" / "reports.sqlite3"))
        with pytest.raises(Exception):
            await db.init()
        try:
            with pytest.raises(ReportQueryError):
                await ReportGateway(db).status_summary()
            health = await db.check_health()
            assert health["status"] == "unhealthy"
        finally:
            await db.close()

    @pytest.mark.asyncio
    async def test_uninitialized_pool(self, db_path):
        db = ReportDatabase(sqlite_settings(db_path))
        assert (await db.check_health())["status"] == "unhealthy"
        with pytest.raises(ReportQueryError) as exc_info:
            await ReportGateway(db).category_sales()
        assert isinstance(exc_info.value.cause, DatabaseNotInitializedError)

    @pytest.mark.asyncio
    async def test_closed_pool(self, db_path):
        """Test a request after close() is a data-access failure"""
        db = ReportDatabase(sqlite_settings(db_path))
        await db.init()
        gateway = ReportGateway(db)
        await gateway.status_summary()
        await db.close()
        with pytest.raises(ReportQueryError):
            await gateway.status_summary()

    @pytest.mark.asyncio
    async def test_failures_are_counted(self, tmp_path):
        db = ReportDatabase(sqlite_settings(tmp_path / "missing" / "reports.sqlite3"))
        with pytest.raises(Exception):
            await db.init()
        labels = {"query": "daily_summary_count", "status": "error"}
        before = REGISTRY.get_sample_value("order_reports_queries_total", labels) or 0
        try:
            with pytest.raises(ReportQueryError):
                await ReportGateway(db).daily_summary()
        finally:
            await db.close()
        assert REGISTRY.get_sample_value("order_reports_queries_total", labels) == before + 1


class TestPoolSaturation:
    """Tests for the bounded pool: callers queue, then time out"""

    @pytest.fixture
    def single_connection(self, db_path):
        return DatabaseSettings(url=f"sqlite+aiosqlite:///{db_path}", max_connections=1, connect_timeout=1)

    @pytest.mark.asyncio
    async def test_checkout_timeout_is_a_query_error(self, single_connection):
        db = ReportDatabase(single_connection)
        await db.init()
        gateway = ReportGateway(db)
        try:
            async with db.connection():
                with pytest.raises(ReportQueryError) as exc_info:
                    await gateway.status_summary()
            assert exc_info.value.query == "status_summary"

            rows = await gateway.status_summary()
            assert len(rows) == 4
        finally:
            await db.close()

    @pytest.mark.asyncio
    async def test_waiting_caller_runs_after_release(self, single_connection):
        """Test a query queued behind a busy connection completes once it is freed"""
        db = ReportDatabase(single_connection)
        await db.init()
        gateway = ReportGateway(db)
        try:
            async with db.connection():
                pending = asyncio.create_task(gateway.category_sales())
                await asyncio.sleep(0.2)
                assert not pending.done()
            rows = await pending
            assert [r.category_name for r in rows] == ["Electronics", "Books"]
        finally:
            await db.close()
