"""
Test Suite Configuration

Report tests run against a temporary SQLite file carrying the same schema and
views as production. The sample below is small enough to verify by hand:

    category     revenue  units  orders
    Electronics  600      7      3
    Books        400      20     3
    Toys         -        -      -      (product never sold)

    day         orders  revenue  units  customers
    2026-01-01  2       320      6      1
    2026-01-02  1       310      8      1
    2026-01-03  2       370      13     2
"""
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List

import pytest
import pytest_asyncio
from sqlalchemy import create_engine, insert

from order_reports.config import DatabaseSettings, Settings
from order_reports.database.connection import ReportDatabase
from order_reports.database.models import Base, Category, Order, OrderLine, Product, User
from order_reports.database.views import create_views
from order_reports.reports.gateway import ReportGateway


def _order(id: int, user_id: int, status: str, total: str, created_at: datetime) -> Dict[str, Any]:
    return {"id": id, "user_id": user_id, "status": status, "total": Decimal(total), "created_at": created_at}


def _line(id: int, order_id: int, product_id: int, quantity: int, subtotal: str) -> Dict[str, Any]:
    return {"id": id, "order_id": order_id, "product_id": product_id, "quantity": quantity, "subtotal": Decimal(subtotal)}


def sample_rows() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "categories": [
            {"id": 1, "name": "Electronics"},
            {"id": 2, "name": "Books"},
            {"id": 3, "name": "Toys"},
        ],
        "products": [
            {"id": 1, "code": "SKU-001", "name": "Laptop", "price": Decimal("250.00"), "stock": 4, "category_id": 1},
            {"id": 2, "code": "SKU-002", "name": "Mouse", "price": Decimal("20.00"), "stock": 50, "category_id": 1},
            {"id": 3, "code": "SKU-003", "name": "Novel", "price": Decimal("10.00"), "stock": 30, "category_id": 2},
            {"id": 4, "code": "SKU-004", "name": "Atlas", "price": Decimal("50.00"), "stock": 7, "category_id": 2},
            {"id": 5, "code": "SKU-005", "name": "Robot", "price": Decimal("100.00"), "stock": 3, "category_id": 3},
        ],
        "users": [
            {"id": 1, "name": "Ana", "email": "ana@example.com"},
            {"id": 2, "name": "Ben", "email": "ben@example.com"},
            {"id": 3, "name": "Cleo", "email": "cleo@example.com"},
        ],
        "orders": [
            _order(1, 1, "delivered", "290.00", datetime(2026, 1, 1, 10, 0)),
            _order(2, 1, "paid", "30.00", datetime(2026, 1, 1, 15, 0)),
            _order(3, 2, "shipped", "310.00", datetime(2026, 1, 2, 9, 0)),
            _order(4, 1, "delivered", "120.00", datetime(2026, 1, 3, 11, 0)),
            _order(5, 2, "cancelled", "250.00", datetime(2026, 1, 3, 12, 0)),
        ],
        "order_lines": [
            _line(1, 1, 1, 1, "250.00"),
            _line(2, 1, 2, 2, "40.00"),
            _line(3, 2, 3, 3, "30.00"),
            _line(4, 3, 4, 5, "250.00"),
            _line(5, 3, 2, 3, "60.00"),
            _line(6, 4, 3, 12, "120.00"),
            _line(7, 5, 1, 1, "250.00"),
        ],
    }


def build_database(path: Path, rows: Dict[str, List[Dict[str, Any]]]) -> None:
    """Create schema, load ``rows`` and create the report views in a SQLite file."""
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        Base.metadata.create_all(conn)
        for model in (Category, Product, User, Order, OrderLine):
            records = rows.get(model.__tablename__, [])
            if records:
                conn.execute(insert(model), records)
        create_views(conn)
    engine.dispose()


def insert_rows(path: Path, model: Any, records: List[Dict[str, Any]]) -> None:
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        conn.execute(insert(model), records)
    engine.dispose()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "reports.sqlite3"
    build_database(path, sample_rows())
    return path


@pytest.fixture
def empty_db_path(tmp_path: Path) -> Path:
    path = tmp_path / "empty.sqlite3"
    build_database(path, {})
    return path


def sqlite_settings(path: Path) -> DatabaseSettings:
    return DatabaseSettings(url=f"sqlite+aiosqlite:///{path}", max_connections=2, connect_timeout=5)


@pytest.fixture
def test_settings(db_path: Path) -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
        database=sqlite_settings(db_path),
    )


@pytest_asyncio.fixture
async def report_db(db_path: Path) -> AsyncGenerator[ReportDatabase, None]:
    db = ReportDatabase(sqlite_settings(db_path))
    await db.init()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def gateway(report_db: ReportDatabase) -> ReportGateway:
    return ReportGateway(report_db)


@pytest_asyncio.fixture
async def empty_gateway(empty_db_path: Path) -> AsyncGenerator[ReportGateway, None]:
    db = ReportDatabase(sqlite_settings(empty_db_path))
    await db.init()
    yield ReportGateway(db)
    await db.close()
