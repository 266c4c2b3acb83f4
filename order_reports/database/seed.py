"""
Sample Data Generator

Deterministic sample orders for local development and demos. Order totals
always equal the sum of their line subtotals; some users are left without
orders so the user summary shows its zero rows.
"""

import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List

import structlog
from faker import Faker
from sqlalchemy import insert
from sqlalchemy.engine import Connection

from order_reports.database.models import Category, Order, OrderLine, OrderStatus, Product, User

logger = structlog.get_logger(__name__)

CATEGORY_NAMES = ["Electronics", "Clothing", "Home & Garden", "Sports", "Books", "Toys"]

# Weighted so delivered orders dominate, as in a live shop
STATUS_WEIGHTS = {
    OrderStatus.PENDING: 0.10,
    OrderStatus.PAID: 0.15,
    OrderStatus.SHIPPED: 0.15,
    OrderStatus.DELIVERED: 0.50,
    OrderStatus.CANCELLED: 0.10,
}


def generate_sample_data(
    users: int = 25,
    products: int = 40,
    orders: int = 150,
    days: int = 60,
    seed: int = 42,
    start: datetime = datetime(2026, 1, 1, 9, 0, 0),
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Build rows for every base table.

    Returns:
        dict: table name -> list of row dicts, in insertion order
    """
    rng = random.Random(seed)
    fake = Faker()
    Faker.seed(seed)

    categories = [{"id": i, "name": name} for i, name in enumerate(CATEGORY_NAMES, start=1)]

    product_rows = []
    for i in range(1, products + 1):
        product_rows.append({
            "id": i,
            "code": f"SKU-{i:05d}",
            "name": f"{fake.word().title()} {fake.word().title()}",
            "price": Decimal(str(round(rng.uniform(5, 500), 2))),
            "stock": rng.randint(0, 200),
            "category_id": rng.choice(categories)["id"],
        })

    user_rows = [
        {"id": i, "name": fake.name(), "email": f"user{i}@{fake.domain_name()}"}
        for i in range(1, users + 1)
    ]

    # Leave the last fifth of users without orders
    buyers = user_rows[: max(1, users - users // 5)]
    statuses = list(STATUS_WEIGHTS)
    weights = list(STATUS_WEIGHTS.values())

    order_rows = []
    line_rows = []
    line_id = 1
    for order_id in range(1, orders + 1):
        lines = []
        for product in rng.sample(product_rows, k=rng.randint(1, 4)):
            quantity = rng.randint(1, 5)
            lines.append({
                "id": line_id,
                "order_id": order_id,
                "product_id": product["id"],
                "quantity": quantity,
                "subtotal": product["price"] * quantity,
            })
            line_id += 1

        created_at = start + timedelta(
            days=rng.randint(0, days - 1),
            minutes=rng.randint(0, 12 * 60),
        )
        order_rows.append({
            "id": order_id,
            "user_id": rng.choice(buyers)["id"],
            "status": rng.choices(statuses, weights=weights)[0].value,
            "total": sum((line["subtotal"] for line in lines), Decimal("0")),
            "created_at": created_at,
        })
        line_rows.extend(lines)

    return {
        "categories": categories,
        "products": product_rows,
        "users": user_rows,
        "orders": order_rows,
        "order_lines": line_rows,
    }


def load_sample_data(conn: Connection, data: Dict[str, List[Dict[str, Any]]]) -> None:
    """Insert generated rows on a synchronous connection, parents first."""
    for model in (Category, Product, User, Order, OrderLine):
        records = data[model.__tablename__]
        if records:
            conn.execute(insert(model), records)
        logger.info("Inserted sample rows", table=model.__tablename__, rows=len(records))
