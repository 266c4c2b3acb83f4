"""
Database Models - Transactional Order Schema

The base entities the report views aggregate over. They are owned by the
transactional layer; the report service only ever reads them through the
views defined in ``order_reports.database.views``. The models exist so the
schema (and its supporting indexes) can be created for bootstrap and tests.

Tables:
- categories: product categories
- products: product catalog with live price and stock
- users: customers
- orders: order headers with status and total
- order_lines: order line items (quantity, subtotal)
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, NamedTuple

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class StatusInfo(NamedTuple):
    description: str
    priority: int


STATUS_CATALOG: Dict[OrderStatus, StatusInfo] = {
    OrderStatus.PENDING: StatusInfo("Awaiting payment", 1),
    OrderStatus.PAID: StatusInfo("Paid - being prepared", 2),
    OrderStatus.SHIPPED: StatusInfo("In transit", 3),
    OrderStatus.DELIVERED: StatusInfo("Delivered", 4),
    OrderStatus.CANCELLED: StatusInfo("Cancelled", 5),
}

# Statuses missing from the catalog sort last
UNKNOWN_STATUS = StatusInfo("Unknown", 6)


class CustomerTier(str, Enum):
    """Customer tier by number of orders placed"""
    FREQUENT = "frequent"
    OCCASIONAL = "occasional"
    NONE = "none"


FREQUENT_MIN_ORDERS = 3
OCCASIONAL_MIN_ORDERS = 1


# =============================================================================
# TABLES
# =============================================================================

class Category(Base):
    """Product category"""
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    products: Mapped[List["Product"]] = relationship(back_populates="category")


class Product(Base):
    """
    Product catalog entry.

    ``price`` and ``stock`` are current values; reports expose them as a live
    snapshot, not as they were at sale time.
    """
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)

    category: Mapped[Category] = relationship(back_populates="products")
    order_lines: Mapped[List["OrderLine"]] = relationship(back_populates="product")

    __table_args__ = (
        Index("ix_products_category_id", "category_id"),
    )


class User(Base):
    """Customer account"""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    orders: Mapped[List["Order"]] = relationship(back_populates="user")


class Order(Base):
    """
    Order header.

    ``status`` is stored as plain text so that values outside ``OrderStatus``
    written by other systems still load; the status view maps them to
    ``UNKNOWN_STATUS``.
    """
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    user: Mapped[User] = relationship(back_populates="orders")
    lines: Mapped[List["OrderLine"]] = relationship(back_populates="order")

    __table_args__ = (
        Index("ix_orders_user_id", "user_id"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_created_at", "created_at"),
    )


class OrderLine(Base):
    """Order line item"""
    __tablename__ = "order_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    order: Mapped[Order] = relationship(back_populates="lines")
    product: Mapped[Product] = relationship(back_populates="order_lines")

    __table_args__ = (
        Index("ix_order_lines_order_id", "order_id"),
        Index("ix_order_lines_product_id", "product_id"),
    )
