"""
Report Row Schemas

Response models for the report views. One model per view grain plus the
paginated envelope and the dashboard KPIs.
"""

from datetime import date, datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ReportRow(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class CategorySalesRow(ReportRow):
    """One category with revenue > 0"""
    category_id: int
    category_name: str
    order_count: int
    units_sold: int
    revenue: float
    avg_line_value: float
    pct_of_total: Optional[float]


class ProductRankingRow(ReportRow):
    """One sold product"""
    rank: int = Field(validation_alias="product_rank")
    product_id: int
    product_code: str
    product_name: str
    category_name: str
    units_sold: int
    revenue: float
    order_count: int
    current_price: float
    current_stock: int


class UserSummaryRow(ReportRow):
    """One user, with or without orders"""
    user_id: int
    user_name: str
    user_email: str
    order_count: int
    total_spent: float
    avg_per_order: float
    distinct_products: int
    last_purchase: Optional[datetime]
    tier: str


class StatusSummaryRow(ReportRow):
    """One order status"""
    status: str
    description: str
    order_count: int
    amount_total: float
    amount_avg: float
    amount_min: float
    amount_max: float
    pct_of_orders: Optional[float]
    pct_of_amount: Optional[float]
    priority: int


class DailySummaryRow(ReportRow):
    """One calendar date with at least one order"""
    sale_date: date
    order_count: int
    revenue: float
    running_total: float
    units_sold: int
    distinct_customers: int
    avg_ticket: float


class Page(BaseModel, Generic[T]):
    """Paginated rows plus the total number of matching rows"""
    rows: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


class DashboardKPIs(BaseModel):
    """Headline metrics for the reports dashboard"""
    total_sales: float
    total_orders: int
    total_products_sold: int
    total_users: int
    avg_ticket: float
    top_category: Optional[str]
    top_product: Optional[str]


class ReportInfo(BaseModel):
    """Catalog entry describing one report"""
    slug: str
    title: str
    description: str
    grain: str
    parameters: List[str]
