from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from ..users.schemas import UserSummary
from ..orders.schemas import OrderSummary


class AdminLoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AdminUserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    contact: Optional[str] = None
    country: Optional[str] = None
    is_admin: bool = False
    is_active: bool = True


class AdminUserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None
    country: Optional[str] = None
    profile_image: Optional[str] = None
    is_admin: Optional[bool] = None
    is_active: Optional[bool] = None
    email_verified: Optional[bool] = None


class UserOrderStats(BaseModel):
    total_orders: int
    total_spent: float
    average_order: float


class UserDetail(UserSummary):
    stats: UserOrderStats
    recent_orders: List[OrderSummary]


class RevenueStats(BaseModel):
    total: float
    today: float
    yesterday: float
    average: float
    change: float


class TrendPoint(BaseModel):
    date: str
    orders: int
    revenue: float


class DashboardStats(BaseModel):
    total_users: int
    total_products: int
    total_orders: int
    new_users_today: int
    new_products_today: int
    active_users: int
    low_stock_products: int
    pending_orders: int
    completed_orders: int
    revenue: RevenueStats
    sales_trend: List[TrendPoint]


class AnalyticsOverview(BaseModel):
    total_revenue: float
    total_orders: int
    average_order_value: float
    min_order_value: float
    max_order_value: float


class BreakdownRow(BaseModel):
    key: str
    count: int
    revenue: float


class TopProduct(BaseModel):
    product_id: UUID
    name: str
    quantity: int
    revenue: float
    # None once the product row is gone
    title: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None


class TopCustomer(BaseModel):
    user_id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    order_count: int
    total_spent: float


class CategorySales(BaseModel):
    category: str
    order_count: int
    quantity: int
    revenue: float


class DateRange(BaseModel):
    start: datetime
    end: datetime


class Analytics(BaseModel):
    period: str
    date_range: DateRange
    overview: AnalyticsOverview
    order_status: List[BreakdownRow]
    payment_methods: List[BreakdownRow]
    top_products: List[TopProduct]
    top_customers: List[TopCustomer]
    categories: List[CategorySales]
    sales_trend: List[TrendPoint]
