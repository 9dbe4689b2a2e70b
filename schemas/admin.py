from pydantic import BaseModel
from decimal import Decimal


class DashboardStats(BaseModel):
    today_revenue: Decimal
    active_orders: int
    occupied_tables: int
    total_tables: int
    today_orders: int


class ConnectionStats(BaseModel):
    total: int
    customers: int
    waiters: int
    kitchen: int
    admin: int
    groups: int
