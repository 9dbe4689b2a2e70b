from datetime import datetime, time
from fastapi import APIRouter, Depends, Request
from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from utils.database import get_db
from utils.auth import get_current_admin
from utils.money import to_money
from models.order_management import Order, OrderStatus, TERMINAL_ORDER_STATUSES
from models.table_management import Table, TableStatus
from models.user import User
from schemas.admin import DashboardStats, ConnectionStats
from schemas.common import Envelope, ok

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/dashboard", response_model=Envelope[DashboardStats])
async def get_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    today_start = datetime.combine(datetime.utcnow().date(), time.min)

    today_revenue = db.query(func.coalesce(func.sum(Order.total), 0)).filter(
        Order.status == OrderStatus.COMPLETED,
        Order.created_at >= today_start
    ).scalar()
    active_orders = db.query(func.count(Order.id)).filter(Order.status.notin_(TERMINAL_ORDER_STATUSES)).scalar()
    occupied_tables = db.query(func.count(Table.id)).filter(Table.status == TableStatus.OCCUPIED).scalar()
    total_tables = db.query(func.count(Table.id)).scalar()
    today_orders = db.query(func.count(Order.id)).filter(Order.created_at >= today_start).scalar()

    return ok(DashboardStats(
        today_revenue=to_money(today_revenue),
        active_orders=active_orders,
        occupied_tables=occupied_tables,
        total_tables=total_tables,
        today_orders=today_orders,
    ))


@router.get("/connections", response_model=Envelope[ConnectionStats])
async def get_connection_stats(
    request: Request,
    current_user: User = Depends(get_current_admin)
):
    return ok(ConnectionStats(**request.app.state.hub.stats()))
