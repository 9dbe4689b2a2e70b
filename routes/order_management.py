from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import logging
from typing import List, Optional

from utils.database import get_db
from models.order_management import OrderStatus
from schemas.common import Envelope, ok
from schemas.order_management import (
    OrderCreate,
    OrderResponse,
    OrderItemsAdd,
    OrderItemResponse,
    OrderItemStatusUpdate,
    OrderItemDeleteResponse,
    OrderStatusUpdate,
    KOTResponse,
)
from services.events import EventBus, get_event_bus
from services.order_lifecycle import OrderManager
from utils.auth import get_current_active_user
from models.user import User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["orders"])


def get_order_manager(db: Session = Depends(get_db), events: EventBus = Depends(get_event_bus)) -> OrderManager:
    return OrderManager(db, events)


@router.post("", response_model=Envelope[OrderResponse], status_code=status.HTTP_201_CREATED)
async def create_order(order: OrderCreate, manager: OrderManager = Depends(get_order_manager)):
    db_order = await manager.create_order(
        table_number=order.table_number,
        items=order.items,
        order_type=order.order_type,
        waiter_id=order.waiter_id,
        customer_id=order.customer_id,
        notes=order.notes,
        discount=order.discount,
    )
    return ok(db_order, message="Order created successfully")


@router.get("", response_model=Envelope[List[OrderResponse]])
async def list_orders(
    status: Optional[OrderStatus] = None,
    table_id: Optional[int] = None,
    manager: OrderManager = Depends(get_order_manager)
):
    orders = manager.list_orders(status=status, table_id=table_id)
    logger.info(f"Retrieved {len(orders)} orders")
    return ok(orders)


@router.get("/table/{table_number}", response_model=Envelope[OrderResponse])
async def get_active_order_for_table(table_number: int, manager: OrderManager = Depends(get_order_manager)):
    order = manager.get_active_order_for_table(table_number)
    if order is None:
        return ok(message="No active order for this table")
    return ok(order)


@router.get("/{order_id}", response_model=Envelope[OrderResponse])
async def get_order(order_id: int, manager: OrderManager = Depends(get_order_manager)):
    return ok(manager.get_order(order_id))


@router.get("/{order_id}/kot", response_model=Envelope[KOTResponse])
async def get_order_kot(order_id: int, manager: OrderManager = Depends(get_order_manager)):
    return ok(manager.build_kot(order_id))


@router.post("/{order_id}/items", response_model=Envelope[OrderResponse])
async def add_order_items(
    order_id: int,
    request: OrderItemsAdd,
    manager: OrderManager = Depends(get_order_manager)
):
    order = await manager.add_items(order_id, request.items)
    return ok(order, message="Items added successfully")


@router.delete("/{order_id}/items/{item_id}", response_model=OrderItemDeleteResponse)
async def delete_order_item(
    order_id: int,
    item_id: int,
    manager: OrderManager = Depends(get_order_manager),
    current_user: User = Depends(get_current_active_user)
):
    order, order_cancelled = await manager.delete_item(order_id, item_id)
    logger.info(f"Item {item_id} removed from order {order.order_number} by user {current_user.id}")
    if order_cancelled:
        message = "Last item deleted. Order cancelled and table freed."
    else:
        message = "Item deleted successfully"
    return {"success": True, "message": message, "order_cancelled": order_cancelled, "data": order}


@router.put("/{order_id}/items/{item_id}/status", response_model=Envelope[OrderItemResponse])
async def update_order_item_status(
    order_id: int,
    item_id: int,
    status_update: OrderItemStatusUpdate,
    manager: OrderManager = Depends(get_order_manager),
    current_user: User = Depends(get_current_active_user)
):
    item = await manager.update_item_status(order_id, item_id, status_update.status, actor_id=current_user.id)
    return ok(item, message=f"Item status updated to {item.status.value}")


@router.put("/{order_id}/status", response_model=Envelope[OrderResponse])
async def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    manager: OrderManager = Depends(get_order_manager),
    current_user: User = Depends(get_current_active_user)
):
    order = await manager.update_order_status(order_id, status_update.status)
    logger.info(f"Order {order.order_number} set to {order.status.value} by user {current_user.id}")
    return ok(order, message=f"Order status updated to {order.status.value}")
