"""Order lifecycle: creation, item changes, status transitions and totals.

Every mutation runs in one transaction and publishes its domain events only
after the commit, so subscribers always see committed state.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload, selectinload

from models.menu_management import MenuItem
from models.order_management import (
    Order,
    OrderItem,
    OrderItemStatus,
    OrderStatus,
    OrderType,
    TERMINAL_ORDER_STATUSES,
)
from models.table_management import Table
from schemas.order_management import KOTItem, KOTResponse
from services.events import DomainEvent, EventBus, EventType
from utils.config import settings
from utils.database import transaction
from utils.exceptions import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from utils.money import ZERO, to_money
from utils.numbering import next_daily_number

logger = logging.getLogger(__name__)

# Forward-only kitchen flow; cancellation allowed until the item is served
ITEM_TRANSITIONS = {
    OrderItemStatus.PENDING: (OrderItemStatus.PREPARING, OrderItemStatus.CANCELLED),
    OrderItemStatus.PREPARING: (OrderItemStatus.READY, OrderItemStatus.CANCELLED),
    OrderItemStatus.READY: (OrderItemStatus.SERVED, OrderItemStatus.CANCELLED),
    OrderItemStatus.SERVED: (),
    OrderItemStatus.CANCELLED: (),
}

# COMPLETED is only reachable through bill settlement
ORDER_TRANSITIONS = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PREPARING, OrderStatus.CANCELLED),
    OrderStatus.PREPARING: (OrderStatus.READY, OrderStatus.CANCELLED),
    OrderStatus.READY: (OrderStatus.SERVED, OrderStatus.CANCELLED),
    OrderStatus.SERVED: (OrderStatus.CANCELLED,),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
}

ORDER_STATUS_RANK = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PREPARING: 2,
    OrderStatus.READY: 3,
    OrderStatus.SERVED: 4,
    OrderStatus.COMPLETED: 5,
    OrderStatus.CANCELLED: 5,
}


def validate_item_transition(current: OrderItemStatus, new: OrderItemStatus):
    if new not in ITEM_TRANSITIONS[OrderItemStatus(current)]:
        raise InvalidTransitionError(f"Invalid item status transition from {OrderItemStatus(current).value} to {new.value}")


def validate_order_transition(current: OrderStatus, new: OrderStatus):
    if new == OrderStatus.COMPLETED:
        raise InvalidTransitionError("Orders are completed by settling their bill")
    if new not in ORDER_TRANSITIONS[OrderStatus(current)]:
        raise InvalidTransitionError(f"Invalid order status transition from {OrderStatus(current).value} to {new.value}")


def aggregate_status(items: List[OrderItem]) -> Optional[OrderStatus]:
    """Order status implied by its active items, or None if nothing started yet."""
    statuses = {OrderItemStatus(item.status) for item in items}
    if not statuses:
        return None
    if statuses == {OrderItemStatus.SERVED}:
        return OrderStatus.SERVED
    if statuses <= {OrderItemStatus.READY, OrderItemStatus.SERVED}:
        return OrderStatus.READY
    if statuses & {OrderItemStatus.PREPARING, OrderItemStatus.READY, OrderItemStatus.SERVED}:
        return OrderStatus.PREPARING
    return None


def kot_for(order: Order, items: Optional[List[OrderItem]] = None, notes: Optional[str] = None) -> KOTResponse:
    """Kitchen order ticket for the whole order or for a batch of added items."""
    lines = order.items if items is None else items
    return KOTResponse(
        kot_number=f"KOT-{order.order_number}",
        order_id=order.id,
        order_number=order.order_number,
        table_number=order.table_number,
        order_type=order.order_type,
        order_time=order.created_at if items is None else datetime.utcnow(),
        notes=order.notes if notes is None else notes,
        items=[
            KOTItem(
                name=item.menu_item.name if item.menu_item else None,
                quantity=item.quantity,
                notes=item.notes,
                is_veg=item.menu_item.is_veg if item.menu_item else None,
                status=item.status,
            )
            for item in lines
            if item.status != OrderItemStatus.CANCELLED
        ],
    )


def _field(item, name):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


class OrderManager:
    def __init__(self, db: Session, events: Optional[EventBus] = None, tax_rate=None):
        self.db = db
        self.events = events or EventBus()
        self.tax_rate = settings.TAX_RATE if tax_rate is None else Decimal(str(tax_rate))

    # Queries

    def _order_query(self):
        return self.db.query(Order).options(
            selectinload(Order.items).joinedload(OrderItem.menu_item),
            joinedload(Order.table),
        )

    def get_order(self, order_id: int) -> Order:
        order = self._order_query().filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def list_orders(self, status: Optional[OrderStatus] = None, table_id: Optional[int] = None) -> List[Order]:
        query = self._order_query()
        if status:
            query = query.filter(Order.status == status)
        if table_id:
            query = query.filter(Order.table_id == table_id)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def get_active_order_for_table(self, table_number: int) -> Optional[Order]:
        table = self.db.query(Table).filter(Table.number == table_number).first()
        if not table:
            raise NotFoundError(f"Table {table_number} not found")
        return self._active_order_query(table.id).first()

    def build_kot(self, order_id: int) -> KOTResponse:
        return kot_for(self.get_order(order_id))

    def _active_order_query(self, table_id: int):
        return (
            self._order_query()
            .filter(Order.table_id == table_id, Order.status.notin_(TERMINAL_ORDER_STATUSES))
            .order_by(Order.created_at.desc())
        )

    def _lock_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).with_for_update().first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    # Helpers

    def _validated_items(self, items) -> List[Tuple[MenuItem, int, Optional[str]]]:
        if not items:
            raise ValidationError("Order must contain at least one item")

        lines = []
        for item in items:
            quantity = _field(item, "quantity")
            if quantity is None or quantity < 1:
                raise ValidationError("Quantity must be at least 1")
            menu_item_id = _field(item, "menu_item_id")
            menu_item = self.db.get(MenuItem, menu_item_id)
            if not menu_item:
                raise NotFoundError(f"Menu item not found: {menu_item_id}")
            if not menu_item.is_available:
                raise ValidationError(f"Menu item {menu_item.name} is not available")
            lines.append((menu_item, quantity, _field(item, "notes")))
        return lines

    @staticmethod
    def _new_item(menu_item: MenuItem, quantity: int, notes: Optional[str]) -> OrderItem:
        price = to_money(menu_item.price)
        return OrderItem(
            menu_item=menu_item,
            menu_item_id=menu_item.id,
            quantity=quantity,
            price=price,
            total=to_money(price * quantity),
            status=OrderItemStatus.PENDING,
            notes=notes,
        )

    def _recompute_totals(self, order: Order):
        """subtotal over active items, tax by policy, total = subtotal + tax - discount."""
        subtotal = to_money(sum((to_money(item.total) for item in order.active_items), ZERO))
        tax = to_money(subtotal * self.tax_rate)
        discount = to_money(order.discount)
        if discount > subtotal + tax:
            logger.info(f"Discount on order {order.order_number} capped at {subtotal + tax}")
            discount = subtotal + tax
        order.subtotal = subtotal
        order.tax = tax
        order.discount = discount
        order.total = subtotal + tax - discount

    @staticmethod
    def _advance_status(order: Order):
        target = aggregate_status(order.active_items)
        if target and ORDER_STATUS_RANK[target] > ORDER_STATUS_RANK[OrderStatus(order.status)]:
            order.status = target

    @staticmethod
    def _cancel(order: Order) -> bool:
        """Cancel the order and free its table; returns True when the table changed."""
        order.status = OrderStatus.CANCELLED
        order.updated_at = datetime.utcnow()
        return order.table.release() if order.table else False

    async def _publish_cancellation(self, order: Order, table_changed: bool):
        await self.events.publish(DomainEvent(EventType.ORDER_CANCELLED, order))
        if table_changed and order.table:
            await self.events.publish(DomainEvent(EventType.TABLE_UPDATED, order.table))

    # Mutations

    async def create_order(
        self,
        table_number: int,
        items,
        order_type: OrderType = OrderType.DINE_IN,
        waiter_id: Optional[int] = None,
        customer_id: Optional[str] = None,
        notes: Optional[str] = None,
        discount=ZERO,
    ) -> Order:
        discount = to_money(discount)
        if discount < 0:
            raise ValidationError("Discount cannot be negative")

        with transaction(self.db, "create order"):
            table = self.db.query(Table).filter(Table.number == table_number).first()
            if not table:
                raise NotFoundError(f"Table {table_number} not found")

            lines = self._validated_items(items)

            existing = self._active_order_query(table.id).first()
            if existing:
                raise ConflictError(
                    f"Table {table_number} already has an active order ({existing.order_number}). "
                    "Use add items endpoint instead."
                )

            order = Order(
                order_number=next_daily_number(self.db, Order.order_number, "ORD"),
                table=table,
                order_type=OrderType(order_type),
                status=OrderStatus.CONFIRMED,
                waiter_id=waiter_id,
                customer_id=customer_id,
                notes=notes,
                discount=discount,
                is_paid=False,
            )
            for menu_item, quantity, item_notes in lines:
                order.items.append(self._new_item(menu_item, quantity, item_notes))

            if discount > sum((item.total for item in order.items), ZERO) * (1 + self.tax_rate):
                raise ValidationError("Discount cannot exceed the order amount")
            self._recompute_totals(order)
            self.db.add(order)
            table_changed = table.occupy()

        order = self.get_order(order.id)
        logger.info(f"Order {order.order_number} created for table {table_number} with {len(order.items)} items, total {order.total}")

        await self.events.publish(DomainEvent(EventType.ORDER_CREATED, order))
        if table_changed:
            await self.events.publish(DomainEvent(EventType.TABLE_UPDATED, order.table))
        return order

    async def add_items(self, order_id: int, items) -> Order:
        with transaction(self.db, "add items"):
            order = self._lock_order(order_id)
            if order.is_terminal:
                raise ConflictError("Cannot add items to completed or cancelled order")

            lines = self._validated_items(items)
            new_items = [self._new_item(menu_item, quantity, notes) for menu_item, quantity, notes in lines]
            order.items.extend(new_items)
            self._recompute_totals(order)
            order.updated_at = datetime.utcnow()
            self.db.flush()
            new_ids = {item.id for item in new_items}

        order = self.get_order(order_id)
        logger.info(f"Added {len(new_ids)} items to order {order.order_number}, total {order.total}")

        added = [item for item in order.items if item.id in new_ids]
        await self.events.publish(DomainEvent(EventType.ORDER_UPDATED, order, {"new_items": added}))
        return order

    async def update_item_status(self, order_id: int, item_id: int, new_status, actor_id: Optional[int] = None) -> OrderItem:
        new_status = OrderItemStatus(new_status)
        order_cancelled = False
        table_changed = False

        with transaction(self.db, "update item status"):
            order = self._lock_order(order_id)
            item = next((i for i in order.items if i.id == item_id), None)
            if not item:
                raise NotFoundError("Order item not found")
            if order.is_terminal:
                raise ConflictError("Cannot change items of a completed or cancelled order")

            validate_item_transition(item.status, new_status)
            item.status = new_status
            now = datetime.utcnow()
            if new_status == OrderItemStatus.READY:
                item.prepared_at = now
                item.prepared_by = actor_id
            elif new_status == OrderItemStatus.SERVED:
                item.served_at = now
                item.served_by = actor_id
            elif new_status == OrderItemStatus.CANCELLED:
                self._recompute_totals(order)
                if not order.active_items:
                    table_changed = self._cancel(order)
                    order_cancelled = True

            if not order_cancelled:
                self._advance_status(order)
            order.updated_at = now

        order = self.get_order(order_id)
        item = next(i for i in order.items if i.id == item_id)
        logger.info(f"Item {item_id} of order {order.order_number} moved to {new_status.value}; order is {order.status.value}")

        await self.events.publish(DomainEvent(EventType.ITEM_STATUS_UPDATED, item, {"order": order}))
        if order_cancelled:
            await self._publish_cancellation(order, table_changed)
        else:
            await self.events.publish(DomainEvent(EventType.ORDER_UPDATED, order))
        return item

    async def delete_item(self, order_id: int, item_id: int) -> Tuple[Order, bool]:
        """Remove an unserved item; returns the order and whether it was cancelled."""
        order_cancelled = False
        table_changed = False

        with transaction(self.db, "delete order item"):
            order = self._lock_order(order_id)
            if order.is_terminal:
                raise ConflictError("Cannot delete items from completed or cancelled order")
            item = next((i for i in order.items if i.id == item_id), None)
            if not item:
                raise NotFoundError("Order item not found")
            if item.status == OrderItemStatus.SERVED:
                raise ConflictError("Cannot delete an item that has already been served")

            order.items.remove(item)
            self._recompute_totals(order)
            if not order.active_items:
                table_changed = self._cancel(order)
                order_cancelled = True
            else:
                self._advance_status(order)
                order.updated_at = datetime.utcnow()

        order = self.get_order(order_id)
        if order_cancelled:
            logger.info(f"Last item deleted, order {order.order_number} cancelled")
            await self._publish_cancellation(order, table_changed)
        else:
            logger.info(f"Item {item_id} deleted from order {order.order_number}, total {order.total}")
            await self.events.publish(DomainEvent(EventType.ORDER_UPDATED, order))
        return order, order_cancelled

    async def cancel_order(self, order_id: int) -> Order:
        with transaction(self.db, "cancel order"):
            order = self._lock_order(order_id)
            if order.is_terminal:
                raise ConflictError(f"Order is already {OrderStatus(order.status).value}")
            table_changed = self._cancel(order)

        order = self.get_order(order_id)
        logger.info(f"Order {order.order_number} cancelled")
        await self._publish_cancellation(order, table_changed)
        return order

    async def update_order_status(self, order_id: int, new_status) -> Order:
        new_status = OrderStatus(new_status)
        if new_status == OrderStatus.CANCELLED:
            # Validates the move against the table first so "completed -> cancelled" reads as a transition error
            validate_order_transition(self.get_order(order_id).status, new_status)
            return await self.cancel_order(order_id)

        with transaction(self.db, "update order status"):
            order = self._lock_order(order_id)
            validate_order_transition(order.status, new_status)
            order.status = new_status
            order.updated_at = datetime.utcnow()

        order = self.get_order(order_id)
        logger.info(f"Order {order.order_number} status updated to {new_status.value}")
        await self.events.publish(DomainEvent(EventType.ORDER_UPDATED, order))
        return order
