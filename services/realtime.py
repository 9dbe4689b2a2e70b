import asyncio
import logging
import time
import uuid
from typing import Any, Dict, Iterable, Set

from schemas.billing import BillDetailResponse
from schemas.order_management import OrderResponse, OrderItemResponse
from schemas.table_management import TableResponse
from services.events import DomainEvent, EventType
from services.order_lifecycle import kot_for

logger = logging.getLogger(__name__)

STAFF_ROLES = ("waiter", "kitchen", "admin")


def role_group(role: str) -> str:
    return f"role:{role}"


def table_group(table_number) -> str:
    return f"table:{table_number}"


def now_ms() -> int:
    return int(time.time() * 1000)


class BroadcastHub:
    """Registry of live connections and the groups they joined.

    A connection is anything with an async `send_json`; memberships are keyed
    by the connection id handed out by `connect`, so a disconnect clears every
    group the connection was in.
    """

    def __init__(self):
        self.connections: Dict[str, Any] = {}
        self.groups: Dict[str, Set[str]] = {}
        self.memberships: Dict[str, Set[str]] = {}

    async def connect(self, websocket) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        self.memberships[connection_id] = set()
        logger.debug(f"Connection {connection_id} opened. Total connections: {len(self.connections)}")
        return connection_id

    def disconnect(self, connection_id: str):
        for group in self.memberships.pop(connection_id, set()):
            members = self.groups.get(group)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self.groups[group]
        self.connections.pop(connection_id, None)
        logger.debug(f"Connection {connection_id} closed. Total connections: {len(self.connections)}")

    def join(self, connection_id: str, group: str):
        if connection_id not in self.connections:
            raise KeyError(f"Unknown connection {connection_id}")
        self.groups.setdefault(group, set()).add(connection_id)
        self.memberships[connection_id].add(group)
        logger.debug(f"Connection {connection_id} joined {group}")

    def leave(self, connection_id: str, group: str):
        members = self.groups.get(group)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self.groups[group]
        self.memberships.get(connection_id, set()).discard(group)
        logger.debug(f"Connection {connection_id} left {group}")

    def members(self, group: str) -> Set[str]:
        return set(self.groups.get(group, ()))

    async def send(self, connection_id: str, event: str, data: Any = None) -> bool:
        connection = self.connections.get(connection_id)
        if connection is None:
            return False
        try:
            await connection.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.warning(f"Failed to send {event} to connection {connection_id}, dropping it: {str(e)}")
            self.disconnect(connection_id)
            return False

    async def _send_many(self, connection_ids: Iterable[str], event: str, data: Any) -> int:
        delivered = 0
        for connection_id in list(connection_ids):
            if await self.send(connection_id, event, data):
                delivered += 1
        return delivered

    async def broadcast(self, event: str, data: Any = None) -> int:
        return await self._send_many(self.connections.keys(), event, data)

    async def send_to_group(self, group: str, event: str, data: Any = None) -> int:
        return await self._send_many(self.members(group), event, data)

    def stats(self) -> dict:
        customers = set()
        for group, members in self.groups.items():
            if group.startswith("table:"):
                customers.update(members)
        return {
            "total": len(self.connections),
            "customers": len(customers),
            "waiters": len(self.groups.get(role_group("waiter"), ())),
            "kitchen": len(self.groups.get(role_group("kitchen"), ())),
            "admin": len(self.groups.get(role_group("admin"), ())),
            "groups": len(self.groups),
        }


def _order_payload(order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json")


def _table_payload(table) -> dict:
    return TableResponse.model_validate(table).model_dump(mode="json")


class RealtimeNotifier:
    """Turns committed domain events into pushes on the hub."""

    def __init__(self, hub: BroadcastHub):
        self.hub = hub

    async def handle(self, event: DomainEvent):
        handler = getattr(self, f"_on_{event.type.value}", None)
        if handler is None:
            logger.debug(f"No realtime mapping for {event.type.value}")
            return
        await handler(event)

    async def _on_order_created(self, event: DomainEvent):
        order = event.entity
        await self.hub.broadcast("new-order", _order_payload(order))
        await self.hub.send_to_group(role_group("kitchen"), "print-kot", kot_for(order).model_dump(mode="json"))
        logger.info(f"Broadcast new order {order.order_number}")

    async def _on_order_updated(self, event: DomainEvent):
        order = event.entity
        payload = _order_payload(order)
        await self.hub.broadcast("order-updated", payload)
        if order.table_number is not None:
            await self.hub.send_to_group(table_group(order.table_number), "order-updated", payload)
        await self.hub.send_to_group(role_group("kitchen"), "order-updated", payload)

        new_items = event.extra.get("new_items")
        if new_items:
            ticket = kot_for(order, items=new_items, notes="ADDITIONAL ITEMS")
            await self.hub.send_to_group(role_group("kitchen"), "print-kot", ticket.model_dump(mode="json"))

    async def _on_order_cancelled(self, event: DomainEvent):
        await self.hub.broadcast("order-cancelled", _order_payload(event.entity))

    async def _on_item_status_updated(self, event: DomainEvent):
        item = event.entity
        await self.hub.broadcast("item-status-updated", OrderItemResponse.model_validate(item).model_dump(mode="json"))

    async def _on_bill_generated(self, event: DomainEvent):
        await self.hub.broadcast("bill-updated", BillDetailResponse.model_validate(event.entity).model_dump(mode="json"))

    async def _on_bill_settled(self, event: DomainEvent):
        bill = event.entity
        await self.hub.broadcast("bill-updated", BillDetailResponse.model_validate(bill).model_dump(mode="json"))
        table = event.extra.get("table")
        if table is not None:
            await self.hub.broadcast("table-updated", _table_payload(table))
        orders = event.extra.get("orders")
        if orders is not None:
            await self.hub.broadcast("orders-update", [_order_payload(order) for order in orders])
        logger.info(f"Broadcast settlement of bill {bill.bill_number}")

    async def _on_table_created(self, event: DomainEvent):
        await self.hub.broadcast("table-created", _table_payload(event.entity))

    async def _on_table_updated(self, event: DomainEvent):
        await self.hub.broadcast("table-updated", _table_payload(event.entity))

    async def _on_table_deleted(self, event: DomainEvent):
        await self.hub.broadcast("table-deleted", {"id": event.extra.get("id"), "number": event.extra.get("number")})


async def run_heartbeat(hub: BroadcastHub, interval: float):
    """Push a liveness signal to every connection until cancelled."""
    while True:
        await asyncio.sleep(interval)
        delivered = await hub.broadcast("heartbeat", {"timestamp": now_ms()})
        logger.debug(f"Heartbeat sent to {delivered} connections")
