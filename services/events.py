import logging
import enum
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List

from fastapi import Request

logger = logging.getLogger(__name__)


class EventType(str, enum.Enum):
    ORDER_CREATED = "order_created"
    ORDER_UPDATED = "order_updated"
    ORDER_CANCELLED = "order_cancelled"
    ITEM_STATUS_UPDATED = "item_status_updated"
    BILL_GENERATED = "bill_generated"
    BILL_SETTLED = "bill_settled"
    TABLE_CREATED = "table_created"
    TABLE_UPDATED = "table_updated"
    TABLE_DELETED = "table_deleted"


@dataclass
class DomainEvent:
    """A committed state change.

    `entity` is the ORM object the change is about (Order, OrderItem, Bill or
    Table); `extra` carries related objects a subscriber may need.
    """

    type: EventType
    entity: Any
    extra: Dict[str, Any] = field(default_factory=dict)


EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    """In-process publish/subscribe between the managers and the transport."""

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler):
        self._handlers.append(handler)

    async def publish(self, event: DomainEvent):
        # Delivery is best-effort: the transaction behind the event is already committed
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception as e:
                logger.warning(f"Failed to deliver {event.type.value} event to {getattr(handler, '__qualname__', handler)}: {str(e)}")


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus
