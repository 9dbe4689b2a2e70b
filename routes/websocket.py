from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from typing import Any, Optional
import json
import logging

from models.table_management import Table
from services.realtime import BroadcastHub, STAFF_ROLES, role_group, table_group, now_ms
from utils.database import SessionLocal

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


def _table_number(data: Any) -> Optional[int]:
    if isinstance(data, dict):
        data = data.get("table_number", data.get("tableNumber"))
    try:
        return int(data)
    except (TypeError, ValueError):
        return None


def _table_exists(table_number: int) -> bool:
    db = SessionLocal()
    try:
        return db.query(Table.id).filter(Table.number == table_number).first() is not None
    finally:
        db.close()


async def handle_message(hub: BroadcastHub, connection_id: str, event: str, data: Any):
    """Apply one client message to the hub."""
    if event == "join-role":
        role = data.get("role") if isinstance(data, dict) else data
        if role not in STAFF_ROLES:
            await hub.send(connection_id, "error", {"message": f"Unknown role: {role}"})
            return
        hub.join(connection_id, role_group(role))
        await hub.send(connection_id, "role-joined", {"role": role, "connection_id": connection_id})

    elif event == "join-table":
        table_number = _table_number(data)
        if table_number is None or not _table_exists(table_number):
            await hub.send(connection_id, "error", {"message": "Table not found"})
            return
        hub.join(connection_id, table_group(table_number))
        await hub.send(connection_id, "table-joined", {"table_number": table_number, "connection_id": connection_id})

    elif event == "leave-room":
        room = data.get("room") if isinstance(data, dict) else data
        if room:
            hub.leave(connection_id, str(room))

    elif event == "ping":
        await hub.send(connection_id, "pong", {"timestamp": now_ms()})

    elif event == "request-refresh":
        await hub.send(connection_id, "refresh-data")

    elif event == "call-waiter":
        logger.info(f"Waiter called: {data}")
        await hub.send_to_group(role_group("waiter"), "waiter-called", data)
        await hub.send_to_group(role_group("admin"), "waiter-called", data)

    elif event == "order-ready":
        await hub.send_to_group(role_group("waiter"), "order-ready-notification", data)
        table_number = _table_number(data)
        if table_number is not None:
            await hub.send_to_group(table_group(table_number), "order-ready-notification", data)

    elif event == "item-status-updated":
        # Item changes go through the REST API, which broadcasts them after commit
        logger.debug(f"Item status update received from client {connection_id}: {data}")

    else:
        logger.debug(f"Ignoring unknown event {event} from {connection_id}")


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    hub: BroadcastHub = websocket.app.state.hub
    connection_id = await hub.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await hub.send(connection_id, "error", {"message": "Invalid JSON"})
                continue
            if not isinstance(message, dict) or not message.get("event"):
                await hub.send(connection_id, "error", {"message": "Message must have an event"})
                continue
            await handle_message(hub, connection_id, message["event"], message.get("data"))
    except WebSocketDisconnect:
        logger.debug(f"Client {connection_id} disconnected")
    finally:
        hub.disconnect(connection_id)
