import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from models.order_management import Order
from models.table_management import Table, TableStatus
from services.events import DomainEvent, EventBus, EventType
from utils.database import transaction
from utils.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class TableManager:
    def __init__(self, db: Session, events: Optional[EventBus] = None):
        self.db = db
        self.events = events or EventBus()

    def list_tables(self, status: Optional[TableStatus] = None) -> List[Table]:
        query = self.db.query(Table)
        if status:
            query = query.filter(Table.status == status)
        return query.order_by(Table.number).all()

    def get_table(self, table_id: int) -> Table:
        table = self.db.get(Table, table_id)
        if not table:
            raise NotFoundError("Table not found")
        return table

    def verify_table(self, table_number: int) -> Table:
        """Resolve the table a QR link points at."""
        table = self.db.query(Table).filter(Table.number == table_number).first()
        if not table:
            logger.warning(f"Verification failed for unknown table {table_number}")
            raise NotFoundError(f"Table {table_number} not found")
        return table

    def _ensure_number_free(self, number: int, table_id: Optional[int] = None):
        query = self.db.query(Table).filter(Table.number == number)
        if table_id is not None:
            query = query.filter(Table.id != table_id)
        if query.first():
            raise ConflictError(f"Table number {number} already exists")

    async def create_table(self, number: int, capacity: int = 4, status: TableStatus = TableStatus.AVAILABLE,
                           floor: int = 1, section: Optional[str] = None) -> Table:
        with transaction(self.db, "create table"):
            self._ensure_number_free(number)
            table = Table(number=number, capacity=capacity, status=TableStatus(status), floor=floor, section=section)
            self.db.add(table)
        self.db.refresh(table)
        logger.info(f"Table {table.number} created")

        await self.events.publish(DomainEvent(EventType.TABLE_CREATED, table))
        return table

    async def update_table(self, table_id: int, **changes) -> Table:
        with transaction(self.db, "update table"):
            table = self.get_table(table_id)
            if changes.get("number") is not None:
                self._ensure_number_free(changes["number"], table_id)
            for field, value in changes.items():
                if value is not None:
                    setattr(table, field, value)
        self.db.refresh(table)
        logger.info(f"Table {table.number} updated")

        await self.events.publish(DomainEvent(EventType.TABLE_UPDATED, table))
        return table

    async def set_status(self, table_id: int, status) -> Table:
        """Manual status change by staff, e.g. reserved or cleaning."""
        return await self.update_table(table_id, status=TableStatus(status))

    async def delete_table(self, table_id: int):
        with transaction(self.db, "delete table"):
            table = self.get_table(table_id)
            if self.db.query(Order).filter(Order.table_id == table.id).first():
                raise ConflictError("Cannot delete a table that has orders")
            deleted = {"id": table.id, "number": table.number}
            self.db.delete(table)
        logger.info(f"Table {deleted['number']} deleted")

        await self.events.publish(DomainEvent(EventType.TABLE_DELETED, None, deleted))
