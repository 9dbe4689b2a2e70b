import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload, selectinload

from models.billing import Bill, BillStatus
from models.order_management import Order, OrderItem, OrderStatus, PaymentMethod
from services.events import DomainEvent, EventBus, EventType
from utils.database import transaction
from utils.exceptions import ConflictError, NotFoundError, ValidationError
from utils.money import to_money
from utils.numbering import next_daily_number

logger = logging.getLogger(__name__)


class BillingManager:
    """Generates bills from orders and settles them.

    Settlement is the only way an order reaches `completed`; it marks the bill
    paid, completes the order and frees the table in a single transaction.
    """

    def __init__(self, db: Session, events: Optional[EventBus] = None):
        self.db = db
        self.events = events or EventBus()

    def _bill_query(self):
        return self.db.query(Bill).options(
            joinedload(Bill.order).selectinload(Order.items).joinedload(OrderItem.menu_item),
            joinedload(Bill.order).joinedload(Order.table),
        )

    def get_bill(self, bill_id: int) -> Bill:
        bill = self._bill_query().filter(Bill.id == bill_id).first()
        if not bill:
            raise NotFoundError("Bill not found")
        return bill

    def get_bill_for_order(self, order_id: int) -> Bill:
        bill = self._bill_query().filter(Bill.order_id == order_id).first()
        if not bill:
            raise NotFoundError("Bill not found for this order")
        return bill

    def list_bills(
        self,
        is_paid: Optional[bool] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Bill]:
        query = self._bill_query()
        if is_paid is not None:
            query = query.filter(Bill.is_paid == is_paid)
        if start_date:
            query = query.filter(Bill.created_at >= datetime.combine(start_date, time.min))
        if end_date:
            # end_date is inclusive
            query = query.filter(Bill.created_at < datetime.combine(end_date + timedelta(days=1), time.min))
        return query.order_by(Bill.created_at.desc(), Bill.id.desc()).all()

    async def generate_bill(self, order_id: int) -> Tuple[Bill, bool]:
        """Create or refresh the bill of an order; returns (bill, created)."""
        created = False
        changed = False

        with transaction(self.db, "generate bill"):
            order = self.db.query(Order).filter(Order.id == order_id).with_for_update().first()
            if not order:
                raise NotFoundError("Order not found")
            if order.status == OrderStatus.CANCELLED:
                raise ConflictError("Cannot generate a bill for a cancelled order")

            bill = self.db.query(Bill).filter(Bill.order_id == order.id).first()
            if bill and bill.status == BillStatus.SETTLED:
                logger.info(f"Bill {bill.bill_number} already settled, returning it unchanged")
            elif bill:
                changed = self._copy_totals(order, bill)
            else:
                bill = Bill(
                    bill_number=next_daily_number(self.db, Bill.bill_number, "BILL"),
                    order_id=order.id,
                    table_id=order.table_id,
                    status=BillStatus.DRAFT,
                    is_paid=False,
                )
                self._copy_totals(order, bill)
                self.db.add(bill)
                created = changed = True
            self.db.flush()
            bill_id = bill.id

        bill = self.get_bill(bill_id)
        if created:
            logger.info(f"Bill {bill.bill_number} generated for order {bill.order.order_number}, total {bill.total_amount}")
        elif changed:
            logger.info(f"Bill {bill.bill_number} refreshed, total {bill.total_amount}")

        if changed:
            await self.events.publish(DomainEvent(EventType.BILL_GENERATED, bill))
        return bill, created

    @staticmethod
    def _copy_totals(order: Order, bill: Bill) -> bool:
        values = {
            "subtotal": to_money(order.subtotal),
            "tax": to_money(order.tax),
            "discount": to_money(order.discount),
            "total_amount": to_money(order.total),
        }
        changed = False
        for name, value in values.items():
            if getattr(bill, name) is None or to_money(getattr(bill, name)) != value:
                setattr(bill, name, value)
                changed = True
        return changed

    async def settle_bill(
        self,
        bill_id: int,
        payment_method,
        paid_amount=None,
        cashier_id: Optional[int] = None,
        version: Optional[int] = None,
    ) -> Bill:
        try:
            payment_method = PaymentMethod(payment_method)
        except ValueError:
            raise ValidationError("Invalid payment method. Must be one of: cash, card, upi, wallet")

        with transaction(self.db, "settle bill"):
            bill = self.db.query(Bill).filter(Bill.id == bill_id).with_for_update().first()
            if not bill:
                raise NotFoundError("Bill not found")
            if bill.is_paid or bill.status == BillStatus.SETTLED:
                raise ConflictError("Bill is already paid")
            if version is not None and version != bill.version:
                raise ConflictError("Bill was modified since it was loaded, reload and retry")

            order = self.db.query(Order).filter(Order.id == bill.order_id).with_for_update().first()
            if order.status == OrderStatus.CANCELLED:
                raise ConflictError("Order was cancelled after the bill was generated")
            if to_money(order.total) != to_money(bill.total_amount):
                raise ConflictError("Order changed since the bill was generated, regenerate the bill")

            total = to_money(bill.total_amount)
            paid = total if paid_amount is None else to_money(paid_amount)
            if paid < total:
                raise ValidationError(f"Paid amount {paid} is less than bill total {total}")

            now = datetime.utcnow()
            bill.status = BillStatus.SETTLED
            bill.is_paid = True
            bill.payment_method = payment_method
            bill.paid_amount = paid
            bill.change_amount = paid - total
            bill.cashier_id = cashier_id
            bill.paid_at = now

            order.status = OrderStatus.COMPLETED
            order.is_paid = True
            order.payment_method = payment_method
            order.paid_at = now
            order.updated_at = now

            table = order.table
            if table is not None:
                table.release()

        bill = self.get_bill(bill_id)
        logger.info(f"Bill {bill.bill_number} settled by {payment_method.value}, paid {bill.paid_amount}, change {bill.change_amount}")

        orders = (
            self.db.query(Order)
            .options(selectinload(Order.items).joinedload(OrderItem.menu_item), joinedload(Order.table))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )
        await self.events.publish(
            DomainEvent(EventType.BILL_SETTLED, bill, {"table": bill.order.table, "orders": orders})
        )
        return bill
