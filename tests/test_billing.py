import re
from datetime import date, timedelta
from decimal import Decimal

import pytest

from models.billing import BillStatus
from models.order_management import OrderStatus, PaymentMethod
from models.table_management import TableStatus
from services.billing import BillingManager
from services.events import EventType
from services.order_lifecycle import OrderManager
from utils.exceptions import ConflictError, NotFoundError, ValidationError

pytestmark = pytest.mark.anyio


@pytest.fixture
def orders(db, bus):
    return OrderManager(db, bus, tax_rate=Decimal("0.10"))


@pytest.fixture
def billing(db, bus):
    return BillingManager(db, bus)


@pytest.fixture
async def order(orders, tables, menu):
    # Two Paneer Tikka: 500.00 + 10% tax
    return await orders.create_order(1, [{"menu_item_id": menu["paneer"].id, "quantity": 2}])


async def test_bill_round_trip(billing, bus, order):
    bill, created = await billing.generate_bill(order.id)

    assert created is True
    assert re.fullmatch(r"BILL\d{10}", bill.bill_number)
    assert bill.status == BillStatus.DRAFT
    assert bill.subtotal == Decimal("500.00")
    assert bill.tax == Decimal("50.00")
    assert bill.total_amount == Decimal("550.00")

    bill = await billing.settle_bill(bill.id, "cash", paid_amount=Decimal("600.00"), cashier_id=None)

    assert bill.status == BillStatus.SETTLED
    assert bill.is_paid is True
    assert bill.payment_method == PaymentMethod.CASH
    assert bill.paid_amount == Decimal("600.00")
    assert bill.change_amount == Decimal("50.00")
    assert bill.order.status == OrderStatus.COMPLETED
    assert bill.order.is_paid is True
    assert bill.order.table.status == TableStatus.AVAILABLE

    settled = bus.events[-1]
    assert settled.type == EventType.BILL_SETTLED
    assert settled.extra["table"].number == 1
    assert [o.id for o in settled.extra["orders"]] == [order.id]


async def test_paid_amount_defaults_to_total(billing, order):
    bill, _ = await billing.generate_bill(order.id)

    bill = await billing.settle_bill(bill.id, PaymentMethod.UPI)

    assert bill.paid_amount == Decimal("550.00")
    assert bill.change_amount == Decimal("0.00")


async def test_generate_is_idempotent_and_refreshes_drafts(billing, orders, bus, order, menu):
    first, created = await billing.generate_bill(order.id)
    again, created_again = await billing.generate_bill(order.id)

    assert created is True and created_again is False
    assert again.id == first.id
    assert bus.types().count(EventType.BILL_GENERATED) == 1

    await orders.add_items(order.id, [{"menu_item_id": menu["dosa"].id, "quantity": 1}])
    refreshed, created_refresh = await billing.generate_bill(order.id)

    assert created_refresh is False
    assert refreshed.id == first.id
    assert refreshed.total_amount == Decimal("682.00")
    assert refreshed.version == 2


async def test_double_settlement_is_rejected(billing, order):
    bill, _ = await billing.generate_bill(order.id)
    await billing.settle_bill(bill.id, "card")

    with pytest.raises(ConflictError, match="Bill is already paid"):
        await billing.settle_bill(bill.id, "card")


async def test_settled_bill_is_returned_unchanged(billing, order):
    bill, _ = await billing.generate_bill(order.id)
    settled = await billing.settle_bill(bill.id, "wallet")

    again, created = await billing.generate_bill(order.id)

    assert created is False
    assert again.status == BillStatus.SETTLED
    assert again.version == settled.version


async def test_underpayment_is_rejected(billing, order):
    bill, _ = await billing.generate_bill(order.id)

    with pytest.raises(ValidationError):
        await billing.settle_bill(bill.id, "cash", paid_amount=Decimal("549.99"))

    assert billing.get_bill(bill.id).is_paid is False


async def test_invalid_payment_method_is_rejected(billing, order):
    bill, _ = await billing.generate_bill(order.id)

    with pytest.raises(ValidationError, match="Invalid payment method"):
        await billing.settle_bill(bill.id, "cheque")


async def test_stale_version_is_rejected(billing, order):
    bill, _ = await billing.generate_bill(order.id)

    with pytest.raises(ConflictError):
        await billing.settle_bill(bill.id, "cash", version=bill.version + 1)

    bill = await billing.settle_bill(bill.id, "cash", version=bill.version)
    assert bill.is_paid is True


async def test_order_change_after_generation_requires_regeneration(billing, orders, order, menu):
    bill, _ = await billing.generate_bill(order.id)
    await orders.add_items(order.id, [{"menu_item_id": menu["dosa"].id, "quantity": 1}])

    with pytest.raises(ConflictError, match="regenerate"):
        await billing.settle_bill(bill.id, "cash")

    bill, _ = await billing.generate_bill(order.id)
    bill = await billing.settle_bill(bill.id, "cash")
    assert bill.total_amount == Decimal("682.00")


async def test_cancelled_or_missing_orders_cannot_be_billed(billing, orders, order):
    with pytest.raises(NotFoundError):
        await billing.generate_bill(9999)

    await orders.cancel_order(order.id)
    with pytest.raises(ConflictError):
        await billing.generate_bill(order.id)


async def test_bill_queries(billing, orders, order, menu):
    bill, _ = await billing.generate_bill(order.id)
    other = await orders.create_order(2, [{"menu_item_id": menu["dosa"].id, "quantity": 1}])
    other_bill, _ = await billing.generate_bill(other.id)
    await billing.settle_bill(other_bill.id, "card")

    assert billing.get_bill_for_order(order.id).id == bill.id
    assert [b.id for b in billing.list_bills(is_paid=True)] == [other_bill.id]
    assert [b.id for b in billing.list_bills(is_paid=False)] == [bill.id]
    assert len(billing.list_bills(start_date=date.today() - timedelta(days=1), end_date=date.today() + timedelta(days=1))) == 2
    assert billing.list_bills(start_date=date.today() + timedelta(days=2)) == []
    with pytest.raises(NotFoundError):
        billing.get_bill_for_order(9999)
