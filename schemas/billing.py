from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from models.billing import BillStatus
from models.order_management import PaymentMethod
from schemas.order_management import OrderResponse

class SettleBillRequest(BaseModel):
    payment_method: PaymentMethod = Field(..., description="Payment method: cash, card, upi or wallet")
    paid_amount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2, description="Amount tendered; defaults to the bill total")
    version: Optional[int] = Field(None, ge=1, description="Bill version the cashier saw; rejected if the bill changed since")

class BillResponse(BaseModel):
    id: int
    bill_number: str
    order_id: int
    table_id: Optional[int] = None
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal
    status: BillStatus
    is_paid: bool
    payment_method: Optional[PaymentMethod] = None
    paid_amount: Optional[Decimal] = None
    change_amount: Optional[Decimal] = None
    cashier_id: Optional[int] = None
    paid_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BillDetailResponse(BillResponse):
    order: Optional[OrderResponse] = None
