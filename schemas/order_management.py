from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal

from models.order_management import OrderType, OrderStatus, OrderItemStatus, PaymentMethod
from schemas.menu_management import MenuItemSummary


class OrderItemCreate(BaseModel):
    menu_item_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = None


class OrderCreate(BaseModel):
    table_number: int = Field(..., gt=0, description="Number of the table placing the order")
    items: List[OrderItemCreate] = Field(default_factory=list, description="List of order items")
    order_type: OrderType = Field(OrderType.DINE_IN, description="Type of order: dine-in, takeaway, or delivery")
    waiter_id: Optional[int] = None
    customer_id: Optional[str] = None
    notes: Optional[str] = None
    discount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)


class OrderItemsAdd(BaseModel):
    items: List[OrderItemCreate] = Field(default_factory=list)


class OrderItemStatusUpdate(BaseModel):
    status: OrderItemStatus


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemResponse(BaseModel):
    id: int
    order_id: int
    menu_item_id: int
    menu_item: Optional[MenuItemSummary] = None
    quantity: int
    price: Decimal
    total: Decimal
    status: OrderItemStatus
    notes: Optional[str] = None
    prepared_by: Optional[int] = None
    prepared_at: Optional[datetime] = None
    served_by: Optional[int] = None
    served_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    table_id: int
    table_number: Optional[int] = None
    customer_id: Optional[str] = None
    waiter_id: Optional[int] = None
    status: OrderStatus
    order_type: OrderType
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    notes: Optional[str] = None
    is_paid: bool
    payment_method: Optional[PaymentMethod] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    all_items_served: bool
    items: List[OrderItemResponse]

    class Config:
        from_attributes = True


class OrderItemDeleteResponse(BaseModel):
    success: bool = True
    message: str
    order_cancelled: bool = False
    data: Optional[OrderResponse] = None


class KOTItem(BaseModel):
    name: Optional[str] = None
    quantity: int
    notes: Optional[str] = None
    is_veg: Optional[bool] = None
    status: OrderItemStatus


class KOTResponse(BaseModel):
    kot_number: str
    order_id: int
    order_number: str
    table_number: Optional[int] = None
    order_type: OrderType
    order_time: datetime
    notes: Optional[str] = None
    items: List[KOTItem]
