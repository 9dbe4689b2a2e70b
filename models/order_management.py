from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship
from utils.database import Base, enum_type
from datetime import datetime
import enum

class OrderType(str, enum.Enum):
    DINE_IN = "dine-in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class OrderItemStatus(str, enum.Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    CANCELLED = "cancelled"

class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    WALLET = "wallet"

TERMINAL_ORDER_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, index=True, nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False)
    customer_id = Column(String, nullable=True)
    waiter_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(enum_type(OrderStatus, "orderstatus"), default=OrderStatus.PENDING, nullable=False)
    order_type = Column(enum_type(OrderType, "ordertype"), default=OrderType.DINE_IN, nullable=False)
    subtotal = Column(Numeric(10, 2), default=0, nullable=False)
    tax = Column(Numeric(10, 2), default=0, nullable=False)
    discount = Column(Numeric(10, 2), default=0, nullable=False)
    total = Column(Numeric(10, 2), default=0, nullable=False)
    notes = Column(Text, nullable=True)
    is_paid = Column(Boolean, default=False)
    payment_method = Column(enum_type(PaymentMethod, "paymentmethod"), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    table = relationship("Table", back_populates="orders")
    waiter = relationship("User", back_populates="orders", foreign_keys=[waiter_id])
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
    bill = relationship("Bill", back_populates="order", uselist=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    @property
    def table_number(self):
        return self.table.number if self.table else None

    @property
    def active_items(self):
        """Items that still count towards the bill."""
        return [item for item in self.items if item.status != OrderItemStatus.CANCELLED]

    @property
    def all_items_served(self) -> bool:
        """Kitchen view aggregate; cancelled items are ignored."""
        active = self.active_items
        return bool(active) and all(item.status == OrderItemStatus.SERVED for item in active)

class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False)  # Snapshot of MenuItem.price at order time
    total = Column(Numeric(10, 2), nullable=False)
    status = Column(enum_type(OrderItemStatus, "orderitemstatus"), default=OrderItemStatus.PENDING, nullable=False)
    notes = Column(Text, nullable=True)
    prepared_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    prepared_at = Column(DateTime, nullable=True)
    served_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    served_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem")
