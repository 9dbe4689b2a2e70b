from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from utils.database import Base, enum_type
from models.order_management import PaymentMethod
from datetime import datetime
import enum

class BillStatus(str, enum.Enum):
    DRAFT = "draft"        # Generated, totals still follow the order
    SETTLED = "settled"    # Paid, immutable

class Bill(Base):
    __tablename__ = "bills"

    id = Column(Integer, primary_key=True, index=True)
    bill_number = Column(String, unique=True, index=True, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=True)
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(enum_type(BillStatus, "billstatus"), default=BillStatus.DRAFT, nullable=False)
    is_paid = Column(Boolean, default=False)
    payment_method = Column(enum_type(PaymentMethod, "paymentmethod"), nullable=True)
    paid_amount = Column(Numeric(10, 2), nullable=True)
    change_amount = Column(Numeric(10, 2), nullable=True)
    cashier_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Every UPDATE checks and bumps the version; a concurrent writer gets StaleDataError
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    order = relationship("Order", back_populates="bill")
    table = relationship("Table", back_populates="bills")
    cashier = relationship("User")
