from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from utils.database import Base, enum_type
import enum

class UserRole(str, enum.Enum):
    ADMIN = "admin"        # Manages tables, menu, billing
    WAITER = "waiter"      # Takes orders and serves items
    KITCHEN = "kitchen"    # Prepares items from KOTs
    CASHIER = "cashier"    # Settles bills

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(enum_type(UserRole, "userrole"), default=UserRole.WAITER, nullable=False)
    phone = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Orders taken by a waiter
    orders = relationship("Order", back_populates="waiter", foreign_keys="Order.waiter_id")
