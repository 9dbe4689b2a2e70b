from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from utils.database import Base, enum_type
import enum

class TableStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"   # Table needs to be cleaned before the next use

class Table(Base):
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(Integer, unique=True, index=True, nullable=False)
    capacity = Column(Integer, nullable=False, default=4)
    status = Column(enum_type(TableStatus, "tablestatus"), default=TableStatus.AVAILABLE, nullable=False)
    floor = Column(Integer, default=1)
    section = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    orders = relationship("Order", back_populates="table")
    bills = relationship("Bill", back_populates="table")

    def occupy(self) -> bool:
        """Mark the table occupied; returns True when the status changed."""
        if self.status == TableStatus.OCCUPIED:
            return False
        self.status = TableStatus.OCCUPIED
        return True

    def release(self) -> bool:
        """Free an occupied table; returns True when the status changed."""
        if self.status != TableStatus.OCCUPIED:
            return False
        self.status = TableStatus.AVAILABLE
        return True
