from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, Text
from datetime import datetime
from utils.database import Base

class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, index=True, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    image = Column(Text, nullable=True)  # URL or base64 data URI
    is_veg = Column(Boolean, default=True)
    is_available = Column(Boolean, default=True)
    preparation_time = Column(Integer, default=15)  # minutes
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
