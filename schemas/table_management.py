from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from models.table_management import TableStatus

class TableBase(BaseModel):
    number: int = Field(..., gt=0, description="Table number printed on the QR card")
    capacity: int = Field(4, ge=1)
    floor: int = 1
    section: Optional[str] = None

class TableCreate(TableBase):
    status: TableStatus = TableStatus.AVAILABLE

class TableUpdate(BaseModel):
    number: Optional[int] = Field(None, gt=0)
    capacity: Optional[int] = Field(None, ge=1)
    floor: Optional[int] = None
    section: Optional[str] = None
    status: Optional[TableStatus] = None

class TableStatusUpdate(BaseModel):
    status: TableStatus

class TableVerifyRequest(BaseModel):
    table_number: int = Field(..., gt=0)

class TableResponse(TableBase):
    id: int
    status: TableStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
