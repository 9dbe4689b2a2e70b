from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

class MenuItemBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    image: Optional[str] = None
    is_veg: bool = True
    preparation_time: int = Field(15, ge=0)

class MenuItemCreate(MenuItemBase):
    is_available: bool = True

    @validator('name', 'category')
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    image: Optional[str] = None
    is_veg: Optional[bool] = None
    is_available: Optional[bool] = None
    preparation_time: Optional[int] = Field(None, ge=0)

class MenuItemResponse(MenuItemBase):
    id: int
    is_available: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class MenuItemSummary(BaseModel):
    id: int
    name: str
    category: str
    is_veg: bool

    class Config:
        from_attributes = True

class ImageUploadResponse(BaseModel):
    success: bool = True
    image_url: str
    size: int
