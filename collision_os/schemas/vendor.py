# collision_os/schemas/vendor.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class VendorCreate(BaseModel):
    name: str
    vendor_code: str = Field(..., min_length=1)
    discount_percentage: float = Field(0, ge=0, le=100)
    markup_percentage: float = Field(0, ge=0)
    typical_delivery_days: int = Field(3, ge=0)


class VendorOut(BaseModel):
    id: int
    name: str
    vendor_code: str
    discount_percentage: float
    markup_percentage: float
    typical_delivery_days: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True
