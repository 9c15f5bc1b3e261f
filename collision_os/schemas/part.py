# collision_os/schemas/part.py
from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional

from collision_os.schemas.vendor import VendorOut


class PartCreate(BaseModel):
    repair_order_id: str
    part_number: str = Field(..., min_length=1)
    part_description: Optional[str] = None
    quantity: int = Field(1, ge=1)
    unit_cost: float = Field(0, ge=0)
    vendor_id: Optional[int] = None
    priority: str = "normal"          # low | normal | high | urgent
    expected_delivery_date: Optional[date] = None
    sourcing_notes: Optional[str] = None
    actor_id: Optional[str] = None


class PartStatusUpdate(BaseModel):
    status: str
    vendor_id: Optional[int] = None
    notes: Optional[str] = None
    expected_delivery_date: Optional[date] = None
    actor_id: Optional[str] = None


class BulkUpdateRequest(PartStatusUpdate):
    part_ids: List[int] = Field(..., min_length=1)


class PartOut(BaseModel):
    id: int
    repair_order_id: str
    part_number: str
    part_description: Optional[str]
    quantity: int
    unit_cost: float
    vendor_id: Optional[int]
    vendor: Optional[VendorOut] = None
    priority: Optional[str]
    status: str
    status_changed_at: Optional[datetime]
    status_changed_by: Optional[str]
    sourcing_notes: Optional[str]
    expected_delivery_date: Optional[date]
    order_date: Optional[datetime]
    received_date: Optional[datetime]
    installation_date: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True
