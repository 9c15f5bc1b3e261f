# collision_os/schemas/fleet_vehicle.py
from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import List, Optional


class FleetVehicleCreate(BaseModel):
    make: str
    model: str
    year: int = Field(..., ge=1980, le=2100)
    license_plate: str = Field(..., min_length=1)
    vin: Optional[str] = None
    color: Optional[str] = None
    vehicle_type: str = "sedan"      # sedan | suv | compact | truck | van
    features: List[str] = []
    location: Optional[str] = None
    mileage: int = Field(0, ge=0)
    fuel_level: int = Field(100, ge=0, le=100)
    actor_id: Optional[str] = None


class FleetVehicleUpdate(BaseModel):
    """Descriptive fields only; status moves through the reservation workflow."""
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1980, le=2100)
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    color: Optional[str] = None
    vehicle_type: Optional[str] = None
    features: Optional[List[str]] = None
    location: Optional[str] = None
    fuel_level: Optional[int] = Field(None, ge=0, le=100)
    current_odometer: Optional[int] = Field(None, ge=0)
    next_service_date: Optional[datetime] = None
    actor_id: Optional[str] = None


class FleetStatusUpdate(BaseModel):
    status: str                      # available | maintenance | out_of_service
    notes: Optional[str] = None
    actor_id: Optional[str] = None


class FleetVehicleOut(BaseModel):
    id: int
    vehicle_number: str
    make: str
    model: str
    year: int
    license_plate: str
    vin: Optional[str]
    color: Optional[str]
    vehicle_type: str
    features: List[str] = []
    location: Optional[str]
    status: str
    status_changed_at: Optional[datetime]
    current_odometer: Optional[int]
    fuel_level: Optional[int]
    total_miles: Optional[int]
    total_rentals: Optional[int]
    current_renter_id: Optional[str]
    reservation_start_date: Optional[date]
    reservation_end_date: Optional[date]
    last_service_date: Optional[datetime]
    last_damage_date: Optional[datetime]
    damage_notes: Optional[str]
    maintenance_notes: Optional[str] = None
    created_at: datetime

    @field_validator("features", mode="before")
    @classmethod
    def split_features(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [f.strip() for f in v.split(",") if f.strip()]
        return v

    class Config:
        from_attributes = True


class AvailableVehicleOut(BaseModel):
    vehicle: FleetVehicleOut
    score: float
