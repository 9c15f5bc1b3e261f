# collision_os/schemas/reservation.py
from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from typing import Dict, List, Optional

from collision_os.schemas.fleet_vehicle import FleetVehicleOut


class VehiclePreferences(BaseModel):
    vehicle_type: Optional[str] = None
    features: List[str] = []


class ReservationCreate(BaseModel):
    customer_id: str
    repair_order_id: str
    pickup_date: date
    expected_return_date: date
    vehicle_preferences: Optional[VehiclePreferences] = None
    reservation_notes: Optional[str] = None
    actor_id: Optional[str] = None

    @model_validator(mode="after")
    def check_window(self):
        if self.expected_return_date <= self.pickup_date:
            raise ValueError("expected_return_date must be after pickup_date")
        return self


class CheckoutInspection(BaseModel):
    fuel_level: int = Field(..., ge=0, le=100)
    odometer_reading: int = Field(..., ge=0)
    damage_notes: Optional[str] = None
    cleanliness_rating: Optional[int] = Field(None, ge=1, le=5)
    photos: List[str] = []
    checkout_notes: Optional[str] = None


class CustomerAgreement(BaseModel):
    terms_accepted: bool = False
    insurance_verified: bool = False
    license_checked: bool = False
    signature: Optional[str] = None


class CheckoutRequest(BaseModel):
    reservation_id: int
    checkout_inspection: CheckoutInspection
    customer_agreement: CustomerAgreement
    actor_id: Optional[str] = None


class DamageAssessment(BaseModel):
    new_damage_found: bool = False
    damage_description: Optional[str] = None
    estimated_repair_cost: Optional[float] = Field(None, ge=0)


class ReturnInspection(BaseModel):
    fuel_level: int = Field(..., ge=0, le=100)
    odometer_reading: int = Field(..., ge=0)
    interior_condition: Optional[str] = None     # excellent | good | fair | poor
    exterior_condition: Optional[str] = None
    damage_assessment: DamageAssessment = DamageAssessment()
    photos: List[str] = []


class CheckinRequest(BaseModel):
    reservation_id: int
    return_inspection: ReturnInspection
    additional_charges: Dict[str, float] = {}
    return_notes: Optional[str] = None
    actor_id: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = None
    actor_id: Optional[str] = None


class AssignmentUpdate(BaseModel):
    expected_return_date: Optional[date] = None
    notes: Optional[str] = None
    actor_id: Optional[str] = None


class ReservationOut(BaseModel):
    id: int
    confirmation_number: str
    customer_id: str
    repair_order_id: str
    vehicle_id: int
    pickup_date: date
    expected_return_date: date
    duration_days: Optional[int]
    vehicle_preferences: Optional[str]
    reservation_notes: Optional[str]
    status: str
    status_changed_at: Optional[datetime]
    checkout_at: Optional[datetime]
    checkout_odometer: Optional[int]
    checkout_fuel_level: Optional[int]
    return_at: Optional[datetime]
    return_odometer: Optional[int]
    return_fuel_level: Optional[int]
    miles_driven: Optional[int]
    additional_charges_amount: Optional[float]
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ReservationDetailOut(ReservationOut):
    vehicle: FleetVehicleOut
