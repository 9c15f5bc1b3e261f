# collision_os/routers/loaners.py
"""Loaner fleet: vehicles, availability, reservations, check-out / check-in, utilization."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from collision_os.database import get_db
from collision_os.schemas.fleet_vehicle import (
    AvailableVehicleOut,
    FleetStatusUpdate,
    FleetVehicleCreate,
    FleetVehicleOut,
    FleetVehicleUpdate,
)
from collision_os.schemas.reservation import (
    AssignmentUpdate,
    CancelRequest,
    CheckinRequest,
    CheckoutRequest,
    ReservationCreate,
    ReservationDetailOut,
    ReservationOut,
)
from collision_os.services import loaner_service
from collision_os.services.availability_resolver import Preferences
from collision_os.services.intervals import Interval

router = APIRouter()


def _vehicle(v) -> dict:
    return FleetVehicleOut.model_validate(v).model_dump()


# ── Fleet ────────────────────────────────────────────────────────────────────

@router.post("/loaners/fleet", response_model=FleetVehicleOut, status_code=201, summary="Add a loaner vehicle")
def add_vehicle(body: FleetVehicleCreate, db: Session = Depends(get_db)):
    return loaner_service.add_vehicle(db, body.model_dump(exclude={"actor_id"}), body.actor_id)


@router.put("/loaners/fleet/{vehicle_id}", response_model=FleetVehicleOut, summary="Update vehicle details")
def update_vehicle(vehicle_id: int, body: FleetVehicleUpdate, db: Session = Depends(get_db)):
    changes = body.model_dump(exclude={"actor_id"}, exclude_unset=True)
    return loaner_service.update_vehicle(db, vehicle_id, changes, body.actor_id)


@router.put("/loaners/fleet/{vehicle_id}/status", response_model=FleetVehicleOut,
            summary="Move a vehicle in or out of maintenance")
def set_vehicle_status(vehicle_id: int, body: FleetStatusUpdate, db: Session = Depends(get_db)):
    return loaner_service.set_vehicle_status(db, vehicle_id, body.status, body.actor_id, body.notes)


@router.delete("/loaners/fleet/{vehicle_id}", summary="Take a vehicle out of service")
def remove_vehicle(vehicle_id: int, actor_id: Optional[str] = None, db: Session = Depends(get_db)):
    vehicle = loaner_service.remove_vehicle(db, vehicle_id, actor_id)
    return {"status": "removed", "vehicle_id": vehicle.id, "vehicle_status": vehicle.status}


@router.get("/loaners/fleet", summary="Fleet listing with status breakdown")
def list_fleet(
    status: Optional[str] = None,
    vehicle_type: Optional[str] = None,
    availability_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    data = loaner_service.list_fleet(db, status, vehicle_type, availability_date)
    return {
        "vehicles": [_vehicle(v) for v in data["vehicles"]],
        "vehicles_by_status": {k: [_vehicle(v) for v in vs] for k, vs in data["vehicles_by_status"].items()},
        "fleet_metrics": data["fleet_metrics"],
        "availability_analysis": data["availability_analysis"],
    }


@router.get("/loaners/fleet/available", response_model=list[AvailableVehicleOut],
            summary="Vehicles free for a date window, best first")
def available_vehicles(
    pickup_date: date,
    expected_return_date: date,
    vehicle_type: Optional[str] = None,
    features: Optional[str] = Query(None, description="Comma-separated, e.g. bluetooth,awd"),
    db: Session = Depends(get_db),
):
    if expected_return_date <= pickup_date:
        raise HTTPException(status_code=422, detail="expected_return_date must be after pickup_date")
    prefs = Preferences.from_dict({
        "vehicle_type": vehicle_type,
        "features": features.split(",") if features else [],
    })
    ranked = loaner_service.find_available_vehicles(db, Interval(pickup_date, expected_return_date), prefs)
    return [AvailableVehicleOut(vehicle=FleetVehicleOut.model_validate(r.unit), score=r.score) for r in ranked]


# ── Reservations ─────────────────────────────────────────────────────────────

@router.post("/loaners/reserve", status_code=201, summary="Reserve the best free loaner")
def reserve(body: ReservationCreate, db: Session = Depends(get_db)):
    prefs = Preferences.from_dict(body.vehicle_preferences.model_dump() if body.vehicle_preferences else None)
    reservation, vehicle = loaner_service.reserve(
        db,
        customer_id=body.customer_id,
        repair_order_id=body.repair_order_id,
        interval=Interval(body.pickup_date, body.expected_return_date),
        preferences=prefs,
        notes=body.reservation_notes,
        actor_id=body.actor_id,
    )
    return {
        "reservation": ReservationOut.model_validate(reservation).model_dump(),
        "vehicle": _vehicle(vehicle),
        "confirmation_number": reservation.confirmation_number,
    }


@router.post("/loaners/check-out", summary="Hand the loaner to the customer")
def check_out(body: CheckoutRequest, db: Session = Depends(get_db)):
    doc = loaner_service.check_out_vehicle(
        db,
        body.reservation_id,
        body.checkout_inspection.model_dump(),
        body.customer_agreement.model_dump(),
        body.actor_id,
    )
    doc["reservation"] = ReservationOut.model_validate(doc["reservation"]).model_dump()
    doc["vehicle"] = _vehicle(doc["vehicle"])
    return jsonable_encoder(doc)


@router.post("/loaners/check-in", summary="Take the loaner back")
def check_in(body: CheckinRequest, db: Session = Depends(get_db)):
    return loaner_service.check_in_vehicle(
        db,
        body.reservation_id,
        body.return_inspection.model_dump(),
        body.additional_charges,
        body.return_notes,
        body.actor_id,
    )


@router.post("/loaners/reservations/{reservation_id}/cancel", response_model=ReservationOut,
             summary="Cancel a confirmed reservation")
def cancel(reservation_id: int, body: CancelRequest, db: Session = Depends(get_db)):
    return loaner_service.cancel(db, reservation_id, body.reason, body.actor_id)


# ── Assignments ──────────────────────────────────────────────────────────────

@router.get("/loaners/assignments/active", response_model=list[ReservationDetailOut],
            summary="Loaners currently out with customers")
def active_assignments(db: Session = Depends(get_db)):
    return loaner_service.active_assignments(db)


@router.get("/loaners/assignments/history", response_model=list[ReservationOut],
            summary="Completed and cancelled reservations")
def assignment_history(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return loaner_service.assignment_history(db, limit, offset, start_date, end_date)


@router.get("/loaners/assignments/{reservation_id}", response_model=ReservationDetailOut,
            summary="Reservation detail")
def get_assignment(reservation_id: int, db: Session = Depends(get_db)):
    return loaner_service.get_reservation(db, reservation_id)


@router.put("/loaners/assignments/{reservation_id}", response_model=ReservationOut,
            summary="Change the return date or notes of a reservation")
def update_assignment(reservation_id: int, body: AssignmentUpdate, db: Session = Depends(get_db)):
    return loaner_service.update_assignment(db, reservation_id, body.expected_return_date, body.notes, body.actor_id)


# ── Utilization ──────────────────────────────────────────────────────────────

@router.get("/loaners/utilization", summary="Fleet utilization over a trailing period")
def utilization(
    period_days: int = Query(30, ge=1, le=365),
    vehicle_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return loaner_service.utilization(db, period_days, vehicle_id)
