# collision_os/services/loaner_service.py
"""
Loaner fleet workflows: intake, reservation, check-out, check-in, cancellation.

Reads the current fleet and reservations from the session, hands plain rows to
the availability resolver and transition validator, then commits and publishes
the resulting status events. The database is the source of truth; nothing is
cached between calls.
"""

import json
import uuid
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from collision_os.config import settings
from collision_os.exceptions import (
    ConflictError,
    DuplicateError,
    InvalidRequestError,
    InvalidTransition,
    NotFoundError,
)
from collision_os.models.fleet_vehicle import FleetVehicle
from collision_os.models.loaner_reservation import LoanerReservation
from collision_os.services import metrics_service
from collision_os.services.availability_resolver import (
    BLOCKING_STATES,
    Preferences,
    RankedUnit,
    ScoringWeights,
    blocked_intervals,
    conflicts,
    rank_available,
    suggest_alternative_dates,
)
from collision_os.services.intervals import Interval
from collision_os.services.notification_service import EventCollector, publish_events
from collision_os.services.status_graph import Category, FleetStatus, ReservationStatus
from collision_os.services.transition_validator import (
    apply_transition,
    cancel_reservation,
    check_in,
    check_out,
)
from collision_os.utils.logger import get_logger

logger = get_logger(__name__)

EDITABLE_VEHICLE_FIELDS = {
    "make", "model", "year", "license_plate", "vin", "color", "vehicle_type",
    "location", "fuel_level", "current_odometer", "next_service_date", "features",
}
# Status moves allowed outside the reservation lifecycle
MANUAL_EDGES = {
    FleetStatus.AVAILABLE.value: {FleetStatus.MAINTENANCE.value, FleetStatus.OUT_OF_SERVICE.value},
    FleetStatus.MAINTENANCE.value: {FleetStatus.AVAILABLE.value, FleetStatus.OUT_OF_SERVICE.value},
}
IN_SERVICE_STATES = {FleetStatus.AVAILABLE.value, FleetStatus.RESERVED.value, FleetStatus.RENTED.value}


def _features_str(features) -> Optional[str]:
    if features is None:
        return None
    if isinstance(features, str):
        return features
    return ",".join(f.strip().lower() for f in features if f and f.strip())


# ── Lookups ────────────────────────────────────────────────────────────────

def get_vehicle(db: Session, vehicle_id: int) -> FleetVehicle:
    vehicle = db.query(FleetVehicle).filter(FleetVehicle.id == vehicle_id).first()
    if not vehicle:
        raise NotFoundError("vehicle", vehicle_id)
    return vehicle


def get_reservation(db: Session, reservation_id: int) -> LoanerReservation:
    reservation = db.query(LoanerReservation).filter(LoanerReservation.id == reservation_id).first()
    if not reservation:
        raise NotFoundError("reservation", reservation_id)
    return reservation


def committed_reservations(db: Session, vehicle_ids: Optional[List[int]] = None) -> List[LoanerReservation]:
    """Confirmed and active reservations, the ones that block a vehicle."""
    q = db.query(LoanerReservation).filter(LoanerReservation.status.in_(BLOCKING_STATES))
    if vehicle_ids is not None:
        if not vehicle_ids:
            return []
        q = q.filter(LoanerReservation.vehicle_id.in_(vehicle_ids))
    return q.all()


# ── Fleet management ───────────────────────────────────────────────────────

def add_vehicle(db: Session, data: dict, actor_id: Optional[str] = None) -> FleetVehicle:
    """Register a loaner in the fleet. New vehicles always start available."""
    plate = data["license_plate"].strip().upper()
    if db.query(FleetVehicle).filter(FleetVehicle.license_plate == plate).first():
        raise DuplicateError("license_plate", plate)

    count = db.query(func.count(FleetVehicle.id)).scalar() or 0
    now = datetime.utcnow()
    vehicle = FleetVehicle(
        vehicle_number=f"LC-{count + 1:03d}",
        make=data["make"],
        model=data["model"],
        year=data["year"],
        license_plate=plate,
        vin=data.get("vin"),
        color=data.get("color"),
        vehicle_type=data.get("vehicle_type") or "sedan",
        features=_features_str(data.get("features")),
        location=data.get("location"),
        status=FleetStatus.AVAILABLE.value,
        status_changed_at=now,
        status_changed_by=actor_id,
        current_odometer=data.get("mileage") or 0,
        fuel_level=data.get("fuel_level", 100),
        total_miles=0,
        total_rentals=0,
        created_at=now,
        updated_at=now,
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    logger.info(f"[FLEET] Added {vehicle.vehicle_number} {vehicle.year} {vehicle.make} {vehicle.model} ({plate})")
    return vehicle


def update_vehicle(db: Session, vehicle_id: int, changes: dict, actor_id: Optional[str] = None) -> FleetVehicle:
    """Partial update of descriptive fields. Status is never written here."""
    vehicle = get_vehicle(db, vehicle_id)

    plate = changes.get("license_plate")
    if plate:
        plate = plate.strip().upper()
        clash = db.query(FleetVehicle).filter(
            FleetVehicle.license_plate == plate, FleetVehicle.id != vehicle_id
        ).first()
        if clash:
            raise DuplicateError("license_plate", plate)
        changes["license_plate"] = plate

    for name, value in changes.items():
        if name not in EDITABLE_VEHICLE_FIELDS or value is None:
            continue
        setattr(vehicle, name, _features_str(value) if name == "features" else value)
    vehicle.updated_at = datetime.utcnow()
    vehicle.updated_by = actor_id
    db.commit()
    db.refresh(vehicle)
    return vehicle


def remove_vehicle(db: Session, vehicle_id: int, actor_id: Optional[str] = None) -> FleetVehicle:
    """Soft delete: move the vehicle to out_of_service. Refused while reserved or rented."""
    vehicle = get_vehicle(db, vehicle_id)
    events = EventCollector()
    apply_transition(vehicle, FleetStatus.OUT_OF_SERVICE, Category.FLEET, actor_id, emit=events)
    vehicle.updated_at = vehicle.status_changed_at
    db.commit()
    publish_events(db, events.events)
    logger.info(f"[FLEET] Removed {vehicle.vehicle_number} from service")
    return vehicle


def set_vehicle_status(db: Session, vehicle_id: int, target: str, actor_id: Optional[str] = None,
                       notes: Optional[str] = None) -> FleetVehicle:
    """Manual moves such as available↔maintenance. Reservation-driven moves go through reserve/check-out/check-in."""
    vehicle = get_vehicle(db, vehicle_id)
    if target not in MANUAL_EDGES.get(vehicle.status, ()):
        raise InvalidTransition(vehicle.id, vehicle.status, target, Category.FLEET.value,
                                f"Error: vehicle {vehicle.id} cannot be moved {vehicle.status}→{target} by hand")
    events = EventCollector()
    now = datetime.utcnow()
    fields = {"maintenance_notes": notes}
    if vehicle.status == FleetStatus.MAINTENANCE.value and target == FleetStatus.AVAILABLE.value:
        fields["last_service_date"] = now
    apply_transition(vehicle, target, Category.FLEET, actor_id, fields, now, events)
    vehicle.updated_at = now
    db.commit()
    publish_events(db, events.events)
    return vehicle


def list_fleet(db: Session, status: Optional[str] = None, vehicle_type: Optional[str] = None,
               availability_date: Optional[date] = None) -> dict:
    q = db.query(FleetVehicle)
    if status:
        q = q.filter(FleetVehicle.status == status)
    if vehicle_type:
        q = q.filter(FleetVehicle.vehicle_type == vehicle_type)
    vehicles = q.order_by(FleetVehicle.vehicle_number.asc()).all()

    grouped = {s.value: [] for s in FleetStatus}
    for v in vehicles:
        grouped.setdefault(v.status, []).append(v)

    analysis = None
    if availability_date:
        fleet_size = db.query(func.count(FleetVehicle.id)).filter(
            FleetVehicle.status != FleetStatus.OUT_OF_SERVICE.value
        ).scalar() or 0
        analysis = metrics_service.availability_on(availability_date, fleet_size, committed_reservations(db))

    return {
        "vehicles": vehicles,
        "vehicles_by_status": grouped,
        "fleet_metrics": metrics_service.fleet_metrics(vehicles),
        "availability_analysis": analysis,
    }


# ── Availability ───────────────────────────────────────────────────────────

def _pool(db: Session, vehicle_type: Optional[str] = None, states=(FleetStatus.AVAILABLE.value,)):
    q = db.query(FleetVehicle).filter(FleetVehicle.status.in_(states))
    if vehicle_type:
        q = q.filter(FleetVehicle.vehicle_type == vehicle_type)
    return q.all()


def find_available_vehicles(db: Session, interval: Interval,
                            preferences: Optional[Preferences] = None) -> List[RankedUnit]:
    """Available vehicles (of the preferred type, if any) free over the interval, best first."""
    preferences = preferences or Preferences()
    pool = _pool(db, preferences.vehicle_type)
    assignments = committed_reservations(db, [v.id for v in pool])
    return rank_available(pool, interval, assignments, preferences, ScoringWeights.from_settings(settings))


def suggest_alternatives(db: Session, interval: Interval, preferences: Preferences) -> dict:
    """
    What to offer when nothing matches: other vehicle types free for the same
    dates, and the earliest windows at which a committed vehicle is due back.
    """
    relaxed = rank_available(_pool(db), interval, committed_reservations(db), preferences,
                             ScoringWeights.from_settings(settings))
    in_service = _pool(db, preferences.vehicle_type, IN_SERVICE_STATES)
    dates = suggest_alternative_dates(in_service, interval, committed_reservations(db, [v.id for v in in_service]))
    return {
        "alternative_vehicles": [
            {"vehicle_id": r.unit.id, "vehicle_number": r.unit.vehicle_number,
             "vehicle_type": r.unit.vehicle_type, "make_model": f"{r.unit.make} {r.unit.model}"}
            for r in relaxed[:5]
        ],
        "alternative_dates": [
            {"pickup_date": i.start.isoformat(), "expected_return_date": i.end.isoformat()} for i in dates
        ],
        "waitlist_option": True,
    }


# ── Reservation lifecycle ──────────────────────────────────────────────────

def reserve(db: Session, customer_id: str, repair_order_id: str, interval: Interval,
            preferences: Optional[Preferences] = None, notes: Optional[str] = None,
            actor_id: Optional[str] = None):
    """
    Assign the best free loaner for the interval and hold it.
    Raises ConflictError with suggestions when nothing is free.
    """
    preferences = preferences or Preferences()
    ranked = find_available_vehicles(db, interval, preferences)
    if not ranked:
        logger.warning(f"[RESERVE] No vehicle free for {interval} (type={preferences.vehicle_type})")
        raise ConflictError(suggestions=suggest_alternatives(db, interval, preferences))

    vehicle = ranked[0].unit
    now = datetime.utcnow()
    events = EventCollector()
    apply_transition(vehicle, FleetStatus.RESERVED, Category.FLEET, actor_id, {
        "reservation_start_date": interval.start,
        "reservation_end_date": interval.end,
    }, now, events)
    vehicle.updated_at = now

    reservation = LoanerReservation(
        confirmation_number=f"LC-{uuid.uuid4().int % 10 ** 8:08d}",
        customer_id=str(customer_id),
        repair_order_id=str(repair_order_id),
        vehicle_id=vehicle.id,
        pickup_date=interval.start,
        expected_return_date=interval.end,
        duration_days=metrics_service.ceil_days(interval.start, interval.end),
        vehicle_preferences=json.dumps({
            "vehicle_type": preferences.vehicle_type, "features": list(preferences.features),
        }),
        reservation_notes=notes,
        status=ReservationStatus.CONFIRMED.value,
        status_changed_at=now,
        status_changed_by=actor_id,
        created_at=now,
        updated_at=now,
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.add(reservation)
    db.commit()
    db.refresh(reservation)
    publish_events(db, events.events)
    logger.info(f"[RESERVE] {reservation.confirmation_number}: {vehicle.vehicle_number} for customer "
                f"{customer_id} {interval} (score {ranked[0].score:.1f})")
    return reservation, vehicle


def check_out_vehicle(db: Session, reservation_id: int, inspection: dict, agreement: dict,
                      actor_id: Optional[str] = None) -> dict:
    """Hand over the loaner. Agreement flags must all be set; otherwise nothing changes."""
    reservation = get_reservation(db, reservation_id)
    vehicle = reservation.vehicle
    events = EventCollector()
    now = datetime.utcnow()

    check_out(vehicle, reservation, agreement, actor_id, inspection, now, events)
    reservation.updated_at = vehicle.updated_at = now
    db.commit()
    publish_events(db, events.events)
    logger.info(f"[CHECKOUT] {vehicle.vehicle_number} → customer {reservation.customer_id} "
                f"(reservation {reservation.id}, odometer {inspection.get('odometer_reading')})")

    return {
        "checkout_id": f"CO-{reservation.id}-{now.strftime('%Y%m%d%H%M%S')}",
        "checkout_timestamp": now.isoformat(),
        "reservation": reservation,
        "vehicle": vehicle,
        "vehicle_condition_report": {
            "fuel_level": inspection.get("fuel_level"),
            "odometer": inspection.get("odometer_reading"),
            "cleanliness": inspection.get("cleanliness_rating"),
            "damage_noted": bool(inspection.get("damage_notes")),
            "photos_taken": len(inspection.get("photos") or []),
        },
        "return_by": reservation.expected_return_date.isoformat(),
    }


def check_in_vehicle(db: Session, reservation_id: int, inspection: dict,
                     additional_charges: Optional[dict] = None, return_notes: Optional[str] = None,
                     actor_id: Optional[str] = None) -> dict:
    """Take the loaner back, record usage and damage, and free or ground the vehicle."""
    reservation = get_reservation(db, reservation_id)
    vehicle = reservation.vehicle
    damage = inspection.get("damage_assessment") or {}
    damage_found = bool(damage.get("new_damage_found"))
    charges = metrics_service.total_charges(additional_charges)
    events = EventCollector()
    now = datetime.utcnow()

    usage = check_in(vehicle, reservation, actor_id, inspection["odometer_reading"], damage_found, {
        "return_fuel_level": inspection.get("fuel_level"),
        "return_condition_notes": (f"Interior: {inspection.get('interior_condition')}, "
                                   f"Exterior: {inspection.get('exterior_condition')}"),
        "damage_assessment_notes": damage.get("damage_description"),
        "additional_charges_amount": charges,
        "return_notes": return_notes,
    }, now, events)

    assessment = metrics_service.assess_damage(
        damage_found, damage.get("estimated_repair_cost"), settings.DAMAGE_HIGH_PRIORITY_COST
    )
    if damage_found:
        vehicle.last_damage_date = now
        vehicle.damage_notes = damage.get("damage_description")
        vehicle.damage_reported_by = actor_id
    reservation.updated_at = vehicle.updated_at = now
    db.commit()
    publish_events(db, events.events)
    logger.info(f"[CHECKIN] {vehicle.vehicle_number} back after {usage.rental_duration_days}d / "
                f"{usage.miles_driven} mi → {vehicle.status}")

    return {
        "return_id": f"RI-{reservation.id}-{now.strftime('%Y%m%d%H%M%S')}",
        "return_timestamp": now.isoformat(),
        "usage_summary": usage.to_dict(),
        "condition_assessment": assessment,
        "financial_summary": {
            "additional_charges": additional_charges or {},
            "total_additional": metrics_service.money(charges),
            "payment_due": charges > 0,
        },
        "vehicle_status": vehicle.status,
        "next_steps": (["Schedule maintenance inspection", "Update service records"]
                       if assessment["service_required"] else ["Vehicle ready for next rental"]),
    }


def cancel(db: Session, reservation_id: int, reason: Optional[str] = None,
           actor_id: Optional[str] = None) -> LoanerReservation:
    reservation = get_reservation(db, reservation_id)
    events = EventCollector()
    now = datetime.utcnow()
    cancel_reservation(reservation.vehicle, reservation, actor_id, reason, now, events)
    reservation.updated_at = now
    db.commit()
    publish_events(db, events.events)
    logger.info(f"[RESERVE] Reservation {reservation.id} cancelled")
    return reservation


# ── Assignment views ───────────────────────────────────────────────────────

def active_assignments(db: Session) -> List[LoanerReservation]:
    return (
        db.query(LoanerReservation)
        .filter(LoanerReservation.status == ReservationStatus.ACTIVE.value)
        .order_by(LoanerReservation.checkout_at.desc())
        .all()
    )


def assignment_history(db: Session, limit: int = 50, offset: int = 0,
                       start_date: Optional[date] = None, end_date: Optional[date] = None):
    q = db.query(LoanerReservation).filter(LoanerReservation.status.in_(
        (ReservationStatus.COMPLETED.value, ReservationStatus.CANCELLED.value)
    ))
    if start_date:
        q = q.filter(LoanerReservation.checkout_at >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        q = q.filter(LoanerReservation.checkout_at < datetime.combine(end_date + timedelta(days=1),
                                                                       datetime.min.time()))
    return q.order_by(LoanerReservation.updated_at.desc()).offset(offset).limit(limit).all()


def update_assignment(db: Session, reservation_id: int, expected_return_date: Optional[date] = None,
                      notes: Optional[str] = None, actor_id: Optional[str] = None) -> LoanerReservation:
    """Extend/shorten a live reservation or edit its notes. Status changes use the lifecycle calls."""
    reservation = get_reservation(db, reservation_id)

    if expected_return_date and expected_return_date != reservation.expected_return_date:
        if reservation.status not in BLOCKING_STATES:
            raise InvalidTransition(reservation.id, reservation.status, reservation.status,
                                    Category.RESERVATION.value,
                                    f"Error: reservation {reservation.id} is {reservation.status}, dates are final")
        if expected_return_date <= reservation.pickup_date:
            raise InvalidRequestError("expected_return_date", "Error: expected return must be after pickup")
        new_window = Interval(reservation.pickup_date, expected_return_date)
        others = [r for r in committed_reservations(db, [reservation.vehicle_id]) if r.id != reservation.id]
        clash = conflicts(reservation.vehicle_id, new_window, blocked_intervals(others))
        if clash:
            raise ConflictError(f"Error: new window {new_window} overlaps {', '.join(map(str, clash))}")
        reservation.expected_return_date = expected_return_date
        reservation.duration_days = metrics_service.ceil_days(reservation.pickup_date, expected_return_date)
        if reservation.vehicle.status == FleetStatus.RESERVED.value:
            reservation.vehicle.reservation_end_date = expected_return_date

    if notes:
        reservation.reservation_notes = notes
    reservation.updated_at = datetime.utcnow()
    reservation.updated_by = actor_id
    db.commit()
    db.refresh(reservation)
    return reservation


# ── Utilization ────────────────────────────────────────────────────────────

def utilization(db: Session, period_days: Optional[int] = None, vehicle_id: Optional[int] = None,
                now: Optional[datetime] = None) -> dict:
    period_days = period_days or settings.UTILIZATION_PERIOD_DAYS
    end = now or datetime.utcnow()
    start = end - timedelta(days=period_days)

    vq = db.query(FleetVehicle).filter(FleetVehicle.status != FleetStatus.OUT_OF_SERVICE.value)
    rq = db.query(LoanerReservation).filter(LoanerReservation.status == ReservationStatus.COMPLETED.value)
    if vehicle_id:
        vq = vq.filter(FleetVehicle.id == vehicle_id)
        rq = rq.filter(LoanerReservation.vehicle_id == vehicle_id)

    data = metrics_service.fleet_utilization(vq.all(), rq.all(), start, end)
    data["utilization_period"] = {
        "start_date": start.date().isoformat(),
        "end_date": end.date().isoformat(),
        "days_analyzed": period_days,
    }
    data["recommendations"] = metrics_service.utilization_recommendations(
        data["metrics"],
        metrics_service.UtilizationThresholds(
            settings.LOW_UTILIZATION_PERCENT, settings.HIGH_UTILIZATION_PERCENT,
            settings.MIN_RECOMMENDED_FLEET_SIZE,
        ),
    )
    return data
