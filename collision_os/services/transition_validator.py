# collision_os/services/transition_validator.py
"""
Status Transition Validator.

Every status change of a loaner vehicle, part line or reservation goes through
apply_transition(), which checks the category's adjacency table and then sets
the status, the change stamp and the category-specific snapshot fields in one
step. Units are plain objects mutated in place (ORM rows in the app, simple
namespaces in tests); nothing here touches a session or commits.

Each successful transition yields a TransitionEvent handed to the optional
`emit` callback so the caller can persist or broadcast it after commit.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from collision_os.exceptions import InvalidTransition, PreconditionError
from collision_os.services.metrics_service import UsageMetrics, calculate_usage
from collision_os.services.status_graph import (
    Category,
    FleetStatus,
    ReservationStatus,
    get_graph,
    status_value,
)
from collision_os.utils.logger import get_logger

logger = get_logger(__name__)

Emit = Optional[Callable[["TransitionEvent"], None]]

# (actor field, timestamp field) recorded when a unit enters the status
SNAPSHOT_FIELDS: Dict[str, Dict[str, Tuple[str, str]]] = {
    Category.PART.value: {
        "sourcing": ("sourced_by", "sourcing_date"),
        "ordered": ("ordered_by", "order_date"),
        "received": ("received_by", "received_date"),
        "installed": ("installed_by", "installation_date"),
        "returned": ("returned_by", "return_date"),
    },
    Category.RESERVATION.value: {
        "active": ("checkout_inspected_by", "checkout_at"),
        "completed": ("return_inspected_by", "return_at"),
        "cancelled": ("cancelled_by", "cancelled_at"),
    },
    Category.FLEET.value: {},
}

CHECKOUT_PRECONDITIONS = ("terms_accepted", "insurance_verified", "license_checked")


@dataclass(frozen=True)
class TransitionEvent:
    unit_type: str
    unit_id: object
    previous_status: str
    new_status: str
    actor_id: Optional[str]
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "unit_type": self.unit_type,
            "unit_id": self.unit_id,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "actor_id": self.actor_id,
            "timestamp": self.timestamp.isoformat(),
        }


def can_transition(current, target, category) -> bool:
    return get_graph(category).can_transition(current, target)


def validate_transition(unit, target, category) -> bool:
    return can_transition(unit.status, target, category)


def apply_transition(unit, target, category, actor_id: Optional[str] = None,
                     fields: Optional[Mapping] = None, now: Optional[datetime] = None,
                     emit: Emit = None):
    """
    Move `unit` to `target` or raise InvalidTransition without touching it.
    `fields` are extra attributes written together with the status (None values skipped).
    """
    graph = get_graph(category)
    current = status_value(unit.status)
    target = status_value(target)

    if not graph.can_transition(current, target):
        raise InvalidTransition(unit.id, current, target, graph.category)

    now = now or datetime.utcnow()
    for name, value in (fields or {}).items():
        if value is not None:
            setattr(unit, name, value)

    unit.status = target
    unit.status_changed_at = now
    unit.status_changed_by = actor_id
    unit.updated_by = actor_id

    snapshot = SNAPSHOT_FIELDS.get(graph.category, {}).get(target)
    if snapshot:
        actor_field, date_field = snapshot
        setattr(unit, actor_field, actor_id)
        setattr(unit, date_field, now)

    logger.debug(f"{graph.category} {unit.id}: {current}→{target} by {actor_id}")
    if emit is not None:
        emit(TransitionEvent(graph.category, unit.id, current, target, actor_id, now))
    return unit


@dataclass(frozen=True)
class Rejection:
    id: object
    from_status: str
    to_status: str

    def to_dict(self) -> dict:
        return {"id": self.id, "from": self.from_status, "to": self.to_status}


@dataclass
class BulkOutcome:
    applied: list = field(default_factory=list)
    rejected: List[Rejection] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejected


def bulk_apply_transition(units: Iterable, target, category, actor_id: Optional[str] = None,
                          fields: Optional[Mapping] = None, now: Optional[datetime] = None,
                          emit: Emit = None) -> BulkOutcome:
    """
    All-or-nothing: every unit is checked against its own current status first;
    if any is illegal nothing is mutated and the offenders are returned.
    """
    graph = get_graph(category)
    target = status_value(target)

    unique, seen = [], set()
    for unit in units:
        if unit.id in seen:
            continue
        seen.add(unit.id)
        unique.append(unit)

    rejected = [
        Rejection(u.id, status_value(u.status), target)
        for u in unique
        if not graph.can_transition(u.status, target)
    ]
    if rejected:
        return BulkOutcome(rejected=rejected)

    now = now or datetime.utcnow()
    applied = [apply_transition(u, target, category, actor_id, fields, now, emit) for u in unique]
    return BulkOutcome(applied=applied)


def _flag(agreement, name) -> bool:
    if isinstance(agreement, Mapping):
        return bool(agreement.get(name))
    return bool(getattr(agreement, name, False))


def missing_preconditions(agreement, required: Iterable[str] = CHECKOUT_PRECONDITIONS) -> List[str]:
    return [name for name in required if not _flag(agreement, name)]


def _require(unit, target, category):
    if not can_transition(unit.status, target, category):
        raise InvalidTransition(unit.id, status_value(unit.status), status_value(target),
                                status_value(category))


def check_out(vehicle, reservation, agreement, actor_id: Optional[str],
              inspection: Optional[Mapping] = None, now: Optional[datetime] = None,
              emit: Emit = None):
    """
    Hand a reserved loaner to the customer: reservation confirmed→active and
    vehicle reserved→rented. Both edges and all agreement flags are checked
    before anything is written.
    """
    _require(reservation, ReservationStatus.ACTIVE, Category.RESERVATION)
    _require(vehicle, FleetStatus.RENTED, Category.FLEET)

    missing = missing_preconditions(agreement)
    if missing:
        raise PreconditionError(missing, f"Error: all customer agreement requirements must be completed "
                                         f"(missing: {', '.join(missing)})")

    inspection = dict(inspection or {})
    now = now or datetime.utcnow()
    apply_transition(reservation, ReservationStatus.ACTIVE, Category.RESERVATION, actor_id, {
        "checkout_odometer": inspection.get("odometer_reading"),
        "checkout_fuel_level": inspection.get("fuel_level"),
        "checkout_condition_notes": inspection.get("damage_notes"),
        "checkout_notes": inspection.get("checkout_notes"),
        "customer_signature": _signature(agreement),
    }, now, emit)
    apply_transition(vehicle, FleetStatus.RENTED, Category.FLEET, actor_id, {
        "current_renter_id": reservation.customer_id,
        "current_rental_start": now,
        "current_odometer": inspection.get("odometer_reading"),
    }, now, emit)
    return vehicle, reservation


def _signature(agreement):
    if isinstance(agreement, Mapping):
        return agreement.get("signature")
    return getattr(agreement, "signature", None)


def check_in(vehicle, reservation, actor_id: Optional[str], return_odometer: int,
             damage_found: bool = False, inspection: Optional[Mapping] = None,
             now: Optional[datetime] = None, emit: Emit = None) -> UsageMetrics:
    """
    Close an active rental: reservation active→completed, vehicle rented→available
    (or →maintenance when new damage was found), usage counters accumulated.
    """
    vehicle_target = FleetStatus.MAINTENANCE if damage_found else FleetStatus.AVAILABLE
    _require(reservation, ReservationStatus.COMPLETED, Category.RESERVATION)
    _require(vehicle, vehicle_target, Category.FLEET)

    now = now or datetime.utcnow()
    usage = calculate_usage(reservation.checkout_at, now, reservation.checkout_odometer, return_odometer)

    inspection = dict(inspection or {})
    apply_transition(reservation, ReservationStatus.COMPLETED, Category.RESERVATION, actor_id, {
        "return_odometer": return_odometer,
        "miles_driven": usage.miles_driven,
        **inspection,
    }, now, emit)
    apply_transition(vehicle, vehicle_target, Category.FLEET, actor_id, {
        "current_odometer": return_odometer,
    }, now, emit)

    vehicle.current_renter_id = None
    vehicle.current_rental_start = None
    vehicle.total_miles = (vehicle.total_miles or 0) + usage.miles_driven
    vehicle.total_rentals = (vehicle.total_rentals or 0) + 1
    return usage


def cancel_reservation(vehicle, reservation, actor_id: Optional[str], reason: Optional[str] = None,
                       now: Optional[datetime] = None, emit: Emit = None):
    """Drop a confirmed reservation and release its vehicle back to the pool."""
    _require(reservation, ReservationStatus.CANCELLED, Category.RESERVATION)
    releases_vehicle = status_value(vehicle.status) == FleetStatus.RESERVED.value
    if releases_vehicle:
        _require(vehicle, FleetStatus.AVAILABLE, Category.FLEET)

    now = now or datetime.utcnow()
    apply_transition(reservation, ReservationStatus.CANCELLED, Category.RESERVATION, actor_id,
                     {"cancellation_reason": reason}, now, emit)
    if releases_vehicle:
        apply_transition(vehicle, FleetStatus.AVAILABLE, Category.FLEET, actor_id, {}, now, emit)
        vehicle.reservation_start_date = None
        vehicle.reservation_end_date = None
    return vehicle, reservation
