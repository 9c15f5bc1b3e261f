"""Unit tests for single, bulk and checkout/check-in transitions."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import copy
import random
import pytest
from datetime import datetime
from collision_os.exceptions import InvalidTransition, PreconditionError
from collision_os.services.status_graph import PART_GRAPH, FLEET_GRAPH
from collision_os.services.transition_validator import (
    apply_transition,
    bulk_apply_transition,
    can_transition,
    cancel_reservation,
    check_in,
    check_out,
    missing_preconditions,
)
from conftest import make_part, make_reservation, make_unit

NOW = datetime(2024, 9, 16, 9, 0)
AGREEMENT = {"terms_accepted": True, "insurance_verified": True, "license_checked": True, "signature": "J. Doe"}


class TestApplyTransition:
    def test_valid_move_sets_stamp_and_snapshot(self):
        part = make_part(1, status="ordered")
        apply_transition(part, "received", "part", actor_id="tech-7", now=NOW)
        assert part.status == "received"
        assert part.status_changed_at == NOW
        assert part.status_changed_by == "tech-7"
        assert part.received_by == "tech-7"
        assert part.received_date == NOW

    def test_invalid_move_raises_and_leaves_unit_untouched(self):
        part = make_part(1, status="ordered")
        before = copy.deepcopy(vars(part))
        with pytest.raises(InvalidTransition) as exc:
            apply_transition(part, "installed", "part", actor_id="tech-7", fields={"sourcing_notes": "x"})
        assert vars(part) == before
        assert exc.value.to_dict()["from"] == "ordered"
        assert exc.value.to_dict()["to"] == "installed"

    def test_extra_fields_written_and_none_skipped(self):
        part = make_part(1, status="needed")
        part.sourcing_notes = "keep"
        apply_transition(part, "ordered", "part", fields={"vendor_id": 4, "sourcing_notes": None}, now=NOW)
        assert part.vendor_id == 4
        assert part.sourcing_notes == "keep"
        assert part.order_date == NOW

    def test_emits_event(self):
        events = []
        unit = make_unit(3)
        apply_transition(unit, "maintenance", "fleet", actor_id="mgr", now=NOW, emit=events.append)
        assert len(events) == 1
        assert events[0].to_dict() == {
            "unit_type": "fleet", "unit_id": 3, "previous_status": "available",
            "new_status": "maintenance", "actor_id": "mgr", "timestamp": NOW.isoformat(),
        }

    def test_closure_random_walk(self):
        rng = random.Random(3)
        targets = sorted(PART_GRAPH.nodes | {"lost", "scrapped"})
        part = make_part(1)
        for _ in range(300):
            target = rng.choice(targets)
            try:
                apply_transition(part, target, "part")
            except InvalidTransition:
                pass
            assert part.status in PART_GRAPH.nodes

    def test_can_transition(self):
        assert can_transition("available", "reserved", "fleet")
        assert not can_transition("out_of_service", "available", "fleet")


class TestBulkTransition:
    def test_ordered_to_installed_rejected_naming_unit(self):
        parts = [make_part(1, status="received"), make_part(2, status="ordered")]
        outcome = bulk_apply_transition(parts, "installed", "part", actor_id="tech")
        assert not outcome.ok
        assert [r.to_dict() for r in outcome.rejected] == [{"id": 2, "from": "ordered", "to": "installed"}]

    def test_rejection_mutates_nothing(self):
        parts = [make_part(i, status="received") for i in range(1, 5)] + [make_part(9, status="cancelled")]
        before = [copy.deepcopy(vars(p)) for p in parts]
        events = []
        outcome = bulk_apply_transition(parts, "installed", "part", actor_id="tech", emit=events.append)
        assert outcome.applied == []
        assert [vars(p) for p in parts] == before
        assert events == []

    def test_all_valid_applied_with_shared_timestamp(self):
        parts = [make_part(1, status="needed"), make_part(2, status="sourcing")]
        outcome = bulk_apply_transition(parts, "ordered", "part", actor_id="buyer", now=NOW)
        assert outcome.ok
        assert {p.status for p in parts} == {"ordered"}
        assert {p.order_date for p in parts} == {NOW}

    def test_duplicates_applied_once(self):
        part = make_part(1, status="needed")
        events = []
        outcome = bulk_apply_transition([part, part], "sourcing", "part", emit=events.append)
        assert len(outcome.applied) == 1
        assert len(events) == 1


class TestCheckout:
    def test_missing_insurance_is_precondition_error_without_side_effects(self):
        vehicle = make_unit(1, status="reserved")
        reservation = make_reservation()
        before_vehicle, before_res = copy.deepcopy(vars(vehicle)), copy.deepcopy(vars(reservation))
        agreement = dict(AGREEMENT, insurance_verified=False)
        with pytest.raises(PreconditionError) as exc:
            check_out(vehicle, reservation, agreement, "desk-1", {"odometer_reading": 10000}, NOW)
        assert exc.value.missing == ["insurance_verified"]
        assert vehicle.status == "reserved"
        assert vars(vehicle) == before_vehicle
        assert vars(reservation) == before_res

    def test_checkout_from_available_is_invalid_transition(self):
        vehicle = make_unit(1, status="available")
        with pytest.raises(InvalidTransition):
            check_out(vehicle, make_reservation(), AGREEMENT, "desk-1")

    def test_checkout_moves_both(self):
        vehicle = make_unit(1, status="reserved")
        reservation = make_reservation()
        events = []
        check_out(vehicle, reservation, AGREEMENT, "desk-1",
                  {"odometer_reading": 10000, "fuel_level": 90}, NOW, events.append)
        assert reservation.status == "active"
        assert reservation.checkout_at == NOW
        assert reservation.checkout_inspected_by == "desk-1"
        assert reservation.checkout_odometer == 10000
        assert reservation.customer_signature == "J. Doe"
        assert vehicle.status == "rented"
        assert vehicle.current_renter_id == "CUST-1"
        assert [(e.unit_type, e.new_status) for e in events] == [("reservation", "active"), ("fleet", "rented")]

    def test_missing_preconditions_reads_objects(self):
        class Agreement:
            terms_accepted = True
            insurance_verified = True
        assert missing_preconditions(Agreement()) == ["license_checked"]


class TestCheckin:
    def _rented(self, total_miles=1000):
        vehicle = make_unit(1, status="rented", total_miles=total_miles)
        vehicle.total_rentals = 2
        vehicle.current_renter_id = "CUST-1"
        vehicle.current_rental_start = NOW
        reservation = make_reservation(status="active", checkout_at=NOW, checkout_odometer=10000)
        return vehicle, reservation

    def test_usage_and_counters(self):
        vehicle, reservation = self._rented()
        returned = datetime(2024, 9, 19, 9, 0)
        usage = check_in(vehicle, reservation, "desk-2", 10245, now=returned)
        assert usage.miles_driven == 245
        assert usage.rental_duration_days == 3
        assert usage.average_miles_per_day == 81.7
        assert reservation.status == "completed"
        assert reservation.return_at == returned
        assert reservation.miles_driven == 245
        assert vehicle.status == "available"
        assert vehicle.total_miles == 1245
        assert vehicle.total_rentals == 3
        assert vehicle.current_renter_id is None

    def test_damage_sends_vehicle_to_maintenance(self):
        vehicle, reservation = self._rented()
        check_in(vehicle, reservation, "desk-2", 10100, damage_found=True, now=datetime(2024, 9, 17))
        assert vehicle.status == "maintenance"
        assert FLEET_GRAPH.can_transition(vehicle.status, "available")

    def test_checkin_of_confirmed_reservation_rejected(self):
        vehicle = make_unit(1, status="reserved")
        with pytest.raises(InvalidTransition):
            check_in(vehicle, make_reservation(), "desk-2", 10100)


class TestCancel:
    def test_cancel_releases_reserved_vehicle(self):
        vehicle = make_unit(1, status="reserved")
        vehicle.reservation_start_date = NOW.date()
        reservation = make_reservation()
        cancel_reservation(vehicle, reservation, "desk-1", "repair delayed", NOW)
        assert reservation.status == "cancelled"
        assert reservation.cancellation_reason == "repair delayed"
        assert reservation.cancelled_at == NOW
        assert vehicle.status == "available"
        assert vehicle.reservation_start_date is None

    def test_active_reservation_cannot_be_cancelled(self):
        vehicle = make_unit(1, status="rented")
        with pytest.raises(InvalidTransition):
            cancel_reservation(vehicle, make_reservation(status="active"), "desk-1")
