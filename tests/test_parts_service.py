"""Parts workflow and vendor operations against an in-memory SQLite session."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from collision_os.exceptions import BulkPartialRejection, DuplicateError, InvalidTransition, NotFoundError
from collision_os.models.status_event import StatusEvent
from collision_os.services import parts_service


def new_part(db, number="PN-1", ro="RO-100", unit_cost=100, quantity=1, vendor_id=None):
    return parts_service.create_part(db, {
        "repair_order_id": ro, "part_number": number, "part_description": "Front bumper cover",
        "quantity": quantity, "unit_cost": unit_cost, "vendor_id": vendor_id,
    }, actor_id="estimator")


@pytest.fixture
def vendor(db):
    return parts_service.create_vendor(db, {"name": "Acme Parts", "vendor_code": "acme", "discount_percentage": 20})


class TestParts:
    def test_new_part_is_needed(self, db):
        part = new_part(db)
        assert part.status == "needed"
        assert part.created_by == "estimator"

    def test_unknown_vendor(self, db):
        with pytest.raises(NotFoundError):
            new_part(db, vendor_id=42)

    def test_single_transition_records_snapshot(self, db, vendor):
        part = new_part(db)
        parts_service.transition_part(db, part.id, "ordered", "buyer", vendor_id=vendor.id, notes="2-day ship")
        assert part.status == "ordered"
        assert part.ordered_by == "buyer"
        assert part.order_date is not None
        assert part.vendor_id == vendor.id
        assert part.sourcing_notes == "2-day ship"

    def test_single_invalid_transition(self, db):
        part = new_part(db)
        with pytest.raises(InvalidTransition):
            parts_service.transition_part(db, part.id, "installed", "tech")
        db.refresh(part)
        assert part.status == "needed"

    def test_bulk_all_or_nothing(self, db):
        received = new_part(db, "PN-1")
        parts_service.transition_part(db, received.id, "ordered", "buyer")
        parts_service.transition_part(db, received.id, "received", "clerk")
        ordered = new_part(db, "PN-2")
        parts_service.transition_part(db, ordered.id, "ordered", "buyer")
        events_before = db.query(StatusEvent).count()

        with pytest.raises(BulkPartialRejection) as exc:
            parts_service.bulk_update(db, [received.id, ordered.id], "installed", "tech")
        assert exc.value.rejected == [{"id": ordered.id, "from": "ordered", "to": "installed", "part_number": "PN-2"}]
        db.refresh(received)
        db.refresh(ordered)
        assert received.status == "received"
        assert ordered.status == "ordered"
        assert db.query(StatusEvent).count() == events_before

    def test_bulk_applies_and_publishes(self, db):
        parts = [new_part(db, f"PN-{i}") for i in range(3)]
        updated = parts_service.bulk_update(db, [p.id for p in parts] + [parts[0].id], "sourcing", "buyer")
        assert len(updated) == 3
        assert {p.status for p in parts} == {"sourcing"}
        assert db.query(StatusEvent).filter(StatusEvent.new_status == "sourcing").count() == 3

    def test_bulk_missing_part(self, db):
        part = new_part(db)
        with pytest.raises(NotFoundError):
            parts_service.bulk_update(db, [part.id, 999], "sourcing", "buyer")

    def test_repair_order_workflow(self, db, vendor):
        a = new_part(db, "PN-1", vendor_id=vendor.id, unit_cost=200)
        new_part(db, "PN-2", unit_cost=50, quantity=2)
        new_part(db, "PN-3", ro="RO-OTHER")
        parts_service.transition_part(db, a.id, "ordered", "buyer")
        data = parts_service.repair_order_workflow(db, "RO-100")
        assert data["workflow_metrics"]["total_parts"] == 2
        assert data["workflow_metrics"]["total_value"] == 300.0
        assert data["workflow_metrics"]["parts_on_order"] == 1
        assert data["margin_analysis"]["total_margin"] == 40.0

    def test_search(self, db):
        new_part(db, "BMP-100")
        new_part(db, "HL-200", unit_cost=80)
        new_part(db, "BMP-300", ro="RO-7")
        data = parts_service.search_parts(db, q="bmp", sort_by="part_number", sort_order="asc", limit=1)
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["has_more"] is True
        assert data["parts"][0].part_number == "BMP-100"
        assert data["summary"]["status_breakdown"]["needed"] == 2
        assert data["summary"]["total_value"] == 200.0

    def test_margin_analysis(self, db, vendor):
        new_part(db, "PN-1", vendor_id=vendor.id, unit_cost=100)
        data = parts_service.margin_analysis(db, vendor_id=vendor.id)
        assert data["overall"]["margin_percentage"] == 20.0
        assert data["by_vendor"]["Acme Parts"]["total_cost"] == 80.0


class TestVendors:
    def test_duplicate_code(self, db, vendor):
        with pytest.raises(DuplicateError):
            parts_service.create_vendor(db, {"name": "Other", "vendor_code": "ACME"})

    def test_list(self, db, vendor):
        parts_service.create_vendor(db, {"name": "Zenith", "vendor_code": "ZEN"})
        assert [v.vendor_code for v in parts_service.list_vendors(db)] == ["ACME", "ZEN"]
