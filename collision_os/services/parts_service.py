# collision_os/services/parts_service.py
"""
Parts workflow per repair order: intake, status moves (single and bulk),
RO workflow buckets, search and margin reporting. Vendors live here too.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from collision_os.config import settings
from collision_os.exceptions import BulkPartialRejection, DuplicateError, NotFoundError
from collision_os.models.part import Part
from collision_os.models.vendor import Vendor
from collision_os.services import metrics_service
from collision_os.services.notification_service import EventCollector, publish_events
from collision_os.services.status_graph import Category, PartStatus
from collision_os.services.transition_validator import apply_transition, bulk_apply_transition
from collision_os.utils.logger import get_logger

logger = get_logger(__name__)

SORT_COLUMNS = {
    "created_at": Part.created_at,
    "updated_at": Part.updated_at,
    "part_number": Part.part_number,
    "unit_cost": Part.unit_cost,
    "status": Part.status,
}


def get_part(db: Session, part_id: int) -> Part:
    part = db.query(Part).filter(Part.id == part_id).first()
    if not part:
        raise NotFoundError("part", part_id)
    return part


def _check_vendor(db: Session, vendor_id: Optional[int]) -> None:
    if vendor_id is not None and not db.query(Vendor).filter(Vendor.id == vendor_id).first():
        raise NotFoundError("vendor", vendor_id)


def create_part(db: Session, data: dict, actor_id: Optional[str] = None) -> Part:
    """New part lines always start as needed."""
    _check_vendor(db, data.get("vendor_id"))
    now = datetime.utcnow()
    part = Part(
        repair_order_id=str(data["repair_order_id"]),
        part_number=data["part_number"],
        part_description=data.get("part_description"),
        quantity=data.get("quantity") or 1,
        unit_cost=data.get("unit_cost") or 0,
        vendor_id=data.get("vendor_id"),
        priority=data.get("priority") or "normal",
        expected_delivery_date=data.get("expected_delivery_date"),
        sourcing_notes=data.get("sourcing_notes"),
        status=PartStatus.NEEDED.value,
        status_changed_at=now,
        status_changed_by=actor_id,
        created_at=now,
        updated_at=now,
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.add(part)
    db.commit()
    db.refresh(part)
    logger.info(f"[PARTS] RO {part.repair_order_id}: added {part.part_number} x{part.quantity}")
    return part


def _workflow_fields(vendor_id=None, notes=None, expected_delivery_date=None) -> dict:
    return {
        "vendor_id": vendor_id,
        "sourcing_notes": notes,
        "expected_delivery_date": expected_delivery_date,
    }


def transition_part(db: Session, part_id: int, target: str, actor_id: Optional[str] = None,
                    vendor_id: Optional[int] = None, notes: Optional[str] = None,
                    expected_delivery_date=None) -> Part:
    part = get_part(db, part_id)
    _check_vendor(db, vendor_id)
    events = EventCollector()
    now = datetime.utcnow()
    apply_transition(part, target, Category.PART, actor_id,
                     _workflow_fields(vendor_id, notes, expected_delivery_date), now, events)
    part.updated_at = now
    db.commit()
    db.refresh(part)
    publish_events(db, events.events)
    logger.info(f"[PARTS] {part.part_number} (part {part.id}) → {part.status}")
    return part


def bulk_update(db: Session, part_ids: Iterable[int], target: str, actor_id: Optional[str] = None,
                vendor_id: Optional[int] = None, notes: Optional[str] = None,
                expected_delivery_date=None) -> List[Part]:
    """
    Move several parts to the same status in one commit.
    Either every part moves or none does; the rejection names each offending part.
    """
    ids = list(dict.fromkeys(part_ids))
    parts = db.query(Part).filter(Part.id.in_(ids)).all()
    found = {p.id for p in parts}
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFoundError("part", missing[0] if len(missing) == 1 else missing)
    _check_vendor(db, vendor_id)

    events = EventCollector()
    now = datetime.utcnow()
    outcome = bulk_apply_transition(parts, target, Category.PART, actor_id,
                                    _workflow_fields(vendor_id, notes, expected_delivery_date), now, events)
    if not outcome.ok:
        numbers = {p.id: p.part_number for p in parts}
        rejected = [dict(r.to_dict(), part_number=numbers.get(r.id)) for r in outcome.rejected]
        logger.warning(f"[PARTS] Bulk → {target} rejected for part(s) {[r['id'] for r in rejected]}")
        raise BulkPartialRejection(rejected)

    for part in outcome.applied:
        part.updated_at = now
    db.commit()
    publish_events(db, events.events)
    logger.info(f"[PARTS] Bulk → {target}: {len(outcome.applied)} part(s)")
    return outcome.applied


def repair_order_workflow(db: Session, repair_order_id: str, now: Optional[datetime] = None) -> dict:
    parts = (
        db.query(Part)
        .filter(Part.repair_order_id == str(repair_order_id))
        .order_by(Part.created_at.asc())
        .all()
    )
    data = metrics_service.parts_workflow(parts, now or datetime.utcnow(), settings.CRITICAL_DELAY_DAYS)
    data["repair_order_id"] = str(repair_order_id)
    data["margin_analysis"] = metrics_service.analyze_margins(parts, vendor_only=True)["overall"]
    return data


def search_parts(db: Session, q: Optional[str] = None, status: Optional[str] = None,
                 vendor_id: Optional[int] = None, priority: Optional[str] = None,
                 repair_order_id: Optional[str] = None, date_from=None, date_to=None,
                 sort_by: str = "created_at", sort_order: str = "desc",
                 limit: int = 50, offset: int = 0) -> dict:
    query = db.query(Part)
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Part.part_number.ilike(like), Part.part_description.ilike(like)))
    if status:
        query = query.filter(Part.status == status)
    if vendor_id:
        query = query.filter(Part.vendor_id == vendor_id)
    if priority:
        query = query.filter(Part.priority == priority)
    if repair_order_id:
        query = query.filter(Part.repair_order_id == str(repair_order_id))
    if date_from:
        query = query.filter(Part.created_at >= datetime.combine(date_from, datetime.min.time()))
    if date_to:
        query = query.filter(Part.created_at < datetime.combine(date_to + timedelta(days=1), datetime.min.time()))

    matching = query.all()
    column = SORT_COLUMNS.get(sort_by, Part.created_at)
    ordered = query.order_by(column.asc() if sort_order == "asc" else column.desc(), Part.id.asc())
    page = ordered.offset(offset).limit(limit).all()

    total_value = sum(
        (metrics_service.to_decimal(p.unit_cost) * metrics_service.to_decimal(p.quantity) for p in matching),
        metrics_service.ZERO,
    )
    return {
        "parts": page,
        "pagination": {
            "total": len(matching),
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(page) < len(matching),
        },
        "summary": {
            "total_value": metrics_service.money(total_value),
            "status_breakdown": metrics_service.status_breakdown(matching),
        },
    }


def margin_analysis(db: Session, repair_order_id: Optional[str] = None, vendor_id: Optional[int] = None,
                    date_range_days: int = 30, now: Optional[datetime] = None) -> dict:
    since = (now or datetime.utcnow()) - timedelta(days=date_range_days)
    query = db.query(Part).filter(Part.created_at >= since)
    if repair_order_id:
        query = query.filter(Part.repair_order_id == str(repair_order_id))
    if vendor_id:
        query = query.filter(Part.vendor_id == vendor_id)
    data = metrics_service.analyze_margins(query.all())
    data["date_range_days"] = date_range_days
    return data


# ── Vendors ────────────────────────────────────────────────────────────────

def create_vendor(db: Session, data: dict) -> Vendor:
    code = data["vendor_code"].strip().upper()
    if db.query(Vendor).filter(Vendor.vendor_code == code).first():
        raise DuplicateError("vendor_code", code)
    vendor = Vendor(
        name=data["name"],
        vendor_code=code,
        discount_percentage=data.get("discount_percentage") or 0,
        markup_percentage=data.get("markup_percentage") or 0,
        typical_delivery_days=data.get("typical_delivery_days") or 3,
        created_at=datetime.utcnow(),
    )
    db.add(vendor)
    db.commit()
    db.refresh(vendor)
    logger.info(f"[PARTS] Vendor {vendor.vendor_code} added ({vendor.discount_percentage}% discount)")
    return vendor


def list_vendors(db: Session) -> List[Vendor]:
    return db.query(Vendor).order_by(Vendor.name.asc()).all()
