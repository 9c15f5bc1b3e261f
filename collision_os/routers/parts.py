# collision_os/routers/parts.py
"""Parts workflow per repair order: intake, status moves, RO view, search, margins."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from collision_os.database import get_db
from collision_os.schemas.part import BulkUpdateRequest, PartCreate, PartOut, PartStatusUpdate
from collision_os.services import parts_service

router = APIRouter()


@router.post("/parts", response_model=PartOut, status_code=201, summary="Add a part line to a repair order")
def create_part(body: PartCreate, db: Session = Depends(get_db)):
    return parts_service.create_part(db, body.model_dump(exclude={"actor_id"}), body.actor_id)


@router.put("/parts/{part_id}/status", response_model=PartOut, summary="Move a part to a new status")
def update_part_status(part_id: int, body: PartStatusUpdate, db: Session = Depends(get_db)):
    return parts_service.transition_part(
        db, part_id, body.status, body.actor_id,
        vendor_id=body.vendor_id, notes=body.notes, expected_delivery_date=body.expected_delivery_date,
    )


@router.post("/parts/bulk-update", summary="Move several parts at once (all or nothing)")
def bulk_update(body: BulkUpdateRequest, db: Session = Depends(get_db)):
    parts = parts_service.bulk_update(
        db, body.part_ids, body.status, body.actor_id,
        vendor_id=body.vendor_id, notes=body.notes, expected_delivery_date=body.expected_delivery_date,
    )
    return {
        "updated_count": len(parts),
        "status": body.status,
        "parts": [PartOut.model_validate(p).model_dump() for p in parts],
    }


@router.get("/parts/workflow/{repair_order_id}", summary="Parts of one repair order grouped by status")
def repair_order_workflow(repair_order_id: str, db: Session = Depends(get_db)):
    return parts_service.repair_order_workflow(db, repair_order_id)


@router.get("/parts/search", summary="Search parts across repair orders")
def search_parts(
    q: Optional[str] = None,
    status: Optional[str] = None,
    vendor_id: Optional[int] = None,
    priority: Optional[str] = None,
    repair_order_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    data = parts_service.search_parts(
        db, q, status, vendor_id, priority, repair_order_id, date_from, date_to,
        sort_by, sort_order, limit, offset,
    )
    data["parts"] = [PartOut.model_validate(p).model_dump() for p in data["parts"]]
    return data


@router.get("/parts/margin-analysis", summary="Sell vs. cost margins by vendor and status")
def margin_analysis(
    repair_order_id: Optional[str] = None,
    vendor_id: Optional[int] = None,
    date_range: int = Query(30, ge=1, le=3650, description="Days back from today"),
    db: Session = Depends(get_db),
):
    return parts_service.margin_analysis(db, repair_order_id, vendor_id, date_range)
