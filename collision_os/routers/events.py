# collision_os/routers/events.py
"""
Status event log viewer.
GET /events: every recorded status change, newest first, with optional filters.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from collision_os.database import get_db
from collision_os.models.status_event import StatusEvent
from collision_os.schemas.status_event import StatusEventOut

router = APIRouter()


@router.get("/events", response_model=list[StatusEventOut], summary="List status change events")
def list_events(
    unit_type: Optional[str] = Query(None, description="fleet | part | reservation"),
    unit_id: Optional[str] = None,
    from_time: Optional[datetime] = None,
    to_time: Optional[datetime] = None,
    limit: int = Query(100, le=1000),
    db: Session = Depends(get_db),
):
    q = db.query(StatusEvent)
    if unit_type:
        q = q.filter(StatusEvent.unit_type == unit_type)
    if unit_id:
        q = q.filter(StatusEvent.unit_id == unit_id)
    if from_time:
        q = q.filter(StatusEvent.occurred_at >= from_time)
    if to_time:
        q = q.filter(StatusEvent.occurred_at <= to_time)
    return q.order_by(StatusEvent.occurred_at.desc(), StatusEvent.id.desc()).limit(limit).all()
