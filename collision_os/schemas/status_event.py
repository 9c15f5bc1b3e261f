# collision_os/schemas/status_event.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class StatusEventOut(BaseModel):
    id: int
    unit_type: str
    unit_id: str
    previous_status: str
    new_status: str
    actor_id: Optional[str]
    occurred_at: datetime

    class Config:
        from_attributes = True
