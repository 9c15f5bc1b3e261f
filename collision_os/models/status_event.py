# collision_os/models/status_event.py
"""
Status change log, one row per successful transition of any unit.
Written by notification_service after the business change is committed.
"""

from sqlalchemy import Column, Integer, String, DateTime
from collision_os.database import Base


class StatusEvent(Base):
    __tablename__ = "status_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    unit_type = Column(String(20), nullable=False, index=True)    # fleet | part | reservation
    unit_id = Column(String(50), nullable=False, index=True)
    previous_status = Column(String(30), nullable=False)
    new_status = Column(String(30), nullable=False)
    actor_id = Column(String(100))
    occurred_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<StatusEvent {self.unit_type}:{self.unit_id} {self.previous_status}→{self.new_status}>"
