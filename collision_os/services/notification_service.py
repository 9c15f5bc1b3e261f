# collision_os/services/notification_service.py
"""
Shared status-event publisher.
Used by loaner_service and parts_service after a workflow change is committed.
Extend here to push to websockets, SMS, email, etc.
"""

from typing import Iterable, List

from sqlalchemy.orm import Session
from collision_os.models.status_event import StatusEvent
from collision_os.services.transition_validator import TransitionEvent
from collision_os.utils.logger import get_logger

logger = get_logger(__name__)


class EventCollector:
    """Buffers TransitionEvents emitted during one operation until it commits."""

    def __init__(self):
        self.events: List[TransitionEvent] = []

    def __call__(self, event: TransitionEvent) -> None:
        self.events.append(event)

    def __len__(self):
        return len(self.events)


def publish_events(db: Session, events: Iterable[TransitionEvent]) -> int:
    """Persist and log transition events. Always commits immediately."""
    count = 0
    for event in events:
        db.add(StatusEvent(
            unit_type=event.unit_type,
            unit_id=str(event.unit_id),
            previous_status=event.previous_status,
            new_status=event.new_status,
            actor_id=event.actor_id,
            occurred_at=event.timestamp,
        ))
        logger.info(f"[EVENT][{event.unit_type.upper()}] {event.unit_id}: "
                    f"{event.previous_status}→{event.new_status} by {event.actor_id}")
        count += 1
    if count:
        db.commit()
    return count
