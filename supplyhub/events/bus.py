from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sqlalchemy.orm import Session

from supplyhub.db.models.common import utcnow
from supplyhub.events.outbox import OutboxEvent


class EventSink(Protocol):
    def __call__(self, db: Session, topic: str, payload: dict) -> object: ...


def publish(db: Session, topic: str, payload: dict, *, available_at: datetime | None = None) -> OutboxEvent:
    """Publish an event by writing to the outbox and committing.

    Call this after the business transaction has committed; the row is
    delivered asynchronously and retried by the dispatcher.
    """
    evt = OutboxEvent(
        topic=topic,
        payload=payload or {},
        available_at=available_at or utcnow(),
        delivered=False,
        attempt_count=0,
    )
    db.add(evt)
    db.commit()
    db.refresh(evt)
    return evt
