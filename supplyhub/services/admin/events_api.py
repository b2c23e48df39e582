from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from supplyhub.core.security import Principal, require_roles
from supplyhub.db.session import get_db
from supplyhub.events import bus
from supplyhub.events.outbox import OutboxEvent
from supplyhub.events.subscriptions import EventSubscription


router = APIRouter(prefix="/admin/events", tags=["admin_events"])

require_admin = require_roles(["ADMIN"])

# Domain topics are only ever published by the services that own them.
TEST_TOPIC_PREFIX = "test."


def _sub_out(s: EventSubscription) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "topic_pattern": s.topic_pattern,
        "target_url": s.target_url,
        "headers": s.headers or {},
        "is_active": bool(s.is_active),
        "failure_count": int(s.failure_count or 0),
        "last_error": s.last_error,
        "last_delivered_at": s.last_delivered_at.isoformat() if s.last_delivered_at else None,
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


@router.get("/subscriptions")
def list_subscriptions(db: Session = Depends(get_db), principal: Principal = Depends(require_admin)):
    subs = db.query(EventSubscription).order_by(EventSubscription.created_at.desc()).all()
    return [_sub_out(s) for s in subs]


@router.post("/subscriptions")
def create_subscription(payload: dict, db: Session = Depends(get_db), principal: Principal = Depends(require_admin)):
    """Register a webhook, e.g. the notification service on ``order.``."""
    name = (payload or {}).get("name") or "subscription"
    topic_pattern = (payload or {}).get("topic_pattern")
    target_url = (payload or {}).get("target_url")
    headers = (payload or {}).get("headers") or {}

    if not topic_pattern or not target_url:
        raise HTTPException(422, "topic_pattern and target_url are required")

    s = EventSubscription(
        name=name,
        topic_pattern=str(topic_pattern),
        target_url=str(target_url),
        headers=headers,
        is_active=bool((payload or {}).get("is_active", True)),
        last_error=None,
        failure_count=0,
        last_delivered_at=None,
    )
    db.add(s)
    db.commit()
    db.refresh(s)
    return {"ok": True, "id": s.id}


@router.post("/subscriptions/{sub_id}/toggle")
def toggle_subscription(sub_id: str, payload: dict | None = None, db: Session = Depends(get_db), principal: Principal = Depends(require_admin)):
    s = db.query(EventSubscription).filter(EventSubscription.id == sub_id).first()
    if not s:
        raise HTTPException(404, "Unknown subscription")
    s.is_active = bool((payload or {}).get("is_active", not bool(s.is_active)))
    db.commit()
    return {"ok": True, "id": s.id, "is_active": bool(s.is_active)}


@router.delete("/subscriptions/{sub_id}")
def delete_subscription(sub_id: str, db: Session = Depends(get_db), principal: Principal = Depends(require_admin)):
    s = db.query(EventSubscription).filter(EventSubscription.id == sub_id).first()
    if not s:
        return {"ok": True, "deleted": False}
    db.delete(s)
    db.commit()
    return {"ok": True, "deleted": True}


@router.get("/outbox")
def list_outbox(topic: str | None = None, pending_only: bool = False, limit: int = 100, db: Session = Depends(get_db), principal: Principal = Depends(require_admin)):
    q = db.query(OutboxEvent)
    if topic:
        q = q.filter(OutboxEvent.topic == topic)
    if pending_only:
        q = q.filter(OutboxEvent.delivered == False)  # noqa: E712
    rows = q.order_by(OutboxEvent.created_at.desc()).limit(min(max(limit, 1), 500)).all()
    return [
        {
            "id": e.id,
            "topic": e.topic,
            "payload": e.payload or {},
            "delivered": bool(e.delivered),
            "attempt_count": int(e.attempt_count or 0),
            "last_error": e.last_error,
            "created_at": e.created_at.isoformat() if e.created_at else None,
        }
        for e in rows
    ]


@router.post("/publish")
def publish_event(payload: dict, db: Session = Depends(get_db), principal: Principal = Depends(require_admin)):
    """Admin-only test publish endpoint.

    Only topics under "test." are accepted, so subscribers can be exercised
    without forging domain events such as order.accepted.

    Services publish by calling supplyhub.events.bus.publish(db, topic, payload)
    once their own transaction has committed.
    """
    topic = (payload or {}).get("topic")
    event_payload = (payload or {}).get("payload") or {}
    if not topic:
        raise HTTPException(422, "topic is required")
    if not str(topic).startswith(TEST_TOPIC_PREFIX):
        raise HTTPException(422, f"only {TEST_TOPIC_PREFIX}* topics may be published here")
    evt = bus.publish(db, str(topic), dict(event_payload))
    return {"ok": True, "event_id": evt.id, "topic": evt.topic}
