from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..models.notifications import Notification, NotificationKind


def has_recent_notification(
    db: Session,
    health_event_id,
    kind: NotificationKind,
    cooldown: timedelta,
    now: datetime,
) -> bool:
    """True when a live notification of ``kind`` exists for the event inside the cooldown.

    The notification table is the ledger; a fresh row blocks another of the same
    kind until ``cooldown`` has elapsed since it was created.
    """
    cutoff = now - cooldown
    existing = (
        db.query(Notification.id)
        .filter(
            Notification.health_event_id == health_event_id,
            Notification.kind == kind,
            Notification.is_deleted.is_(False),
            Notification.created_date >= cutoff,
        )
        .first()
    )
    return existing is not None
