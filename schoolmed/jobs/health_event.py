from __future__ import annotations

import logging
from datetime import datetime, timedelta

from ..database import is_database_available
from ..models.health_event import HealthEvent, HealthEventStatus
from ..models.notifications import Notification, NotificationKind
from ..models.user import User, UserRole
from ..services.dedup import has_recent_notification
from ..services.notification_builder import (
    build_escalation_notification,
    build_processing_reminder,
    format_duration,
)
from .base import SYSTEM_ACTOR, BaseJob

logger = logging.getLogger(__name__)


class HealthEventJob(BaseJob):
    """Escalates stuck health events and nudges the nurses handling them."""

    def process_all_health_events(self, now: datetime | None = None) -> dict[str, int] | None:
        try:
            if not is_database_available():
                logger.debug("Database not available, skipping health event processing")
                return None
            now = now or self.local_now()
            return {
                "escalated": self.escalate_pending_events(now),
                "reminded": self.send_reminder_notifications(now),
                "cleaned": self.cleanup_old_completed_events(now),
            }
        except Exception:
            logger.exception("Error processing health events")
            raise

    def escalate_pending_events(self, now: datetime | None = None) -> int:
        """Notify every active manager about Pending events nobody has picked up.

        Returns the number of notifications created.
        """
        now = now or self.local_now()
        cutoff = now - timedelta(minutes=self.settings.ESCALATION_THRESHOLD_MINUTES)
        cooldown = timedelta(minutes=self.settings.ESCALATION_COOLDOWN_MINUTES)
        with self.unit_of_work() as db:
            try:
                events = (
                    db.query(HealthEvent)
                    .filter(
                        HealthEvent.status == HealthEventStatus.PENDING,
                        HealthEvent.handled_by_id.is_(None),
                        HealthEvent.created_date.is_not(None),
                        HealthEvent.created_date <= cutoff,
                        HealthEvent.is_deleted.is_(False),
                    )
                    .order_by(HealthEvent.created_date.asc())
                    .limit(self.settings.HEALTH_EVENT_BATCH_SIZE)
                    .all()
                )
                if not events:
                    return 0
                logger.info("Found %s pending events for escalation", len(events))

                managers = (
                    db.query(User)
                    .filter(
                        User.role == UserRole.MANAGER.value,
                        User.is_active.is_(True),
                        User.is_deleted.is_(False),
                    )
                    .all()
                )
                if not managers:
                    logger.warning("No managers found for escalation")
                    return 0

                created = 0
                for event in events:
                    if has_recent_notification(db, event.id, NotificationKind.ESCALATION, cooldown, now):
                        continue
                    for manager in managers:
                        db.add(
                            build_escalation_notification(
                                event, manager, now, self.settings.ESCALATION_DISPLAY_HOURS
                            )
                        )
                        created += 1
                    logger.warning(
                        "Escalated health event %s to %s managers after %s",
                        event.id,
                        len(managers),
                        format_duration(now - event.created_date),
                    )
                if created:
                    db.commit()
                return created
            except Exception:
                logger.exception("Error escalating pending health events")
                raise

    def send_reminder_notifications(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        cutoff = now - timedelta(minutes=self.settings.REMINDER_THRESHOLD_MINUTES)
        cooldown = timedelta(minutes=self.settings.REMINDER_COOLDOWN_MINUTES)
        with self.unit_of_work() as db:
            try:
                events = (
                    db.query(HealthEvent)
                    .filter(
                        HealthEvent.status == HealthEventStatus.IN_PROGRESS,
                        HealthEvent.handled_by_id.is_not(None),
                        HealthEvent.assigned_at.is_not(None),
                        HealthEvent.assigned_at <= cutoff,
                        HealthEvent.is_deleted.is_(False),
                    )
                    .order_by(HealthEvent.assigned_at.asc())
                    .limit(self.settings.HEALTH_EVENT_BATCH_SIZE)
                    .all()
                )
                created = 0
                for event in events:
                    if has_recent_notification(
                        db, event.id, NotificationKind.PROCESSING_REMINDER, cooldown, now
                    ):
                        continue
                    db.add(build_processing_reminder(event, now, self.settings.REMINDER_DISPLAY_HOURS))
                    created += 1
                    logger.info(
                        "Sent processing reminder for health event %s to nurse %s, in progress for %s",
                        event.id,
                        event.handled_by_id,
                        format_duration(now - event.assigned_at),
                    )
                if created:
                    db.commit()
                return created
            except Exception:
                logger.exception("Error sending health event reminders")
                raise

    def cleanup_old_completed_events(self, now: datetime | None = None) -> int:
        """Soft-delete notifications of events that were completed a while ago."""
        now = now or self.local_now()
        cutoff = now - timedelta(minutes=self.settings.COMPLETED_EVENT_CLEANUP_MINUTES)
        with self.unit_of_work() as db:
            try:
                notifications = (
                    db.query(Notification)
                    .join(HealthEvent, Notification.health_event_id == HealthEvent.id)
                    .filter(
                        HealthEvent.status == HealthEventStatus.COMPLETED,
                        HealthEvent.completed_at.is_not(None),
                        HealthEvent.completed_at <= cutoff,
                        Notification.is_deleted.is_(False),
                    )
                    .limit(self.settings.EVENT_NOTIFICATION_CLEANUP_BATCH_SIZE)
                    .all()
                )
                for notification in notifications:
                    notification.soft_delete(SYSTEM_ACTOR, now)
                if notifications:
                    db.commit()
                    logger.info("Cleaned up %s old health event notifications", len(notifications))
                return len(notifications)
            except Exception:
                logger.exception("Error cleaning up completed health event notifications")
                raise


def main() -> None:
    HealthEventJob().process_all_health_events()


if __name__ == "__main__":
    main()
