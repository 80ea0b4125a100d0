from datetime import datetime, timedelta
from uuid import uuid4

from schoolmed.jobs.base import SYSTEM_ACTOR
from schoolmed.models import HealthEvent, MedicationPriority, NotificationKind, User
from schoolmed.services.notification_builder import (
    build_escalation_notification,
    format_duration,
    urgency_label,
)


def test_format_duration():
    assert format_duration(timedelta(minutes=6)) == "00:06:00"
    assert format_duration(timedelta(hours=26, seconds=5)) == "26:00:05"
    assert format_duration(timedelta(seconds=-30)) == "00:00:00"


def test_urgency_label_by_priority():
    assert urgency_label(MedicationPriority.CRITICAL, immediate=True) == "URGENT"
    assert urgency_label(MedicationPriority.CRITICAL, immediate=False) == "VERY IMPORTANT"
    assert urgency_label(MedicationPriority.HIGH, immediate=True) == "IMPORTANT"
    assert urgency_label(MedicationPriority.HIGH, immediate=False) == "High priority"
    assert urgency_label(MedicationPriority.LOW, immediate=True) == "Reminder"


def test_escalation_without_student_details():
    now = datetime(2024, 3, 4, 10, 0)
    event = HealthEvent(id=uuid4(), code=None, created_date=now - timedelta(minutes=7), is_emergency=False)
    manager = User(id=uuid4(), username="manager", full_name="Manager")

    notification = build_escalation_notification(event, manager, now, display_hours=2)

    assert notification.kind == NotificationKind.ESCALATION
    assert notification.title == "Health event requires intervention - Unknown student"
    assert "Occurred at: N/A" in notification.content
    assert "Severity: Normal" in notification.content
    assert notification.recipient_id == manager.id
    assert notification.created_by == SYSTEM_ACTOR
