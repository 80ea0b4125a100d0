from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

from ..jobs.base import SYSTEM_ACTOR
from ..models.health_event import HealthEvent
from ..models.medication import MedicationPriority, MedicationSchedule, StudentMedication
from ..models.notifications import Notification, NotificationKind, NotificationType
from ..models.user import User


TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"


def format_duration(delta: timedelta) -> str:
    """Render an elapsed time as ``HH:MM:SS``; negative spans render as zero."""
    total = max(int(delta.total_seconds()), 0)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def _format_timestamp(value: datetime | None) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value else "N/A"


def _student_label(student: User | None) -> tuple[str, str]:
    if student is None:
        return "Unknown student", "N/A"
    return student.full_name, student.student_code or "N/A"


def build_escalation_notification(
    event: HealthEvent,
    manager: User,
    now: datetime,
    display_hours: int,
) -> Notification:
    name, code = _student_label(event.student)
    wait_time = format_duration(now - (event.created_date or now))
    severity = "EMERGENCY" if event.is_emergency else "Normal"
    content = (
        f"Health event #{event.code or event.id} for student {name} ({code}) "
        f"has been waiting too long.\n\n"
        f"Location: {event.location or 'N/A'}\n"
        f"Occurred at: {_format_timestamp(event.occurred_at)}\n"
        f"Waiting time: {wait_time}\n"
        f"Description: {event.description or ''}\n"
        f"Severity: {severity}\n\n"
        "Please assign a school nurse immediately."
    )
    return Notification(
        id=uuid4(),
        title=f"Health event requires intervention - {name}",
        content=content,
        notification_type=NotificationType.HEALTH_EVENT,
        kind=NotificationKind.ESCALATION,
        recipient_id=manager.id,
        health_event_id=event.id,
        requires_confirmation=True,
        is_read=False,
        is_confirmed=False,
        created_by=SYSTEM_ACTOR,
        created_date=now,
        end_date=now + timedelta(hours=display_hours),
    )


def build_processing_reminder(
    event: HealthEvent,
    now: datetime,
    display_hours: int,
) -> Notification:
    name, code = _student_label(event.student)
    started = event.assigned_at or event.created_date or now
    elapsed = format_duration(now - (event.assigned_at or now))
    content = (
        f"You have been handling the health event of student {name} ({code}) "
        f"for {elapsed}.\n\n"
        f"Location: {event.location or 'N/A'}\n"
        f"Started at: {_format_timestamp(started)}\n"
        f"Processing time: {elapsed}\n"
        f"Description: {event.description or ''}\n\n"
        "Please update the progress or complete the event."
    )
    return Notification(
        id=uuid4(),
        title=f"Health event in progress - {name}",
        content=content,
        notification_type=NotificationType.HEALTH_EVENT,
        kind=NotificationKind.PROCESSING_REMINDER,
        recipient_id=event.handled_by_id,
        health_event_id=event.id,
        requires_confirmation=False,
        is_read=False,
        is_confirmed=False,
        created_by=SYSTEM_ACTOR,
        created_date=now,
        end_date=now + timedelta(hours=display_hours),
    )


def urgency_label(priority: MedicationPriority, immediate: bool) -> str:
    if priority == MedicationPriority.CRITICAL:
        return "URGENT" if immediate else "VERY IMPORTANT"
    if priority == MedicationPriority.HIGH:
        return "IMPORTANT" if immediate else "High priority"
    return "Reminder"


def build_dose_reminder(
    schedule: MedicationSchedule,
    recipient: User,
    now: datetime,
    display_hours: int,
    *,
    immediate: bool = False,
    for_nurse: bool = False,
) -> Notification:
    medication = schedule.medication
    name, code = _student_label(medication.student)
    label = urgency_label(schedule.priority, immediate)
    due_at = schedule.scheduled_time.strftime("%H:%M")

    if for_nurse:
        title = f"{label} - Medication due for {name}"
        opening = f"Student {name} ({code}) is due to take {medication.medication_name} at {due_at}."
    else:
        title = f"{label} - Medication reminder"
        opening = f"Your child {name} is due to take {medication.medication_name} at {due_at}."

    lines = [
        opening,
        "",
        f"Dosage: {schedule.scheduled_dosage or medication.dosage}",
        f"Priority: {schedule.priority.value.title()}",
    ]
    if schedule.special_instructions:
        lines.append(f"Instructions: {schedule.special_instructions}")
    if schedule.requires_nurse_confirmation:
        lines.append("A school nurse must confirm this dose.")

    return Notification(
        id=uuid4(),
        title=title,
        content="\n".join(lines),
        notification_type=NotificationType.GENERAL,
        kind=NotificationKind.DOSE_REMINDER,
        recipient_id=recipient.id,
        student_medication_id=medication.id,
        medication_schedule_id=schedule.id,
        requires_confirmation=False,
        is_read=False,
        is_confirmed=False,
        created_by=SYSTEM_ACTOR,
        created_date=now,
        end_date=now + timedelta(hours=display_hours),
    )


def build_low_stock_alert(
    medication: StudentMedication,
    recipient_id,
    now: datetime,
    display_days: int,
) -> Notification:
    name, _ = _student_label(medication.student)
    content = (
        f"Only {medication.remaining_doses} dose(s) of {medication.medication_name} "
        f"remain for {name}.\n\n"
        "Please bring a refill to the school health room."
    )
    return Notification(
        id=uuid4(),
        title=f"Medication running low - {medication.medication_name}",
        content=content,
        notification_type=NotificationType.GENERAL,
        kind=NotificationKind.LOW_STOCK_ALERT,
        recipient_id=recipient_id,
        student_medication_id=medication.id,
        requires_confirmation=True,
        is_read=False,
        is_confirmed=False,
        created_by=SYSTEM_ACTOR,
        created_date=now,
        end_date=now + timedelta(days=display_days),
    )
