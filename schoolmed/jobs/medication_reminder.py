from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..models.medication import (
    MedicationPriority,
    MedicationSchedule,
    MedicationScheduleStatus,
    StudentMedication,
    StudentMedicationStatus,
)
from ..models.user import User, UserRole
from ..services.notification_builder import build_dose_reminder, build_low_stock_alert
from .base import SYSTEM_ACTOR, BaseJob

logger = logging.getLogger(__name__)

HIGH_PRIORITIES = (MedicationPriority.HIGH, MedicationPriority.CRITICAL)
MISSED_REASON = "Automatically marked as missed: dose not recorded within the allowed time"


class MedicationReminderJob(BaseJob):
    def send_overdue_alerts(self, now: datetime | None = None) -> int:
        """Mark Pending doses that are past due by the overdue threshold as Missed."""
        now = now or self.local_now()
        cutoff = now - timedelta(minutes=self.settings.OVERDUE_THRESHOLD_MINUTES)
        with self.unit_of_work() as db:
            try:
                schedules = (
                    db.query(MedicationSchedule)
                    .filter(
                        MedicationSchedule.status == MedicationScheduleStatus.PENDING,
                        MedicationSchedule.is_deleted.is_(False),
                        or_(
                            MedicationSchedule.scheduled_date < cutoff.date(),
                            and_(
                                MedicationSchedule.scheduled_date == cutoff.date(),
                                MedicationSchedule.scheduled_time <= cutoff.time(),
                            ),
                        ),
                    )
                    .order_by(MedicationSchedule.scheduled_date.asc(), MedicationSchedule.scheduled_time.asc())
                    .limit(self.settings.OVERDUE_BATCH_SIZE)
                    .all()
                )
                for schedule in schedules:
                    schedule.status = MedicationScheduleStatus.MISSED
                    schedule.missed_at = now
                    schedule.missed_reason = MISSED_REASON
                    schedule.last_updated_by = SYSTEM_ACTOR
                    schedule.last_updated_date = now
                if schedules:
                    db.commit()
                    logger.info("Auto-marked %s overdue schedules as missed", len(schedules))
                return len(schedules)
            except Exception:
                logger.exception("Error marking overdue medication schedules")
                raise

    def send_upcoming_reminders(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        with self.unit_of_work() as db:
            try:
                schedules = self._due_schedules(
                    db,
                    now,
                    minutes=self.settings.UPCOMING_REMINDER_MINUTES,
                    limit=self.settings.UPCOMING_REMINDER_BATCH_SIZE,
                    extra_filters=[MedicationSchedule.reminder_sent.is_(False)],
                )
                reminded = self._send_reminders(db, schedules, now, immediate=False)
                if reminded:
                    db.commit()
                    logger.info("Sent %s upcoming medication reminders", reminded)
                return reminded
            except Exception:
                logger.exception("Error sending upcoming medication reminders")
                raise

    def send_immediate_reminders(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        with self.unit_of_work() as db:
            try:
                schedules = self._due_schedules(
                    db,
                    now,
                    minutes=self.settings.IMMEDIATE_REMINDER_MINUTES,
                    limit=self.settings.IMMEDIATE_REMINDER_BATCH_SIZE,
                    extra_filters=[
                        MedicationSchedule.reminder_count < self.settings.MAX_REMINDERS_PER_SCHEDULE,
                        MedicationSchedule.priority.in_(HIGH_PRIORITIES),
                    ],
                )
                reminded = self._send_reminders(db, schedules, now, immediate=True)
                if reminded:
                    db.commit()
                    logger.info("Sent %s immediate medication reminders", reminded)
                return reminded
            except Exception:
                logger.exception("Error sending immediate medication reminders")
                raise

    def check_low_stock_alerts(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        with self.unit_of_work() as db:
            try:
                medications = (
                    db.query(StudentMedication)
                    .filter(
                        StudentMedication.status == StudentMedicationStatus.ACTIVE,
                        StudentMedication.remaining_doses <= self.settings.LOW_STOCK_THRESHOLD,
                        StudentMedication.low_stock_alert_sent.is_(False),
                        StudentMedication.parent_id.is_not(None),
                        StudentMedication.is_deleted.is_(False),
                    )
                    .order_by(StudentMedication.remaining_doses.asc())
                    .limit(self.settings.LOW_STOCK_BATCH_SIZE)
                    .all()
                )
                for medication in medications:
                    db.add(
                        build_low_stock_alert(
                            medication, medication.parent_id, now, self.settings.LOW_STOCK_DISPLAY_DAYS
                        )
                    )
                    medication.low_stock_alert_sent = True
                    medication.last_updated_by = SYSTEM_ACTOR
                    medication.last_updated_date = now
                if medications:
                    db.commit()
                    logger.info("Sent %s low stock alerts", len(medications))
                return len(medications)
            except Exception:
                logger.exception("Error checking medication stock levels")
                raise

    def process_all_reminders(self, now: datetime | None = None) -> dict[str, int]:
        now = now or self.local_now()
        return {
            "upcoming": self.send_upcoming_reminders(now),
            "immediate": self.send_immediate_reminders(now),
            "overdue": self.send_overdue_alerts(now),
            "low_stock": self.check_low_stock_alerts(now),
        }

    def _due_schedules(
        self,
        db: Session,
        now: datetime,
        *,
        minutes: int,
        limit: int,
        extra_filters: list,
    ) -> list[MedicationSchedule]:
        window_end = now + timedelta(minutes=minutes)
        # the window never spills into tomorrow
        latest = window_end.time() if window_end.date() == now.date() else time.max
        schedules = (
            db.query(MedicationSchedule)
            .filter(
                MedicationSchedule.status == MedicationScheduleStatus.PENDING,
                MedicationSchedule.scheduled_date == now.date(),
                MedicationSchedule.scheduled_time >= now.time().replace(microsecond=0),
                MedicationSchedule.scheduled_time <= latest,
                MedicationSchedule.is_deleted.is_(False),
                *extra_filters,
            )
            .order_by(MedicationSchedule.scheduled_time.asc())
            .limit(limit)
            .all()
        )
        return sorted(schedules, key=lambda schedule: schedule.priority.rank, reverse=True)

    def _active_nurses(self, db: Session) -> list[User]:
        return (
            db.query(User)
            .filter(
                User.role == UserRole.SCHOOLNURSE.value,
                User.is_active.is_(True),
                User.is_deleted.is_(False),
            )
            .all()
        )

    def _send_reminders(
        self,
        db: Session,
        schedules: list[MedicationSchedule],
        now: datetime,
        *,
        immediate: bool,
    ) -> int:
        if not schedules:
            return 0
        display_hours = self.settings.DOSE_REMINDER_DISPLAY_HOURS
        nurses: list[User] | None = None
        reminded = 0
        for schedule in schedules:
            try:
                with db.begin_nested():
                    medication = schedule.medication
                    if medication.parent is not None:
                        db.add(build_dose_reminder(schedule, medication.parent, now, display_hours, immediate=immediate))
                    if schedule.priority in HIGH_PRIORITIES:
                        if nurses is None:
                            nurses = self._active_nurses(db)
                        for nurse in nurses:
                            db.add(
                                build_dose_reminder(
                                    schedule, nurse, now, display_hours, immediate=immediate, for_nurse=True
                                )
                            )
                    schedule.reminder_sent = True
                    schedule.reminder_sent_at = now
                    schedule.reminder_count = (schedule.reminder_count or 0) + 1
                    schedule.last_updated_by = SYSTEM_ACTOR
                    schedule.last_updated_date = now
            except Exception:
                logger.exception("Error sending reminder for medication schedule %s", schedule.id)
                continue
            reminded += 1
        return reminded


def main() -> None:
    MedicationReminderJob().process_all_reminders()


if __name__ == "__main__":
    main()
