from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from sqlalchemy import exists

from ..models.medication import (
    MedicationAdministration,
    MedicationSchedule,
    MedicationScheduleStatus,
    StudentMedication,
    StudentMedicationStatus,
)
from ..models.notifications import Notification
from .base import CLEANUP_ACTOR, BaseJob

logger = logging.getLogger(__name__)

FINISHED_MEDICATION_STATUSES = (
    StudentMedicationStatus.COMPLETED,
    StudentMedicationStatus.DISCONTINUED,
)
RESOLVED_SCHEDULE_STATUSES = (
    MedicationScheduleStatus.COMPLETED,
    MedicationScheduleStatus.MISSED,
    MedicationScheduleStatus.CANCELLED,
)


class MedicationCleanupJob(BaseJob):
    """Soft-deletes medication records that have aged past the retention window.

    Every method returns the number of rows it marked deleted and commits only
    when that number is non-zero.
    """

    def _retention_cutoff(self, now: datetime) -> datetime:
        return datetime.combine(now.date() - timedelta(days=self.settings.RETENTION_DAYS), time.min)

    def cleanup_expired_data(self, now: datetime | None = None) -> dict[str, int]:
        now = now or self.local_now()
        logger.info("Starting comprehensive medication data cleanup")
        try:
            return {
                "schedules": self.cleanup_old_schedules(now),
                "medications": self.cleanup_expired_medications(now),
                "notifications": self.cleanup_old_notifications(now),
                "administrations": self.cleanup_old_administration_records(now),
            }
        except Exception:
            logger.exception("Error during medication data cleanup")
            raise

    def cleanup_expired_medications(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        cutoff = self._retention_cutoff(now).date()
        # a course with a dose still Pending stays visible until that dose is resolved
        pending_schedule = exists().where(
            MedicationSchedule.student_medication_id == StudentMedication.id,
            MedicationSchedule.status == MedicationScheduleStatus.PENDING,
            MedicationSchedule.is_deleted.is_(False),
        )
        with self.unit_of_work() as db:
            try:
                medications = (
                    db.query(StudentMedication)
                    .filter(
                        StudentMedication.end_date < cutoff,
                        StudentMedication.status.in_(FINISHED_MEDICATION_STATUSES),
                        StudentMedication.is_deleted.is_(False),
                        ~pending_schedule,
                    )
                    .limit(self.settings.EXPIRED_MEDICATION_BATCH_SIZE)
                    .all()
                )
                for medication in medications:
                    medication.soft_delete(CLEANUP_ACTOR, now)
                if medications:
                    db.commit()
                logger.info("Cleaned up %s expired medications", len(medications))
                return len(medications)
            except Exception:
                logger.exception("Error cleaning up expired medications")
                raise

    def cleanup_old_notifications(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        cutoff = self._retention_cutoff(now)
        with self.unit_of_work() as db:
            try:
                notifications = (
                    db.query(Notification)
                    .filter(
                        Notification.created_date < cutoff,
                        Notification.is_read.is_(True),
                        Notification.end_date < now,
                        Notification.is_deleted.is_(False),
                    )
                    .limit(self.settings.NOTIFICATION_CLEANUP_BATCH_SIZE)
                    .all()
                )
                for notification in notifications:
                    notification.soft_delete(CLEANUP_ACTOR, now)
                if notifications:
                    db.commit()
                logger.info("Cleaned up %s old notifications", len(notifications))
                return len(notifications)
            except Exception:
                logger.exception("Error cleaning up old notifications")
                raise

    def cleanup_old_administration_records(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        cutoff = self._retention_cutoff(now)
        with self.unit_of_work() as db:
            try:
                administrations = (
                    db.query(MedicationAdministration)
                    .filter(
                        MedicationAdministration.administered_at < cutoff,
                        MedicationAdministration.is_deleted.is_(False),
                    )
                    .limit(self.settings.ADMINISTRATION_CLEANUP_BATCH_SIZE)
                    .all()
                )
                for administration in administrations:
                    administration.soft_delete(CLEANUP_ACTOR, now)
                if administrations:
                    db.commit()
                logger.info("Cleaned up %s old administration records", len(administrations))
                return len(administrations)
            except Exception:
                logger.exception("Error cleaning up old administration records")
                raise

    def cleanup_old_schedules(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        cutoff = self._retention_cutoff(now).date()
        with self.unit_of_work() as db:
            try:
                schedules = (
                    db.query(MedicationSchedule)
                    .filter(
                        MedicationSchedule.scheduled_date < cutoff,
                        MedicationSchedule.status.in_(RESOLVED_SCHEDULE_STATUSES),
                        MedicationSchedule.is_deleted.is_(False),
                    )
                    .limit(self.settings.SCHEDULE_CLEANUP_BATCH_SIZE)
                    .all()
                )
                for schedule in schedules:
                    schedule.soft_delete(CLEANUP_ACTOR, now)
                if schedules:
                    db.commit()
                logger.info("Cleaned up %s old medication schedules", len(schedules))
                return len(schedules)
            except Exception:
                logger.exception("Error cleaning up old medication schedules")
                raise


def main() -> None:
    MedicationCleanupJob().cleanup_expired_data()


if __name__ == "__main__":
    main()
