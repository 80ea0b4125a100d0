from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from sqlalchemy import exists, or_
from sqlalchemy.orm import Session

from ..models.medication import (
    MedicationFrequencyType,
    MedicationSchedule,
    StudentMedication,
    StudentMedicationStatus,
)
from ..services.schedule_generator import (
    WEEKEND_DAYS,
    ScheduleGenerator,
    should_create_schedule_for_date,
)
from .base import SYSTEM_ACTOR, BaseJob

logger = logging.getLogger(__name__)


class MedicationScheduleJob(BaseJob):
    """Keeps Active medications supplied with Pending dose schedules."""

    def process_today_medications(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        today = now.date()
        with self.unit_of_work() as db:
            try:
                medications = self._medications_missing_schedule(
                    db, today, self.settings.TODAY_GENERATION_BATCH_SIZE
                )
                if not medications:
                    return 0
                logger.info("Found %s medications needing today's schedule generation", len(medications))
                created = self._generate(db, medications, today, today, now)
                if created:
                    db.commit()
                return created
            except Exception:
                logger.exception("Error in today's medication schedule generation")
                raise

    def process_tomorrow_medications(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        if now.hour < self.settings.TOMORROW_GENERATION_HOUR:
            return 0
        tomorrow = now.date() + timedelta(days=1)
        with self.unit_of_work() as db:
            try:
                medications = self._medications_missing_schedule(
                    db, tomorrow, self.settings.TODAY_GENERATION_BATCH_SIZE
                )
                if not medications:
                    return 0
                created = self._generate(db, medications, tomorrow, tomorrow, now)
                if created:
                    db.commit()
                return created
            except Exception:
                logger.exception("Error generating tomorrow's medication schedules")
                raise

    def process_newly_approved_medications(self, now: datetime | None = None) -> int:
        now = now or self.local_now()
        today = now.date()
        approved_since = now - timedelta(minutes=self.settings.NEWLY_APPROVED_WINDOW_MINUTES)
        with self.unit_of_work() as db:
            try:
                medications = (
                    db.query(StudentMedication)
                    .filter(
                        StudentMedication.status == StudentMedicationStatus.ACTIVE,
                        StudentMedication.approved_at.is_not(None),
                        StudentMedication.approved_at >= approved_since,
                        StudentMedication.auto_generate_schedule.is_(True),
                        StudentMedication.start_date <= today,
                        StudentMedication.end_date >= today,
                        StudentMedication.is_deleted.is_(False),
                    )
                    .order_by(StudentMedication.approved_at.asc())
                    .limit(self.settings.NEWLY_APPROVED_BATCH_SIZE)
                    .all()
                )
                if not medications:
                    return 0
                created = self._generate(db, medications, today, None, now)
                if created:
                    db.commit()
                return created
            except Exception:
                logger.exception("Error generating schedules for newly approved medications")
                raise

    def process_approved_to_active_transition(self, now: datetime | None = None) -> int:
        """Activate Approved medications whose course window contains today."""
        now = now or self.local_now()
        today = now.date()
        with self.unit_of_work() as db:
            try:
                medications = (
                    db.query(StudentMedication)
                    .filter(
                        StudentMedication.status == StudentMedicationStatus.APPROVED,
                        StudentMedication.start_date.is_not(None),
                        StudentMedication.end_date.is_not(None),
                        StudentMedication.start_date <= today,
                        StudentMedication.end_date >= today,
                        StudentMedication.is_deleted.is_(False),
                    )
                    .order_by(StudentMedication.start_date.asc())
                    .limit(self.settings.ACTIVATION_BATCH_SIZE)
                    .all()
                )
                if not medications:
                    return 0
                logger.info("Found %s approved medications ready to activate", len(medications))
                for medication in medications:
                    medication.status = StudentMedicationStatus.ACTIVE
                    medication.last_updated_by = SYSTEM_ACTOR
                    medication.last_updated_date = now
                    logger.info(
                        "Activated medication %s for student %s", medication.id, medication.student_id
                    )
                db.commit()
                return len(medications)
            except Exception:
                logger.exception("Error transitioning approved medications to active")
                raise

    def _medications_missing_schedule(
        self, db: Session, day: date, limit: int
    ) -> list[StudentMedication]:
        """Oldest medications due on ``day`` that have no schedule for it yet.

        Medications that are not due that day (as-needed, off-days of weekly or
        every-other-day courses, weekends, skip dates) are dropped before the
        batch limit, so they never hold a batch slot.
        """
        has_schedule = exists().where(
            MedicationSchedule.student_medication_id == StudentMedication.id,
            MedicationSchedule.scheduled_date == day,
            MedicationSchedule.is_deleted.is_(False),
        )
        query = db.query(StudentMedication).filter(
            StudentMedication.status == StudentMedicationStatus.ACTIVE,
            StudentMedication.auto_generate_schedule.is_(True),
            StudentMedication.start_date <= day,
            StudentMedication.end_date >= day,
            StudentMedication.is_deleted.is_(False),
            or_(
                StudentMedication.frequency_type.is_(None),
                StudentMedication.frequency_type != MedicationFrequencyType.AS_NEEDED,
            ),
            ~has_schedule,
        )
        if day.weekday() in WEEKEND_DAYS:
            query = query.filter(StudentMedication.skip_weekends.is_(False))
        candidates = query.order_by(StudentMedication.created_date.asc()).all()
        return [
            medication for medication in candidates if should_create_schedule_for_date(medication, day)
        ][:limit]

    def _generate(
        self,
        db: Session,
        medications: list[StudentMedication],
        from_date: date,
        to_date: date | None,
        now: datetime,
    ) -> int:
        generator = ScheduleGenerator(db)
        created = 0
        for medication in medications:
            try:
                with db.begin_nested():
                    result = generator.generate_schedules(
                        medication.id, from_date, to_date, actor=SYSTEM_ACTOR, now=now
                    )
            except Exception:
                logger.exception("Error generating schedules for medication %s", medication.id)
                continue
            if result.failure_count:
                logger.warning(
                    "Schedule generation for medication %s had %s failures: %s",
                    medication.id,
                    result.failure_count,
                    "; ".join(result.errors),
                )
            if result.success_count:
                logger.info(
                    "Generated %s schedules for medication %s", result.success_count, medication.id
                )
            created += result.success_count
        return created


def main() -> None:
    job = MedicationScheduleJob()
    job.process_approved_to_active_transition()
    job.process_today_medications()
    job.process_newly_approved_medications()
    job.process_tomorrow_medications()


if __name__ == "__main__":
    main()
