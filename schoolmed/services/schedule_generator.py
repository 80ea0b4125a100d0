from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ..config import school_now
from ..models.medication import (
    MedicationFrequencyType,
    MedicationSchedule,
    MedicationScheduleStatus,
    MedicationTimeOfDay,
    StudentMedication,
    StudentMedicationStatus,
)
from .errors import MedicationNotActiveError, MedicationNotFoundError, SchedulingError

logger = logging.getLogger(__name__)

WEEKEND_DAYS = {5, 6}

DEFAULT_DOSE_TIME = time(8, 0)

TIME_OF_DAY_SLOTS = {
    MedicationTimeOfDay.BEFORE_BREAKFAST: time(7, 0),
    MedicationTimeOfDay.AFTER_BREAKFAST: time(8, 30),
    MedicationTimeOfDay.BEFORE_LUNCH: time(11, 30),
    MedicationTimeOfDay.AFTER_LUNCH: time(13, 0),
    MedicationTimeOfDay.BEFORE_DINNER: time(17, 30),
    MedicationTimeOfDay.AFTER_DINNER: time(19, 0),
    MedicationTimeOfDay.BEFORE_BED: time(21, 0),
}


@dataclass
class GenerationResult:
    total_requested: int = 0
    success_count: int = 0
    failure_count: int = 0
    skipped_existing: int = 0
    errors: list[str] = field(default_factory=list)
    successful_ids: list[UUID] = field(default_factory=list)


def _load_json_list(raw: str | None, field_name: str, medication_id) -> list:
    if not raw:
        return []
    try:
        values = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Error parsing %s for medication %s, ignoring", field_name, medication_id)
        return []
    if not isinstance(values, list):
        logger.warning("Expected a list in %s for medication %s, ignoring", field_name, medication_id)
        return []
    return values


def parse_skip_dates(medication: StudentMedication) -> set[str]:
    """Return the ISO dates (YYYY-MM-DD) a medication must not be scheduled on."""
    values = _load_json_list(medication.skip_dates, "skip_dates", medication.id)
    return {str(value).strip()[:10] for value in values if value}


def parse_schedule_times(medication: StudentMedication) -> list[time]:
    """Times of day a dose is due, falling back to the medication's time-of-day slot."""
    times: set[time] = set()
    for value in _load_json_list(medication.specific_times, "specific_times", medication.id):
        try:
            times.add(time.fromisoformat(str(value).strip()))
        except ValueError:
            logger.warning(
                "Ignoring invalid time %r for medication %s", value, medication.id
            )
    if times:
        return sorted(times)
    return [TIME_OF_DAY_SLOTS.get(medication.time_of_day, DEFAULT_DOSE_TIME)]


def _matches_frequency(medication: StudentMedication, day: date) -> bool:
    frequency = medication.frequency_type or MedicationFrequencyType.DAILY
    if frequency == MedicationFrequencyType.AS_NEEDED:
        return False
    anchor = medication.start_date or day
    if frequency == MedicationFrequencyType.EVERY_OTHER_DAY:
        return (day - anchor).days % 2 == 0
    if frequency == MedicationFrequencyType.WEEKLY:
        return day.weekday() == anchor.weekday()
    return True


def should_create_schedule_for_date(
    medication: StudentMedication,
    day: date,
    skip_dates: set[str] | None = None,
) -> bool:
    if medication.skip_weekends and day.weekday() in WEEKEND_DAYS:
        return False
    if skip_dates is None:
        skip_dates = parse_skip_dates(medication)
    if day.isoformat() in skip_dates:
        return False
    return _matches_frequency(medication, day)


def schedule_dates(medication: StudentMedication, from_date: date, to_date: date) -> list[date]:
    """Calendar days in ``[from_date, to_date]`` that should receive doses.

    The range is clipped to the medication's own start and end dates.
    """
    if medication.start_date and from_date < medication.start_date:
        from_date = medication.start_date
    if medication.end_date and to_date > medication.end_date:
        to_date = medication.end_date

    skip_dates = parse_skip_dates(medication)
    days: list[date] = []
    current = from_date
    while current <= to_date:
        if should_create_schedule_for_date(medication, current, skip_dates):
            days.append(current)
        current += timedelta(days=1)
    return days


class ScheduleGenerator:
    def __init__(self, db: Session):
        self.db = db

    def generate_schedules(
        self,
        medication_id,
        from_date: date | None = None,
        to_date: date | None = None,
        *,
        actor: str = "SYSTEM",
        now: datetime | None = None,
    ) -> GenerationResult:
        """Create the missing Pending schedules of one medication for a date range.

        A day that already has a non-deleted schedule is left alone, so running
        this twice over the same range creates nothing the second time. Each day
        is written in its own savepoint; a failing day is reported in the result
        and the remaining days still go through. Nothing is committed here.
        """
        now = now or school_now()
        medication = (
            self.db.query(StudentMedication)
            .filter(
                StudentMedication.id == medication_id,
                StudentMedication.is_deleted.is_(False),
            )
            .first()
        )
        if medication is None:
            raise MedicationNotFoundError(medication_id)
        if medication.status != StudentMedicationStatus.ACTIVE:
            raise MedicationNotActiveError(medication_id, medication.status)

        start = from_date or now.date()
        end = to_date or medication.end_date
        if end is None:
            raise SchedulingError(f"Medication {medication_id} has no end date to schedule up to")

        days = schedule_dates(medication, start, end)
        times = parse_schedule_times(medication)
        result = GenerationResult(total_requested=len(days) * len(times))

        for day in days:
            try:
                with self.db.begin_nested():
                    created = self._create_for_day(medication, day, times, actor, now)
            except Exception:
                logger.exception(
                    "Error creating schedules for medication %s on %s", medication.id, day.isoformat()
                )
                result.failure_count += len(times)
                result.errors.append(f"Failed to create schedules for {day.isoformat()}")
                continue

            if created is None:
                result.skipped_existing += len(times)
                continue
            result.success_count += len(created)
            result.successful_ids.extend(schedule.id for schedule in created)

        logger.info(
            "Generated %s schedules for medication %s (%s to %s)",
            result.success_count,
            medication.id,
            start.isoformat(),
            end.isoformat(),
        )
        return result

    def _create_for_day(
        self,
        medication: StudentMedication,
        day: date,
        times: list[time],
        actor: str,
        now: datetime,
    ) -> list[MedicationSchedule] | None:
        if self._has_schedule_on(medication.id, day):
            return None
        schedules = [
            MedicationSchedule(
                id=uuid4(),
                student_medication_id=medication.id,
                scheduled_date=day,
                scheduled_time=dose_time,
                scheduled_dosage=medication.dosage,
                status=MedicationScheduleStatus.PENDING,
                priority=medication.priority,
                requires_nurse_confirmation=medication.require_nurse_confirmation,
                special_instructions=medication.instructions,
                created_by=actor,
                created_date=now,
            )
            for dose_time in times
        ]
        self.db.add_all(schedules)
        return schedules

    def _has_schedule_on(self, medication_id, day: date) -> bool:
        return (
            self.db.query(MedicationSchedule.id)
            .filter(
                MedicationSchedule.student_medication_id == medication_id,
                MedicationSchedule.scheduled_date == day,
                MedicationSchedule.is_deleted.is_(False),
            )
            .first()
            is not None
        )
