from datetime import date, datetime, time

from schoolmed.jobs.medication_schedule import MedicationScheduleJob
from schoolmed.models import (
    MedicationFrequencyType,
    MedicationSchedule,
    MedicationScheduleStatus,
    StudentMedicationStatus,
)
from schoolmed.services.schedule_generator import ScheduleGenerator


def _schedules(db, medication=None):
    query = db.query(MedicationSchedule)
    if medication is not None:
        query = query.filter(MedicationSchedule.student_medication_id == medication.id)
    return query.order_by(MedicationSchedule.scheduled_date, MedicationSchedule.scheduled_time).all()


def test_weekend_then_monday_scenario(db_session, settings, make_medication):
    medication = make_medication(skip_weekends=True, times=["08:00"])
    job = MedicationScheduleJob(db=db_session, settings=settings)

    saturday = job.process_today_medications(now=datetime(2024, 1, 6, 8, 0))
    assert saturday == 0
    assert _schedules(db_session, medication) == []

    monday = job.process_today_medications(now=datetime(2024, 1, 8, 8, 0))
    schedules = _schedules(db_session, medication)
    assert monday == 1
    assert len(schedules) == 1
    assert schedules[0].scheduled_date == date(2024, 1, 8)
    assert schedules[0].scheduled_time == time(8, 0)
    assert schedules[0].status == MedicationScheduleStatus.PENDING


def test_today_generation_runs_once_per_day(db_session, settings, make_medication):
    medication = make_medication(times=["08:00", "13:00"])
    job = MedicationScheduleJob(db=db_session, settings=settings)

    assert job.process_today_medications(now=datetime(2024, 1, 3, 6, 0)) == 2
    assert job.process_today_medications(now=datetime(2024, 1, 3, 6, 1)) == 0
    assert len(_schedules(db_session, medication)) == 2


def test_today_generation_ignores_medications_without_auto_generation(db_session, settings, make_medication):
    make_medication(auto_generate_schedule=False)
    make_medication(status=StudentMedicationStatus.APPROVED)
    job = MedicationScheduleJob(db=db_session, settings=settings)

    assert job.process_today_medications(now=datetime(2024, 1, 3, 6, 0)) == 0
    assert _schedules(db_session) == []


def test_batch_partial_failure_keeps_other_medications(db_session, settings, make_medication, monkeypatch):
    medications = [make_medication() for _ in range(3)]
    failing = medications[1]
    original = ScheduleGenerator.generate_schedules

    def flaky(self, medication_id, *args, **kwargs):
        if medication_id == failing.id:
            raise RuntimeError("generator exploded")
        return original(self, medication_id, *args, **kwargs)

    monkeypatch.setattr(ScheduleGenerator, "generate_schedules", flaky)

    created = MedicationScheduleJob(db=db_session, settings=settings).process_today_medications(
        now=datetime(2024, 1, 3, 6, 0)
    )

    assert created == 2
    assert _schedules(db_session, failing) == []
    assert len(_schedules(db_session, medications[0])) == 1
    assert len(_schedules(db_session, medications[2])) == 1


def test_tomorrow_generation_waits_for_evening(db_session, settings, make_medication):
    medication = make_medication()
    job = MedicationScheduleJob(db=db_session, settings=settings)

    assert job.process_tomorrow_medications(now=datetime(2024, 1, 3, 17, 59)) == 0
    assert _schedules(db_session, medication) == []

    assert job.process_tomorrow_medications(now=datetime(2024, 1, 3, 18, 0)) == 1
    (schedule,) = _schedules(db_session, medication)
    assert schedule.scheduled_date == date(2024, 1, 4)


def test_tomorrow_generation_skips_weekend(db_session, settings, make_medication):
    medication = make_medication(skip_weekends=True)
    job = MedicationScheduleJob(db=db_session, settings=settings)

    # Friday evening, tomorrow is Saturday
    assert job.process_tomorrow_medications(now=datetime(2024, 1, 5, 19, 0)) == 0
    assert _schedules(db_session, medication) == []


def test_newly_approved_medication_gets_full_schedule(db_session, settings, make_medication):
    now = datetime(2024, 1, 8, 10, 0)
    recent = make_medication(approved_at=datetime(2024, 1, 8, 9, 55))
    stale = make_medication(approved_at=datetime(2024, 1, 8, 9, 0))

    created = MedicationScheduleJob(db=db_session, settings=settings).process_newly_approved_medications(now=now)

    days = [schedule.scheduled_date for schedule in _schedules(db_session, recent)]
    assert created == 3
    assert days == [date(2024, 1, 8), date(2024, 1, 9), date(2024, 1, 10)]
    assert _schedules(db_session, stale) == []


def test_approved_medication_activates_inside_its_window(db_session, settings, make_medication):
    now = datetime(2024, 1, 3, 7, 0)
    due = make_medication(status=StudentMedicationStatus.APPROVED)
    future = make_medication(
        status=StudentMedicationStatus.APPROVED,
        start_date=date(2024, 1, 4),
        end_date=date(2024, 1, 20),
    )

    activated = MedicationScheduleJob(db=db_session, settings=settings).process_approved_to_active_transition(
        now=now
    )

    db_session.refresh(due)
    db_session.refresh(future)
    assert activated == 1
    assert due.status == StudentMedicationStatus.ACTIVE
    assert due.last_updated_by == "SYSTEM"
    assert due.last_updated_date == now
    assert future.status == StudentMedicationStatus.APPROVED


def test_medications_not_due_today_do_not_fill_the_batch(db_session, settings, make_medication):
    for _ in range(settings.TODAY_GENERATION_BATCH_SIZE):
        make_medication(
            frequency_type=MedicationFrequencyType.AS_NEEDED,
            created_date=datetime(2023, 12, 1, 9, 0),
        )
    # Monday start, so Wednesday is an off day
    for _ in range(2):
        make_medication(
            frequency_type=MedicationFrequencyType.WEEKLY,
            created_date=datetime(2023, 12, 2, 9, 0),
        )
    daily = make_medication(created_date=datetime(2023, 12, 20, 9, 0))
    job = MedicationScheduleJob(db=db_session, settings=settings)

    assert job.process_today_medications(now=datetime(2024, 1, 3, 6, 0)) == 1

    assert [schedule.scheduled_date for schedule in _schedules(db_session)] == [date(2024, 1, 3)]
    assert len(_schedules(db_session, daily)) == 1


def test_weekend_skipping_medications_do_not_fill_tomorrow_batch(db_session, settings, make_medication):
    for _ in range(settings.TODAY_GENERATION_BATCH_SIZE):
        make_medication(skip_weekends=True, created_date=datetime(2023, 12, 1, 9, 0))
    daily = make_medication(created_date=datetime(2023, 12, 20, 9, 0))

    # Friday evening, tomorrow is Saturday
    created = MedicationScheduleJob(db=db_session, settings=settings).process_tomorrow_medications(
        now=datetime(2024, 1, 5, 19, 0)
    )

    assert created == 1
    (schedule,) = _schedules(db_session)
    assert schedule.student_medication_id == daily.id
    assert schedule.scheduled_date == date(2024, 1, 6)
