from datetime import date, datetime, time, timedelta
from uuid import uuid4

from schoolmed.jobs.medication_cleanup import MedicationCleanupJob
from schoolmed.models import (
    MedicationAdministration,
    MedicationScheduleStatus,
    Notification,
    StudentMedicationStatus,
    UserRole,
)

NOW = datetime(2024, 3, 15, 3, 0)


def test_retention_guard_waits_for_pending_schedule(db_session, settings, make_medication, make_schedule):
    medication = make_medication(
        status=StudentMedicationStatus.COMPLETED,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 10),
    )
    pending = make_schedule(medication, date(2024, 1, 10), time(8, 0))
    job = MedicationCleanupJob(db=db_session, settings=settings)

    assert job.cleanup_expired_medications(now=NOW) == 0
    db_session.refresh(medication)
    assert medication.is_deleted is False

    pending.status = MedicationScheduleStatus.COMPLETED
    db_session.commit()

    assert job.cleanup_expired_medications(now=NOW) == 1
    db_session.refresh(medication)
    assert medication.is_deleted is True
    assert medication.last_updated_by == "SYSTEM_CLEANUP"


def test_expired_medications_respect_retention_window(db_session, settings, make_medication):
    recent = make_medication(
        status=StudentMedicationStatus.DISCONTINUED,
        start_date=date(2024, 2, 1),
        end_date=date(2024, 2, 20),
    )
    active = make_medication(start_date=date(2023, 12, 1), end_date=date(2024, 1, 10))

    assert MedicationCleanupJob(db=db_session, settings=settings).cleanup_expired_medications(now=NOW) == 0
    db_session.refresh(recent)
    db_session.refresh(active)
    assert recent.is_deleted is False
    assert active.is_deleted is False


def test_old_read_notifications_are_soft_deleted(db_session, settings, make_user):
    recipient = make_user(UserRole.PARENT)

    def notification(**fields):
        values = dict(
            id=uuid4(),
            title="Reminder - Medication reminder",
            recipient_id=recipient.id,
            is_read=True,
            created_date=NOW - timedelta(days=45),
            end_date=NOW - timedelta(days=44),
        )
        values.update(fields)
        db_session.add(Notification(**values))
        return values["id"]

    old = notification()
    unread = notification(is_read=False)
    young = notification(created_date=NOW - timedelta(days=5))
    still_displayed = notification(end_date=NOW + timedelta(days=1))
    db_session.commit()

    assert MedicationCleanupJob(db=db_session, settings=settings).cleanup_old_notifications(now=NOW) == 1

    deleted = {n.id for n in db_session.query(Notification).filter(Notification.is_deleted.is_(True))}
    assert deleted == {old}
    assert not deleted & {unread, young, still_displayed}


def test_old_administration_records_are_soft_deleted(db_session, settings, make_medication):
    medication = make_medication()
    old = MedicationAdministration(
        id=uuid4(), student_medication_id=medication.id, administered_at=NOW - timedelta(days=40)
    )
    recent = MedicationAdministration(
        id=uuid4(), student_medication_id=medication.id, administered_at=NOW - timedelta(days=3)
    )
    db_session.add_all([old, recent])
    db_session.commit()

    assert MedicationCleanupJob(db=db_session, settings=settings).cleanup_old_administration_records(now=NOW) == 1
    db_session.refresh(old)
    db_session.refresh(recent)
    assert old.is_deleted is True
    assert recent.is_deleted is False


def test_old_resolved_schedules_are_soft_deleted(db_session, settings, make_medication, make_schedule):
    medication = make_medication()
    missed = make_schedule(medication, date(2024, 1, 2), time(8, 0), status=MedicationScheduleStatus.MISSED)
    pending = make_schedule(medication, date(2024, 1, 3), time(8, 0))
    fresh = make_schedule(medication, date(2024, 3, 1), time(8, 0), status=MedicationScheduleStatus.COMPLETED)

    assert MedicationCleanupJob(db=db_session, settings=settings).cleanup_old_schedules(now=NOW) == 1
    for schedule in (missed, pending, fresh):
        db_session.refresh(schedule)
    assert missed.is_deleted is True
    assert pending.is_deleted is False
    assert fresh.is_deleted is False


def test_cleanup_expired_data_runs_every_sweep(db_session, settings, make_medication, make_schedule):
    medication = make_medication(status=StudentMedicationStatus.COMPLETED)
    make_schedule(medication, date(2024, 1, 5), time(8, 0), status=MedicationScheduleStatus.COMPLETED)

    result = MedicationCleanupJob(db=db_session, settings=settings).cleanup_expired_data(now=NOW)

    assert result == {"schedules": 1, "medications": 1, "notifications": 0, "administrations": 0}
