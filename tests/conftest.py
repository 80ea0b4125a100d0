import json
import os
from datetime import date, datetime
from uuid import uuid4

import pytest

# Keep the process timezone-independent before schoolmed imports
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("LOG_JSON", "false")


@pytest.fixture
def db_session(tmp_path, monkeypatch):
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")

    from schoolmed.config import get_settings
    from schoolmed.database import reset_engine, get_engine, get_sessionmaker
    from schoolmed.models.base import Base

    get_settings.cache_clear()
    reset_engine()
    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    SessionLocal = get_sessionmaker()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        reset_engine()
        get_settings.cache_clear()


@pytest.fixture
def settings(db_session):
    from schoolmed.config import get_settings

    return get_settings()


@pytest.fixture
def make_user(db_session):
    from schoolmed.models import User, UserRole

    def _make(role=UserRole.STUDENT, **fields):
        suffix = uuid4().hex[:8]
        user = User(
            id=uuid4(),
            username=fields.pop("username", f"{role.value.lower()}-{suffix}"),
            full_name=fields.pop("full_name", f"Test {role.value.title()} {suffix}"),
            role=role.value,
            **fields,
        )
        if role == UserRole.STUDENT and user.student_code is None:
            user.student_code = f"HS-{suffix}"
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_medication(db_session, make_user):
    from schoolmed.models import (
        MedicationFrequencyType,
        MedicationPriority,
        MedicationTimeOfDay,
        StudentMedication,
        StudentMedicationStatus,
        UserRole,
    )

    def _make(**fields):
        student = fields.pop("student", None) or make_user(UserRole.STUDENT)
        parent = fields.pop("parent", None) or make_user(UserRole.PARENT)
        times = fields.pop("times", ["08:00"])
        skip_dates = fields.pop("skip_dates", None)
        values = dict(
            id=uuid4(),
            student_id=student.id,
            parent_id=parent.id,
            medication_name="Salbutamol",
            dosage="2 puffs",
            frequency_type=MedicationFrequencyType.DAILY,
            time_of_day=MedicationTimeOfDay.SPECIFIC_TIME,
            specific_times=json.dumps(times) if times is not None else None,
            skip_dates=json.dumps(skip_dates) if isinstance(skip_dates, list) else skip_dates,
            skip_weekends=False,
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 10),
            status=StudentMedicationStatus.ACTIVE,
            priority=MedicationPriority.NORMAL,
            auto_generate_schedule=True,
            total_doses=30,
            remaining_doses=30,
            created_date=datetime(2023, 12, 20, 9, 0),
        )
        values.update(fields)
        medication = StudentMedication(**values)
        db_session.add(medication)
        db_session.commit()
        return medication

    return _make


@pytest.fixture
def make_schedule(db_session):
    from schoolmed.models import MedicationPriority, MedicationSchedule, MedicationScheduleStatus

    def _make(medication, scheduled_date, scheduled_time, **fields):
        values = dict(
            id=uuid4(),
            student_medication_id=medication.id,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            scheduled_dosage=medication.dosage,
            status=MedicationScheduleStatus.PENDING,
            priority=medication.priority or MedicationPriority.NORMAL,
            created_by="SYSTEM",
            created_date=datetime.combine(scheduled_date, scheduled_time),
        )
        values.update(fields)
        schedule = MedicationSchedule(**values)
        db_session.add(schedule)
        db_session.commit()
        return schedule

    return _make
