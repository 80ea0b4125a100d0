from datetime import datetime, timedelta
import json
import random
from faker import Faker
from sqlalchemy.orm import Session

from schoolmed.config import get_settings, school_now
from schoolmed.database import get_sessionmaker, init_db
from schoolmed.models import (
    HealthEvent,
    HealthEventStatus,
    HealthEventType,
    MedicationFrequencyType,
    MedicationPriority,
    MedicationTimeOfDay,
    StudentMedication,
    StudentMedicationStatus,
    User,
    UserRole,
)

fake = Faker("en_GB")

MEDICATIONS = [
    ("Salbutamol inhaler", "2 puffs"),
    ("Methylphenidate", "10mg"),
    ("Cetirizine", "5mg"),
    ("Insulin lispro", "4 units"),
    ("Paracetamol", "250mg"),
    ("Amoxicillin", "250mg"),
]

LOCATIONS = ["Playground", "Gym", "Classroom 3B", "Canteen", "Science lab", "Library"]


def _user(db: Session, role: UserRole, **extra) -> User:
    user = User(
        username=f"{role.value.lower()}-{fake.unique.user_name()}",
        full_name=fake.name(),
        email=fake.unique.email(),
        role=role.value,
        created_by="DEMO",
        **extra,
    )
    db.add(user)
    return user


def generate_demo_data(db: Session, students: int = 40, now: datetime | None = None) -> None:
    now = now or school_now()
    today = now.date()

    for _ in range(2):
        _user(db, UserRole.MANAGER)
    for _ in range(3):
        _user(db, UserRole.SCHOOLNURSE)
    db.flush()
    nurses = db.query(User).filter(User.role == UserRole.SCHOOLNURSE.value).all()

    for index in range(students):
        parent = _user(db, UserRole.PARENT)
        student = _user(db, UserRole.STUDENT, student_code=f"HS{index + 1:04d}")
        db.flush()

        if random.random() < 0.6:
            name, dosage = random.choice(MEDICATIONS)
            start = today - timedelta(days=random.randint(0, 10))
            status = random.choice(
                [StudentMedicationStatus.APPROVED, StudentMedicationStatus.ACTIVE, StudentMedicationStatus.ACTIVE]
            )
            use_specific = random.random() < 0.5
            doses = random.randint(1, 30)
            db.add(
                StudentMedication(
                    student_id=student.id,
                    parent_id=parent.id,
                    medication_name=name,
                    dosage=dosage,
                    instructions=fake.sentence(nb_words=8),
                    frequency_type=random.choice(list(MedicationFrequencyType)[:3]),
                    time_of_day=(
                        MedicationTimeOfDay.SPECIFIC_TIME
                        if use_specific
                        else random.choice(list(MedicationTimeOfDay)[:7])
                    ),
                    specific_times=json.dumps(["08:00", "12:30"]) if use_specific else None,
                    skip_weekends=random.random() < 0.7,
                    start_date=start,
                    end_date=start + timedelta(days=random.randint(5, 30)),
                    status=status,
                    priority=random.choice(list(MedicationPriority)),
                    require_nurse_confirmation=random.random() < 0.3,
                    total_doses=doses + random.randint(0, 20),
                    remaining_doses=doses,
                    approved_at=now - timedelta(minutes=random.randint(1, 600)),
                    created_by="DEMO",
                )
            )

        if random.random() < 0.25:
            status = random.choice(list(HealthEventStatus)[:3])
            created = now - timedelta(minutes=random.randint(1, 240))
            handler = random.choice(nurses) if status != HealthEventStatus.PENDING else None
            db.add(
                HealthEvent(
                    code=fake.bothify(text="HE-####"),
                    student_id=student.id,
                    handled_by_id=handler.id if handler else None,
                    event_type=random.choice(list(HealthEventType)),
                    description=fake.sentence(nb_words=10),
                    location=random.choice(LOCATIONS),
                    occurred_at=created - timedelta(minutes=random.randint(0, 10)),
                    is_emergency=random.random() < 0.1,
                    status=status,
                    assigned_at=created + timedelta(minutes=2) if handler else None,
                    completed_at=now - timedelta(minutes=30) if status == HealthEventStatus.COMPLETED else None,
                    created_by="DEMO",
                    created_date=created,
                )
            )

    db.commit()


if __name__ == "__main__":
    settings = get_settings()
    if settings.ENVIRONMENT.lower() != "development":
        raise SystemExit("Demo data generation is only permitted with ENVIRONMENT=development")

    init_db()
    SessionLocal = get_sessionmaker()
    db = SessionLocal()
    try:
        generate_demo_data(db)
    finally:
        db.close()

    print("Demo data generation complete")
