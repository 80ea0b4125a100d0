import enum
from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text, Time
from sqlalchemy.orm import mapped_column, relationship
from .base import Base, UUIDMixin, AuditMixin


class StudentMedicationStatus(str, enum.Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    DISCONTINUED = "DISCONTINUED"


class MedicationScheduleStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    MISSED = "MISSED"
    CANCELLED = "CANCELLED"
    STUDENT_ABSENT = "STUDENT_ABSENT"


class MedicationPriority(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    MedicationPriority.LOW: 0,
    MedicationPriority.NORMAL: 1,
    MedicationPriority.HIGH: 2,
    MedicationPriority.CRITICAL: 3,
}


PriorityType = Enum(MedicationPriority, name="medicationpriority")


class MedicationFrequencyType(str, enum.Enum):
    DAILY = "DAILY"
    EVERY_OTHER_DAY = "EVERY_OTHER_DAY"
    WEEKLY = "WEEKLY"
    AS_NEEDED = "AS_NEEDED"


class MedicationTimeOfDay(str, enum.Enum):
    BEFORE_BREAKFAST = "BEFORE_BREAKFAST"
    AFTER_BREAKFAST = "AFTER_BREAKFAST"
    BEFORE_LUNCH = "BEFORE_LUNCH"
    AFTER_LUNCH = "AFTER_LUNCH"
    BEFORE_DINNER = "BEFORE_DINNER"
    AFTER_DINNER = "AFTER_DINNER"
    BEFORE_BED = "BEFORE_BED"
    SPECIFIC_TIME = "SPECIFIC_TIME"


class StudentMedication(Base, UUIDMixin, AuditMixin):
    __tablename__ = "student_medications"

    student_id = mapped_column(ForeignKey("users.id"), nullable=False)
    parent_id = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_by_id = mapped_column(ForeignKey("users.id"), nullable=True)

    medication_name = mapped_column(String(128), nullable=False)
    dosage = mapped_column(String(64), nullable=False)
    instructions = mapped_column(Text, nullable=True)
    frequency_type = mapped_column(
        Enum(MedicationFrequencyType, name="medicationfrequencytype"),
        default=MedicationFrequencyType.DAILY,
        nullable=False,
    )
    time_of_day = mapped_column(
        Enum(MedicationTimeOfDay, name="medicationtimeofday"),
        default=MedicationTimeOfDay.SPECIFIC_TIME,
        nullable=False,
    )
    # JSON-encoded lists, e.g. '["08:00", "12:30"]' and '["2024-01-15"]'
    specific_times = mapped_column(Text, nullable=True)
    skip_dates = mapped_column(Text, nullable=True)
    skip_weekends = mapped_column(Boolean, default=False, nullable=False)

    start_date = mapped_column(Date, nullable=True)
    end_date = mapped_column(Date, nullable=True)
    expiry_date = mapped_column(Date, nullable=True)

    status = mapped_column(
        Enum(StudentMedicationStatus, name="studentmedicationstatus"),
        default=StudentMedicationStatus.PENDING_APPROVAL,
        nullable=False,
        index=True,
    )
    priority = mapped_column(
        PriorityType,
        default=MedicationPriority.NORMAL,
        nullable=False,
    )
    auto_generate_schedule = mapped_column(Boolean, default=True, nullable=False)
    require_nurse_confirmation = mapped_column(Boolean, default=False, nullable=False)

    total_doses = mapped_column(Integer, default=0, nullable=False)
    remaining_doses = mapped_column(Integer, default=0, nullable=False)
    low_stock_alert_sent = mapped_column(Boolean, default=False, nullable=False)

    approved_at = mapped_column(DateTime, nullable=True)
    rejection_reason = mapped_column(Text, nullable=True)

    student = relationship("User", foreign_keys=[student_id])
    parent = relationship("User", foreign_keys=[parent_id])
    schedules = relationship("MedicationSchedule", back_populates="medication")


class MedicationAdministration(Base, UUIDMixin, AuditMixin):
    __tablename__ = "medication_administrations"

    student_medication_id = mapped_column(ForeignKey("student_medications.id"), nullable=False)
    administered_by_id = mapped_column(ForeignKey("users.id"), nullable=True)
    administered_at = mapped_column(DateTime, nullable=False)
    actual_dosage = mapped_column(String(64), nullable=True)
    notes = mapped_column(Text, nullable=True)
    student_refused = mapped_column(Boolean, default=False, nullable=False)
    refusal_reason = mapped_column(Text, nullable=True)

    medication = relationship("StudentMedication")


class MedicationSchedule(Base, UUIDMixin, AuditMixin):
    __tablename__ = "medication_schedules"
    __table_args__ = (
        Index("ix_medication_schedules_medication_date", "student_medication_id", "scheduled_date"),
    )

    student_medication_id = mapped_column(ForeignKey("student_medications.id"), nullable=False)
    scheduled_date = mapped_column(Date, nullable=False)
    scheduled_time = mapped_column(Time, nullable=False)
    scheduled_dosage = mapped_column(String(64), nullable=True)

    status = mapped_column(
        Enum(MedicationScheduleStatus, name="medicationschedulestatus"),
        default=MedicationScheduleStatus.PENDING,
        nullable=False,
    )
    priority = mapped_column(
        PriorityType,
        default=MedicationPriority.NORMAL,
        nullable=False,
    )
    administration_id = mapped_column(ForeignKey("medication_administrations.id"), nullable=True)
    completed_at = mapped_column(DateTime, nullable=True)
    missed_at = mapped_column(DateTime, nullable=True)
    missed_reason = mapped_column(Text, nullable=True)

    reminder_sent = mapped_column(Boolean, default=False, nullable=False)
    reminder_sent_at = mapped_column(DateTime, nullable=True)
    reminder_count = mapped_column(Integer, default=0, nullable=False)

    requires_nurse_confirmation = mapped_column(Boolean, default=False, nullable=False)
    confirmed_by_nurse_id = mapped_column(ForeignKey("users.id"), nullable=True)
    confirmed_at = mapped_column(DateTime, nullable=True)
    special_instructions = mapped_column(Text, nullable=True)

    medication = relationship("StudentMedication", back_populates="schedules")
    administration = relationship("MedicationAdministration")
