import enum
from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import mapped_column, relationship
from .base import Base, UUIDMixin, AuditMixin


class HealthEventStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class HealthEventType(str, enum.Enum):
    INJURY = "INJURY"
    ILLNESS = "ILLNESS"
    ALLERGIC_REACTION = "ALLERGIC_REACTION"
    FALL = "FALL"
    CHRONIC_ILLNESS_EPISODE = "CHRONIC_ILLNESS_EPISODE"
    OTHER = "OTHER"


class HealthEvent(Base, UUIDMixin, AuditMixin):
    __tablename__ = "health_events"

    code = mapped_column(String(32), nullable=True)
    student_id = mapped_column(ForeignKey("users.id"), nullable=False)
    handled_by_id = mapped_column(ForeignKey("users.id"), nullable=True)
    event_type = mapped_column(
        Enum(HealthEventType, name="healtheventtype"),
        default=HealthEventType.OTHER,
        nullable=False,
    )
    description = mapped_column(Text, nullable=True)
    location = mapped_column(String(128), nullable=True)
    occurred_at = mapped_column(DateTime, nullable=True)
    is_emergency = mapped_column(Boolean, default=False, nullable=False)

    status = mapped_column(
        Enum(HealthEventStatus, name="healtheventstatus"),
        default=HealthEventStatus.PENDING,
        nullable=False,
    )
    assigned_at = mapped_column(DateTime, nullable=True)
    completed_at = mapped_column(DateTime, nullable=True)

    student = relationship("User", foreign_keys=[student_id])
    handled_by = relationship("User", foreign_keys=[handled_by_id])
    notifications = relationship("Notification", back_populates="health_event")
