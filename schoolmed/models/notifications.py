import enum
from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import mapped_column, relationship
from .base import Base, UUIDMixin, AuditMixin


class NotificationType(str, enum.Enum):
    HEALTH_CHECK = "HEALTH_CHECK"
    HEALTH_EVENT = "HEALTH_EVENT"
    VACCINATION = "VACCINATION"
    APPOINTMENT = "APPOINTMENT"
    GENERAL = "GENERAL"


class NotificationKind(str, enum.Enum):
    """What produced a notification; the dedup guard matches on this."""

    ESCALATION = "ESCALATION"
    PROCESSING_REMINDER = "PROCESSING_REMINDER"
    DOSE_REMINDER = "DOSE_REMINDER"
    LOW_STOCK_ALERT = "LOW_STOCK_ALERT"
    GENERAL = "GENERAL"


class Notification(Base, UUIDMixin, AuditMixin):
    __tablename__ = "notifications"

    title = mapped_column(String(256), nullable=False)
    content = mapped_column(Text, nullable=True)
    notification_type = mapped_column(
        Enum(NotificationType, name="notificationtype"),
        default=NotificationType.GENERAL,
        nullable=False,
    )
    kind = mapped_column(
        Enum(NotificationKind, name="notificationkind"),
        default=NotificationKind.GENERAL,
        nullable=False,
        index=True,
    )

    sender_id = mapped_column(ForeignKey("users.id"), nullable=True)
    recipient_id = mapped_column(ForeignKey("users.id"), nullable=False)

    requires_confirmation = mapped_column(Boolean, default=False, nullable=False)
    is_read = mapped_column(Boolean, default=False, nullable=False)
    read_at = mapped_column(DateTime, nullable=True)
    is_confirmed = mapped_column(Boolean, default=False, nullable=False)
    confirmed_at = mapped_column(DateTime, nullable=True)
    end_date = mapped_column(DateTime, nullable=True)

    health_event_id = mapped_column(ForeignKey("health_events.id"), nullable=True, index=True)
    student_medication_id = mapped_column(ForeignKey("student_medications.id"), nullable=True)
    medication_schedule_id = mapped_column(ForeignKey("medication_schedules.id"), nullable=True)

    health_event = relationship("HealthEvent", back_populates="notifications")
