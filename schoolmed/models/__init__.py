from .base import Base
from .user import User, UserRole
from .medication import (
    MedicationAdministration,
    MedicationFrequencyType,
    MedicationPriority,
    MedicationSchedule,
    MedicationScheduleStatus,
    MedicationTimeOfDay,
    StudentMedication,
    StudentMedicationStatus,
)
from .health_event import HealthEvent, HealthEventStatus, HealthEventType
from .notifications import Notification, NotificationKind, NotificationType

__all__ = [
    "Base",
    "User",
    "UserRole",
    "MedicationAdministration",
    "MedicationFrequencyType",
    "MedicationPriority",
    "MedicationSchedule",
    "MedicationScheduleStatus",
    "MedicationTimeOfDay",
    "StudentMedication",
    "StudentMedicationStatus",
    "HealthEvent",
    "HealthEventStatus",
    "HealthEventType",
    "Notification",
    "NotificationKind",
    "NotificationType",
]
