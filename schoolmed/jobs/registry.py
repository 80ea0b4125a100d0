from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from ..config import Settings, get_settings
from .base import BaseJob
from .health_event import HealthEventJob
from .medication_cleanup import MedicationCleanupJob
from .medication_reminder import MedicationReminderJob
from .medication_schedule import MedicationScheduleJob

logger = logging.getLogger(__name__)

EVERY_MINUTE = "* * * * *"
EVERY_2_MINUTES = "*/2 * * * *"
EVERY_5_MINUTES = "*/5 * * * *"
EVERY_4_HOURS = "0 */4 * * *"


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int
    delays_seconds: tuple[int, ...] = ()


@dataclass(frozen=True)
class JobDefinition:
    name: str
    job_class: type[BaseJob]
    method: str
    cron: str
    queue: str = "default"
    retry: RetryPolicy | None = None

    @property
    def target(self) -> str:
        return f"{self.job_class.__name__}.{self.method}"


@dataclass(frozen=True)
class RunnerConfig:
    """Startup options handed to the recurring-job runner."""

    queues: tuple[str, ...]
    worker_count: int
    polling_interval_seconds: int
    default_retry_attempts: int
    timezone: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "RunnerConfig":
        return cls(
            queues=tuple(settings.JOB_QUEUES),
            worker_count=settings.JOB_WORKER_COUNT,
            polling_interval_seconds=settings.JOB_POLLING_INTERVAL_SECONDS,
            default_retry_attempts=settings.JOB_DEFAULT_RETRY_ATTEMPTS,
            timezone=settings.TIMEZONE,
        )


class RecurringJobRunner(Protocol):
    def add_or_update(
        self,
        job_name: str,
        func: Callable[[], Any],
        cron: str,
        *,
        timezone: str,
        queue: str,
        retry: RetryPolicy | None,
    ) -> None: ...

    def remove_if_exists(self, job_name: str) -> None: ...


HEALTH_EVENTS_RETRY = RetryPolicy(attempts=3, delays_seconds=(30, 60, 120))
ESCALATION_RETRY = RetryPolicy(attempts=2)
EVENT_CLEANUP_RETRY = RetryPolicy(attempts=1)
FULL_CLEANUP_RETRY = RetryPolicy(attempts=2)


PRODUCTION_JOBS: tuple[JobDefinition, ...] = (
    JobDefinition("process-today-medications", MedicationScheduleJob, "process_today_medications", EVERY_MINUTE),
    JobDefinition(
        "process-approved-to-active", MedicationScheduleJob, "process_approved_to_active_transition", EVERY_MINUTE
    ),
    JobDefinition(
        "process-newly-approved", MedicationScheduleJob, "process_newly_approved_medications", EVERY_MINUTE
    ),
    JobDefinition(
        "process-tomorrow-medications", MedicationScheduleJob, "process_tomorrow_medications", "0 18-23 * * *"
    ),
    JobDefinition("medication-reminders-all", MedicationReminderJob, "process_all_reminders", EVERY_MINUTE, "high"),
    JobDefinition(
        "medication-reminders-upcoming", MedicationReminderJob, "send_upcoming_reminders", EVERY_MINUTE, "high"
    ),
    JobDefinition("medication-overdue-alerts", MedicationReminderJob, "send_overdue_alerts", EVERY_5_MINUTES, "high"),
    JobDefinition("medication-low-stock-alerts", MedicationReminderJob, "check_low_stock_alerts", EVERY_4_HOURS),
    JobDefinition(
        "medication-cleanup-full",
        MedicationCleanupJob,
        "cleanup_expired_data",
        "0 2,8,14,20 * * *",
        "low",
        FULL_CLEANUP_RETRY,
    ),
    JobDefinition("medication-cleanup-expired", MedicationCleanupJob, "cleanup_expired_medications", "30 1 * * *", "low"),
    JobDefinition(
        "medication-cleanup-notifications", MedicationCleanupJob, "cleanup_old_notifications", "0 2 * * *", "low"
    ),
    JobDefinition(
        "medication-cleanup-administration",
        MedicationCleanupJob,
        "cleanup_old_administration_records",
        "30 2 * * *",
        "low",
    ),
    JobDefinition(
        "health-events-all", HealthEventJob, "process_all_health_events", EVERY_MINUTE, "high", HEALTH_EVENTS_RETRY
    ),
    JobDefinition(
        "health-event-reminders",
        HealthEventJob,
        "send_reminder_notifications",
        EVERY_5_MINUTES,
        "high",
        ESCALATION_RETRY,
    ),
    JobDefinition(
        "health-event-cleanup",
        HealthEventJob,
        "cleanup_old_completed_events",
        "0 1 * * *",
        "low",
        EVENT_CLEANUP_RETRY,
    ),
)

DEVELOPMENT_JOBS: tuple[JobDefinition, ...] = (
    JobDefinition("dev-process-medications", MedicationScheduleJob, "process_today_medications", EVERY_2_MINUTES),
    JobDefinition(
        "dev-health-events", HealthEventJob, "process_all_health_events", EVERY_2_MINUTES, retry=HEALTH_EVENTS_RETRY
    ),
    JobDefinition(
        "dev-health-event-reminders",
        HealthEventJob,
        "send_reminder_notifications",
        EVERY_5_MINUTES,
        "high",
        ESCALATION_RETRY,
    ),
    JobDefinition(
        "dev-health-event-cleanup",
        HealthEventJob,
        "cleanup_old_completed_events",
        "0 1 * * *",
        "low",
        EVENT_CLEANUP_RETRY,
    ),
    JobDefinition("dev-reminders", MedicationReminderJob, "process_all_reminders", EVERY_MINUTE, "high"),
    JobDefinition("dev-reminders-upcoming", MedicationReminderJob, "send_upcoming_reminders", EVERY_2_MINUTES, "high"),
    JobDefinition("dev-overdue-alerts", MedicationReminderJob, "send_overdue_alerts", EVERY_5_MINUTES, "high"),
    JobDefinition("dev-low-stock-alerts", MedicationReminderJob, "check_low_stock_alerts", EVERY_4_HOURS),
    JobDefinition("dev-cleanup-expired", MedicationCleanupJob, "cleanup_expired_medications", "30 1 * * *", "low"),
    JobDefinition("dev-cleanup-notifications", MedicationCleanupJob, "cleanup_old_notifications", "0 2 * * *", "low"),
    JobDefinition(
        "dev-cleanup-administration", MedicationCleanupJob, "cleanup_old_administration_records", "30 2 * * *", "low"
    ),
)

CRITICAL_JOBS: tuple[JobDefinition, ...] = (
    JobDefinition(
        "critical-medication-reminders", MedicationReminderJob, "send_immediate_reminders", EVERY_2_MINUTES, "critical"
    ),
    JobDefinition(
        "critical-health-events",
        HealthEventJob,
        "escalate_pending_events",
        EVERY_2_MINUTES,
        "critical",
        ESCALATION_RETRY,
    ),
)


def is_development(settings: Settings) -> bool:
    return settings.ENVIRONMENT.strip().lower() == "development"


def jobs_for_environment(settings: Settings | None = None) -> list[JobDefinition]:
    settings = settings or get_settings()
    if is_development(settings):
        return list(DEVELOPMENT_JOBS)
    jobs = list(PRODUCTION_JOBS)
    if settings.ENABLE_CRITICAL_JOBS:
        jobs.extend(CRITICAL_JOBS)
    return jobs


def find_job(name: str, settings: Settings | None = None) -> JobDefinition | None:
    for definition in jobs_for_environment(settings):
        if definition.name == name:
            return definition
    return None


def make_job_callable(definition: JobDefinition, settings: Settings | None = None) -> Callable[[], Any]:
    """Zero-argument entry point for the runner.

    A new handler instance is built on every call, so each tick gets its own
    unit of work.
    """

    def run() -> Any:
        job = definition.job_class(settings=settings)
        return getattr(job, definition.method)()

    run.__name__ = definition.name.replace("-", "_")
    run.__qualname__ = run.__name__
    return run


def run_job(definition: JobDefinition, settings: Settings | None = None) -> Any:
    logger.info("Running job %s (%s)", definition.name, definition.target)
    result = make_job_callable(definition, settings)()
    logger.info("Job %s finished: %s", definition.name, result)
    return result


def register_recurring_jobs(runner: RecurringJobRunner, settings: Settings | None = None) -> list[str]:
    settings = settings or get_settings()
    jobs = jobs_for_environment(settings)
    logger.info(
        "Scheduling %s recurring jobs for the %s environment", len(jobs), settings.ENVIRONMENT
    )
    for definition in jobs:
        runner.add_or_update(
            definition.name,
            make_job_callable(definition, settings),
            definition.cron,
            timezone=settings.TIMEZONE,
            queue=definition.queue,
            retry=definition.retry,
        )
    return [definition.name for definition in jobs]


def remove_recurring_jobs(runner: RecurringJobRunner) -> list[str]:
    names = sorted(
        {definition.name for definition in (*PRODUCTION_JOBS, *DEVELOPMENT_JOBS, *CRITICAL_JOBS)}
    )
    for name in names:
        runner.remove_if_exists(name)
    return names
