from schoolmed.config import Settings
from schoolmed.jobs.health_event import HealthEventJob
from schoolmed.jobs.registry import (
    CRITICAL_JOBS,
    DEVELOPMENT_JOBS,
    PRODUCTION_JOBS,
    RunnerConfig,
    find_job,
    jobs_for_environment,
    make_job_callable,
    register_recurring_jobs,
    remove_recurring_jobs,
)


class RecordingRunner:
    def __init__(self):
        self.added = {}
        self.removed = []

    def add_or_update(self, job_name, func, cron, *, timezone, queue, retry):
        self.added[job_name] = {"func": func, "cron": cron, "timezone": timezone, "queue": queue, "retry": retry}

    def remove_if_exists(self, job_name):
        self.removed.append(job_name)


def test_production_table_includes_critical_lane():
    settings = Settings(ENVIRONMENT="production", TIMEZONE="Asia/Ho_Chi_Minh")
    runner = RecordingRunner()

    names = register_recurring_jobs(runner, settings)

    assert len(names) == len(PRODUCTION_JOBS) + len(CRITICAL_JOBS)
    assert runner.added["process-tomorrow-medications"]["cron"] == "0 18-23 * * *"
    assert runner.added["medication-cleanup-full"]["cron"] == "0 2,8,14,20 * * *"
    assert runner.added["critical-health-events"]["queue"] == "critical"
    assert runner.added["health-events-all"]["retry"].delays_seconds == (30, 60, 120)
    assert runner.added["health-event-cleanup"]["retry"].attempts == 1
    assert {entry["timezone"] for entry in runner.added.values()} == {"Asia/Ho_Chi_Minh"}


def test_critical_lane_can_be_disabled():
    settings = Settings(ENVIRONMENT="production", ENABLE_CRITICAL_JOBS=False)

    names = {definition.name for definition in jobs_for_environment(settings)}

    assert "critical-health-events" not in names
    assert "health-events-all" in names


def test_development_table_is_lighter():
    settings = Settings(ENVIRONMENT="Development")

    jobs = jobs_for_environment(settings)

    assert jobs == list(DEVELOPMENT_JOBS)
    assert all(definition.name.startswith("dev-") for definition in jobs)
    assert find_job("health-events-all", settings) is None
    assert find_job("dev-health-events", settings).method == "process_all_health_events"


def test_remove_covers_every_table():
    runner = RecordingRunner()

    removed = remove_recurring_jobs(runner)

    assert set(runner.removed) == set(removed)
    assert "dev-reminders" in removed
    assert "critical-medication-reminders" in removed
    assert "process-today-medications" in removed


def test_job_callable_builds_fresh_handler_per_call(monkeypatch):
    settings = Settings(ENVIRONMENT="production")
    seen = []

    def fake_cleanup(self, now=None):
        seen.append(self)
        return 0

    monkeypatch.setattr(HealthEventJob, "cleanup_old_completed_events", fake_cleanup)
    run = make_job_callable(find_job("health-event-cleanup", settings), settings)

    run()
    run()

    assert len(seen) == 2
    assert seen[0] is not seen[1]
    assert all(job.settings is settings for job in seen)


def test_runner_config_from_settings():
    settings = Settings(JOB_WORKER_COUNT=8, JOB_QUEUES=["critical", "default"], TIMEZONE="Europe/London")

    config = RunnerConfig.from_settings(settings)

    assert config.worker_count == 8
    assert config.queues == ("critical", "default")
    assert config.timezone == "Europe/London"
    assert config.default_retry_attempts == 3
