import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException

from ..config import get_settings
from ..jobs.registry import JobDefinition, find_job, jobs_for_environment, run_job
from .schemas import JobDefinitionOut, JobTableOut, JobTriggerOut, RetryPolicyOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _to_out(definition: JobDefinition) -> JobDefinitionOut:
    retry = None
    if definition.retry is not None:
        retry = RetryPolicyOut(
            attempts=definition.retry.attempts,
            delays_seconds=list(definition.retry.delays_seconds),
        )
    return JobDefinitionOut(
        name=definition.name,
        target=definition.target,
        cron=definition.cron,
        queue=definition.queue,
        retry=retry,
    )


def _run_in_background(definition: JobDefinition) -> None:
    try:
        run_job(definition)
    except Exception:
        logger.exception("Manually triggered job %s failed", definition.name)


@router.get("", response_model=JobTableOut)
def list_jobs() -> JobTableOut:
    settings = get_settings()
    return JobTableOut(
        environment=settings.ENVIRONMENT,
        timezone=settings.TIMEZONE,
        jobs=[_to_out(definition) for definition in jobs_for_environment(settings)],
    )


@router.post("/{job_name}/trigger", response_model=JobTriggerOut, status_code=202)
def trigger_job(job_name: str, background_tasks: BackgroundTasks) -> JobTriggerOut:
    definition = find_job(job_name)
    if definition is None:
        raise HTTPException(status_code=404, detail="Job not found")
    background_tasks.add_task(_run_in_background, definition)
    logger.info("Queued manual run of job %s", definition.name)
    return JobTriggerOut(status="queued", job=definition.name, target=definition.target)
