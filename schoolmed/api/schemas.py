from pydantic import BaseModel, ConfigDict
from typing import Any, Optional


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class RetryPolicyOut(StrictModel):
    attempts: int
    delays_seconds: list[int] = []


class JobDefinitionOut(StrictModel):
    name: str
    target: str
    cron: str
    queue: str
    retry: Optional[RetryPolicyOut] = None


class JobTableOut(StrictModel):
    environment: str
    timezone: str
    jobs: list[JobDefinitionOut]


class JobTriggerOut(StrictModel):
    status: str
    job: str
    target: str


class HealthOut(StrictModel):
    status: str
    database: str
    environment: str
    details: Optional[dict[str, Any]] = None
