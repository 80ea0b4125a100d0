from fastapi import APIRouter

from ..config import get_settings
from ..database import is_database_available
from .schemas import HealthOut

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthOut)
def health() -> HealthOut:
    settings = get_settings()
    database_ok = is_database_available()
    return HealthOut(
        status="ok" if database_ok else "degraded",
        database="up" if database_ok else "down",
        environment=settings.ENVIRONMENT,
    )
