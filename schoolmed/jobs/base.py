from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from sqlalchemy.orm import Session

from ..config import Settings, get_settings, now_in
from ..database import get_sessionmaker

SYSTEM_ACTOR = "SYSTEM"
CLEANUP_ACTOR = "SYSTEM_CLEANUP"


class BaseJob:
    """Common plumbing for recurring job handlers.

    Every handler call runs in its own unit of work: a session is opened for the
    call and closed when it returns. A session passed in at construction is used
    as-is and left open for its owner.
    """

    def __init__(self, db: Session | None = None, settings: Settings | None = None):
        self._external_db = db
        self.settings = settings or get_settings()

    def _get_db(self) -> Session:
        if self._external_db is not None:
            return self._external_db
        SessionLocal = get_sessionmaker()
        return SessionLocal()

    @contextmanager
    def unit_of_work(self) -> Iterator[Session]:
        db = self._get_db()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            if self._external_db is None:
                db.close()

    def local_now(self) -> datetime:
        return now_in(self.settings.TIMEZONE)
