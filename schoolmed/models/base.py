import uuid
from datetime import datetime
from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, mapped_column
from ..config import school_now


class Base(DeclarativeBase):
    type_annotation_map = {uuid.UUID: UUID(as_uuid=True)}


class UUIDMixin:
    id = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


class AuditMixin:
    """Row bookkeeping shared by every school record.

    Timestamps are naive local school time. Rows are never physically removed;
    ``is_deleted`` marks them as gone.
    """

    created_by = mapped_column(String(64), nullable=True)
    created_date = mapped_column(DateTime, default=school_now, nullable=True)
    last_updated_by = mapped_column(String(64), nullable=True)
    last_updated_date = mapped_column(DateTime, nullable=True)
    is_deleted = mapped_column(Boolean, default=False, nullable=False)

    def soft_delete(self, actor: str, when: datetime) -> None:
        self.is_deleted = True
        self.last_updated_by = actor
        self.last_updated_date = when
