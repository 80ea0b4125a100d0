import enum
from sqlalchemy import Boolean, String
from sqlalchemy.orm import mapped_column
from .base import Base, UUIDMixin, AuditMixin


class UserRole(str, enum.Enum):
    MANAGER = "MANAGER"
    SCHOOLNURSE = "SCHOOLNURSE"
    PARENT = "PARENT"
    STUDENT = "STUDENT"


class User(Base, UUIDMixin, AuditMixin):
    __tablename__ = "users"

    username = mapped_column(String(64), unique=True, nullable=False)
    full_name = mapped_column(String(128), nullable=False)
    email = mapped_column(String(128), nullable=True)
    role = mapped_column(String(32), nullable=False, default=UserRole.STUDENT.value)
    student_code = mapped_column(String(32), nullable=True)
    is_active = mapped_column(Boolean, default=True, nullable=False)
