"""Create school medication and health event tables.

Revision ID: 20261019_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql


revision = "20261019_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

PRIORITIES = ("LOW", "NORMAL", "HIGH", "CRITICAL")


def _id_type(bind):
    if bind.dialect.name == "postgresql":
        return postgresql.UUID(as_uuid=True)
    return sa.String(36)


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("created_date", sa.DateTime(), nullable=True),
        sa.Column("last_updated_by", sa.String(length=64), nullable=True),
        sa.Column("last_updated_date", sa.DateTime(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    tables = set(inspect(bind).get_table_names())
    id_type = _id_type(bind)
    priority = sa.Enum(*PRIORITIES, name="medicationpriority")

    if "users" not in tables:
        op.create_table(
            "users",
            sa.Column("id", id_type, primary_key=True),
            sa.Column("username", sa.String(length=64), nullable=False),
            sa.Column("full_name", sa.String(length=128), nullable=False),
            sa.Column("email", sa.String(length=128), nullable=True),
            sa.Column("role", sa.String(length=32), nullable=False),
            sa.Column("student_code", sa.String(length=32), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_audit_columns(),
            sa.UniqueConstraint("username", name="uq_users_username"),
        )

    if "student_medications" not in tables:
        op.create_table(
            "student_medications",
            sa.Column("id", id_type, primary_key=True),
            sa.Column("student_id", id_type, sa.ForeignKey("users.id"), nullable=False),
            sa.Column("parent_id", id_type, sa.ForeignKey("users.id"), nullable=True),
            sa.Column("approved_by_id", id_type, sa.ForeignKey("users.id"), nullable=True),
            sa.Column("medication_name", sa.String(length=128), nullable=False),
            sa.Column("dosage", sa.String(length=64), nullable=False),
            sa.Column("instructions", sa.Text(), nullable=True),
            sa.Column(
                "frequency_type",
                sa.Enum("DAILY", "EVERY_OTHER_DAY", "WEEKLY", "AS_NEEDED", name="medicationfrequencytype"),
                nullable=False,
            ),
            sa.Column(
                "time_of_day",
                sa.Enum(
                    "BEFORE_BREAKFAST",
                    "AFTER_BREAKFAST",
                    "BEFORE_LUNCH",
                    "AFTER_LUNCH",
                    "BEFORE_DINNER",
                    "AFTER_DINNER",
                    "BEFORE_BED",
                    "SPECIFIC_TIME",
                    name="medicationtimeofday",
                ),
                nullable=False,
            ),
            sa.Column("specific_times", sa.Text(), nullable=True),
            sa.Column("skip_dates", sa.Text(), nullable=True),
            sa.Column("skip_weekends", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("expiry_date", sa.Date(), nullable=True),
            sa.Column(
                "status",
                sa.Enum(
                    "PENDING_APPROVAL",
                    "APPROVED",
                    "REJECTED",
                    "ACTIVE",
                    "COMPLETED",
                    "DISCONTINUED",
                    name="studentmedicationstatus",
                ),
                nullable=False,
            ),
            sa.Column("priority", priority, nullable=False),
            sa.Column("auto_generate_schedule", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("require_nurse_confirmation", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("total_doses", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("remaining_doses", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("low_stock_alert_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("approved_at", sa.DateTime(), nullable=True),
            sa.Column("rejection_reason", sa.Text(), nullable=True),
            *_audit_columns(),
        )
        op.create_index("ix_student_medications_status", "student_medications", ["status"])

    if "medication_administrations" not in tables:
        op.create_table(
            "medication_administrations",
            sa.Column("id", id_type, primary_key=True),
            sa.Column(
                "student_medication_id", id_type, sa.ForeignKey("student_medications.id"), nullable=False
            ),
            sa.Column("administered_by_id", id_type, sa.ForeignKey("users.id"), nullable=True),
            sa.Column("administered_at", sa.DateTime(), nullable=False),
            sa.Column("actual_dosage", sa.String(length=64), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("student_refused", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("refusal_reason", sa.Text(), nullable=True),
            *_audit_columns(),
        )

    if "medication_schedules" not in tables:
        op.create_table(
            "medication_schedules",
            sa.Column("id", id_type, primary_key=True),
            sa.Column(
                "student_medication_id", id_type, sa.ForeignKey("student_medications.id"), nullable=False
            ),
            sa.Column("scheduled_date", sa.Date(), nullable=False),
            sa.Column("scheduled_time", sa.Time(), nullable=False),
            sa.Column("scheduled_dosage", sa.String(length=64), nullable=True),
            sa.Column(
                "status",
                sa.Enum(
                    "PENDING",
                    "COMPLETED",
                    "MISSED",
                    "CANCELLED",
                    "STUDENT_ABSENT",
                    name="medicationschedulestatus",
                ),
                nullable=False,
            ),
            sa.Column("priority", priority, nullable=False),
            sa.Column(
                "administration_id", id_type, sa.ForeignKey("medication_administrations.id"), nullable=True
            ),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
            sa.Column("missed_at", sa.DateTime(), nullable=True),
            sa.Column("missed_reason", sa.Text(), nullable=True),
            sa.Column("reminder_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("reminder_sent_at", sa.DateTime(), nullable=True),
            sa.Column("reminder_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("requires_nurse_confirmation", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("confirmed_by_nurse_id", id_type, sa.ForeignKey("users.id"), nullable=True),
            sa.Column("confirmed_at", sa.DateTime(), nullable=True),
            sa.Column("special_instructions", sa.Text(), nullable=True),
            *_audit_columns(),
        )
        op.create_index(
            "ix_medication_schedules_medication_date",
            "medication_schedules",
            ["student_medication_id", "scheduled_date"],
        )

    if "health_events" not in tables:
        op.create_table(
            "health_events",
            sa.Column("id", id_type, primary_key=True),
            sa.Column("code", sa.String(length=32), nullable=True),
            sa.Column("student_id", id_type, sa.ForeignKey("users.id"), nullable=False),
            sa.Column("handled_by_id", id_type, sa.ForeignKey("users.id"), nullable=True),
            sa.Column(
                "event_type",
                sa.Enum(
                    "INJURY",
                    "ILLNESS",
                    "ALLERGIC_REACTION",
                    "FALL",
                    "CHRONIC_ILLNESS_EPISODE",
                    "OTHER",
                    name="healtheventtype",
                ),
                nullable=False,
            ),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("location", sa.String(length=128), nullable=True),
            sa.Column("occurred_at", sa.DateTime(), nullable=True),
            sa.Column("is_emergency", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column(
                "status",
                sa.Enum("PENDING", "IN_PROGRESS", "COMPLETED", "CANCELLED", name="healtheventstatus"),
                nullable=False,
            ),
            sa.Column("assigned_at", sa.DateTime(), nullable=True),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
            *_audit_columns(),
        )

    if "notifications" not in tables:
        op.create_table(
            "notifications",
            sa.Column("id", id_type, primary_key=True),
            sa.Column("title", sa.String(length=256), nullable=False),
            sa.Column("content", sa.Text(), nullable=True),
            sa.Column(
                "notification_type",
                sa.Enum(
                    "HEALTH_CHECK",
                    "HEALTH_EVENT",
                    "VACCINATION",
                    "APPOINTMENT",
                    "GENERAL",
                    name="notificationtype",
                ),
                nullable=False,
            ),
            sa.Column(
                "kind",
                sa.Enum(
                    "ESCALATION",
                    "PROCESSING_REMINDER",
                    "DOSE_REMINDER",
                    "LOW_STOCK_ALERT",
                    "GENERAL",
                    name="notificationkind",
                ),
                nullable=False,
            ),
            sa.Column("sender_id", id_type, sa.ForeignKey("users.id"), nullable=True),
            sa.Column("recipient_id", id_type, sa.ForeignKey("users.id"), nullable=False),
            sa.Column("requires_confirmation", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("read_at", sa.DateTime(), nullable=True),
            sa.Column("is_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("confirmed_at", sa.DateTime(), nullable=True),
            sa.Column("end_date", sa.DateTime(), nullable=True),
            sa.Column("health_event_id", id_type, sa.ForeignKey("health_events.id"), nullable=True),
            sa.Column(
                "student_medication_id", id_type, sa.ForeignKey("student_medications.id"), nullable=True
            ),
            sa.Column(
                "medication_schedule_id", id_type, sa.ForeignKey("medication_schedules.id"), nullable=True
            ),
            *_audit_columns(),
        )
        op.create_index("ix_notifications_kind", "notifications", ["kind"])
        op.create_index("ix_notifications_health_event_id", "notifications", ["health_event_id"])


def downgrade() -> None:
    for table in (
        "notifications",
        "health_events",
        "medication_schedules",
        "medication_administrations",
        "student_medications",
        "users",
    ):
        op.drop_table(table)
