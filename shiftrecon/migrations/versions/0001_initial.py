"""Initial reconciliation schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

shift_pay_type = postgresql.ENUM("hourly", "daily", name="shift_pay_type", create_type=False)
shift_status = postgresql.ENUM("draft", "published", "locked", name="shift_status", create_type=False)
assignment_status = postgresql.ENUM(
    "pending",
    "accepted",
    "confirmed",
    "rejected",
    "removed",
    name="assignment_status",
    create_type=False,
)
time_entry_status = postgresql.ENUM(
    "pending",
    "approved",
    "rejected",
    name="time_entry_status",
    create_type=False,
)
attendance_confirmation_status = postgresql.ENUM(
    "present",
    "absent",
    name="attendance_confirmation_status",
    create_type=False,
)
audit_actor_type = postgresql.ENUM("MANAGER", "SYSTEM", name="audit_actor_type", create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    shift_pay_type.create(bind, checkfirst=True)
    shift_status.create(bind, checkfirst=True)
    assignment_status.create(bind, checkfirst=True)
    time_entry_status.create(bind, checkfirst=True)
    attendance_confirmation_status.create(bind, checkfirst=True)
    audit_actor_type.create(bind, checkfirst=True)

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_clients_company_id", "clients", ["company_id"], unique=False)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False, server_default=sa.text("''")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_employees_company_id", "employees", ["company_id"], unique=False)

    op.create_table(
        "shifts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("shift_code", sa.String(length=32), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(timezone=False), nullable=True),
        sa.Column("end_time", sa.Time(timezone=False), nullable=True),
        sa.Column("slots", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("pay_type", shift_pay_type, nullable=False, server_default="hourly"),
        sa.Column("status", shift_status, nullable=False, server_default="draft"),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
        sa.CheckConstraint("slots >= 1", name="ck_shifts_slots_positive"),
    )
    op.create_index("ix_shifts_company_id", "shifts", ["company_id"], unique=False)
    op.create_index("ix_shifts_date", "shifts", ["date"], unique=False)
    op.create_index("ix_shifts_client_id", "shifts", ["client_id"], unique=False)

    op.create_table(
        "shift_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("shift_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("status", assignment_status, nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["shift_id"], ["shifts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("shift_id", "employee_id", name="uq_shift_assignments_shift_employee"),
    )
    op.create_index("ix_shift_assignments_company_id", "shift_assignments", ["company_id"], unique=False)
    op.create_index("ix_shift_assignments_shift_id", "shift_assignments", ["shift_id"], unique=False)
    op.create_index("ix_shift_assignments_employee_id", "shift_assignments", ["employee_id"], unique=False)

    op.create_table(
        "time_entries",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("shift_id", sa.Integer(), nullable=True),
        sa.Column("clock_in", sa.DateTime(timezone=True), nullable=False),
        sa.Column("clock_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("break_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", time_entry_status, nullable=False, server_default="pending"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["shift_id"], ["shifts.id"], ondelete="SET NULL"),
        sa.CheckConstraint("break_minutes >= 0", name="ck_time_entries_break_minutes_non_negative"),
    )
    op.create_index("ix_time_entries_company_id", "time_entries", ["company_id"], unique=False)
    op.create_index("ix_time_entries_employee_id", "time_entries", ["employee_id"], unique=False)
    op.create_index("ix_time_entries_shift_id", "time_entries", ["shift_id"], unique=False)
    op.create_index("ix_time_entries_clock_in", "time_entries", ["clock_in"], unique=False)

    op.create_table(
        "employee_availability_configs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("default_available", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "blocked_weekdays",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("blocked_start_time", sa.Time(timezone=False), nullable=True),
        sa.Column("blocked_end_time", sa.Time(timezone=False), nullable=True),
        sa.Column("effective_from", sa.Date(), nullable=True),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.Column("reason", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_employee_availability_configs_company_id",
        "employee_availability_configs",
        ["company_id"],
        unique=False,
    )
    op.create_index(
        "ix_employee_availability_configs_employee_id",
        "employee_availability_configs",
        ["employee_id"],
        unique=False,
    )

    op.create_table(
        "employee_availability_overrides",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column("source", sa.String(length=40), nullable=False, server_default=sa.text("'admin'")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", "day_date", name="uq_employee_availability_overrides_employee_day"),
    )
    op.create_index(
        "ix_employee_availability_overrides_company_id",
        "employee_availability_overrides",
        ["company_id"],
        unique=False,
    )
    op.create_index(
        "ix_employee_availability_overrides_employee_id",
        "employee_availability_overrides",
        ["employee_id"],
        unique=False,
    )
    op.create_index(
        "ix_employee_availability_overrides_day_date",
        "employee_availability_overrides",
        ["day_date"],
        unique=False,
    )

    op.create_table(
        "shift_attendance_confirmations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("shift_id", sa.Integer(), nullable=False),
        sa.Column("assignment_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("status", attendance_confirmation_status, nullable=False),
        sa.Column("confirmed_by", sa.String(length=255), nullable=False),
        sa.Column(
            "confirmed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["shift_id"], ["shifts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assignment_id"], ["shift_assignments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("assignment_id", name="uq_shift_attendance_confirmations_assignment"),
    )
    op.create_index(
        "ix_shift_attendance_confirmations_company_id",
        "shift_attendance_confirmations",
        ["company_id"],
        unique=False,
    )
    op.create_index(
        "ix_shift_attendance_confirmations_shift_id",
        "shift_attendance_confirmations",
        ["shift_id"],
        unique=False,
    )
    op.create_index(
        "ix_shift_attendance_confirmations_employee_id",
        "shift_attendance_confirmations",
        ["employee_id"],
        unique=False,
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "ts_utc",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("ip", sa.String(length=128), nullable=True),
        sa.Column("user_agent", sa.String(length=1024), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"], unique=False)
    op.create_index("ix_audit_logs_company_id", "audit_logs", ["company_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_company_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("shift_attendance_confirmations")
    op.drop_table("employee_availability_overrides")
    op.drop_table("employee_availability_configs")
    op.drop_table("time_entries")
    op.drop_table("shift_assignments")
    op.drop_table("shifts")
    op.drop_table("employees")
    op.drop_table("clients")
    op.drop_table("companies")

    bind = op.get_bind()
    audit_actor_type.drop(bind, checkfirst=True)
    attendance_confirmation_status.drop(bind, checkfirst=True)
    time_entry_status.drop(bind, checkfirst=True)
    assignment_status.drop(bind, checkfirst=True)
    shift_status.drop(bind, checkfirst=True)
    shift_pay_type.drop(bind, checkfirst=True)
