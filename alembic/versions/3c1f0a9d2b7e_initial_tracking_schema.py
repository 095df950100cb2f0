"""initial tracking schema

Revision ID: 3c1f0a9d2b7e
Revises:
Create Date: 2026-10-17 09:12:44.204711

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d2b7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
    )
    op.create_index("ix_departments_id", "departments", ["id"], unique=False)
    op.create_index("ix_departments_code", "departments", ["code"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(), nullable=False, unique=True),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_role", "users", ["role"], unique=False)
    op.create_index("ix_users_department_id", "users", ["department_id"], unique=False)

    op.create_table(
        "files",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("file_no", sa.String(), nullable=False, unique=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("stage", sa.String(), nullable=False, server_default="PRE_REPRO"),
        sa.Column("status", sa.String(), nullable=False, server_default="AWAITING_ASSIGNMENT"),
        sa.Column("priority", sa.String(), nullable=False, server_default="NORMAL"),
        sa.Column("file_type", sa.String(), nullable=True),
        sa.Column("difficulty_weight", sa.Float(), nullable=False, server_default="1"),
        sa.Column("assigned_designer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("target_assignee_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("current_department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("pending_takeover", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_files_id", "files", ["id"], unique=False)
    op.create_index("ix_files_stage", "files", ["stage"], unique=False)
    op.create_index("ix_files_status", "files", ["status"], unique=False)
    op.create_index("ix_files_file_type", "files", ["file_type"], unique=False)
    op.create_index("ix_files_assigned_designer_id", "files", ["assigned_designer_id"], unique=False)
    op.create_index("ix_files_target_assignee_id", "files", ["target_assignee_id"], unique=False)
    op.create_index("ix_files_current_department_id", "files", ["current_department_id"], unique=False)

    op.create_table(
        "time_entries",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("file_id", sa.Integer(), sa.ForeignKey("files.id"), nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.CheckConstraint(
            "ended_at IS NULL OR ended_at >= started_at",
            name="ck_time_entries_end_after_start",
        ),
    )
    op.create_index("ix_time_entries_user_id", "time_entries", ["user_id"], unique=False)
    op.create_index("ix_time_entries_file_id", "time_entries", ["file_id"], unique=False)
    op.create_index("ix_time_entries_department_id", "time_entries", ["department_id"], unique=False)
    op.create_index("ix_time_entries_started_at", "time_entries", ["started_at"], unique=False)
    op.create_index("ix_time_entries_user_started", "time_entries", ["user_id", "started_at"], unique=False)
    op.create_index(
        "uq_time_entries_open_per_user",
        "time_entries",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("ended_at IS NULL"),
        sqlite_where=sa.text("ended_at IS NULL"),
    )

    op.create_table(
        "work_sessions",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("file_id", sa.Integer(), sa.ForeignKey("files.id"), nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
    )
    op.create_index("ix_work_sessions_user_id", "work_sessions", ["user_id"], unique=False)
    op.create_index("ix_work_sessions_file_id", "work_sessions", ["file_id"], unique=False)
    op.create_index("ix_work_sessions_department_id", "work_sessions", ["department_id"], unique=False)
    op.create_index(
        "uq_work_sessions_active_per_user",
        "work_sessions",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("ended_at IS NULL"),
        sqlite_where=sa.text("ended_at IS NULL"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("file_id", sa.Integer(), sa.ForeignKey("files.id"), nullable=False),
        sa.Column("action_type", sa.String(), nullable=False),
        sa.Column("by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("from_department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("to_department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_file_id", "audit_logs", ["file_id"], unique=False)
    op.create_index("ix_audit_logs_action_type", "audit_logs", ["action_type"], unique=False)
    op.create_index("ix_audit_logs_by_user_id", "audit_logs", ["by_user_id"], unique=False)
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("audit_logs")
    op.drop_index("uq_work_sessions_active_per_user", table_name="work_sessions")
    op.drop_table("work_sessions")
    op.drop_index("uq_time_entries_open_per_user", table_name="time_entries")
    op.drop_table("time_entries")
    op.drop_table("files")
    op.drop_table("users")
    op.drop_table("departments")
