"""Initial schema - tracked entities and report scheduling tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # Users
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True, index=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )

    # Partners
    op.create_table(
        "partners",
        *_base_columns(),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, index=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("rating", sa.Float, server_default=sa.text("0.0")),
        sa.Column("total_projects", sa.Integer, server_default=sa.text("0")),
        sa.Column("completed_projects", sa.Integer, server_default=sa.text("0")),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True, index=True),
    )

    # Projects
    op.create_table(
        "projects",
        *_base_columns(),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("progress", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("budget", sa.Numeric(14, 2), nullable=True),
        sa.Column("actual_cost", sa.Numeric(14, 2), nullable=True),
        sa.Column(
            "owner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=True,
            index=True,
        ),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True, index=True),
    )

    op.create_table(
        "project_partners",
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id"),
            primary_key=True,
        ),
        sa.Column(
            "partner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("partners.id"),
            primary_key=True,
        ),
    )

    # Tasks
    op.create_table(
        "tasks",
        *_base_columns(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="todo"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("type", sa.String(20), nullable=False, server_default="task"),
        sa.Column(
            "assignee_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column(
            "partner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("partners.id"),
            nullable=True,
            index=True,
        ),
        sa.Column("due_date", sa.Date, nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )

    # Report configs
    op.create_table(
        "report_configs",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("period", sa.String(20), nullable=False, server_default="weekly"),
        sa.Column("day_of_week", sa.Integer, nullable=True),
        sa.Column("day_of_month", sa.Integer, nullable=True),
        sa.Column("send_time", sa.String(5), nullable=False, server_default="09:00"),
        sa.Column("recipients", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("status", sa.String(20), nullable=False, server_default="paused"),
        sa.Column("next_run_at", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("last_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_by_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True
        ),
    )

    # Generated reports
    op.create_table(
        "generated_reports",
        *_base_columns(),
        sa.Column(
            "report_config_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("report_configs.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("period", sa.String(20), nullable=False),
        sa.Column("format", sa.String(10), nullable=False, server_default="csv"),
        sa.Column("date_range_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("date_range_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("report_data", postgresql.JSONB, nullable=True),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("is_manual", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("sent_to", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivery_status", sa.String(20), nullable=False, server_default="not_requested"),
        sa.Column("delivery_error", sa.Text, nullable=True),
    )


def downgrade() -> None:
    op.drop_table("generated_reports")
    op.drop_table("report_configs")
    op.drop_table("tasks")
    op.drop_table("project_partners")
    op.drop_table("projects")
    op.drop_table("partners")
    op.drop_table("users")
