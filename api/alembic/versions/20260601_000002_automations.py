"""Add automation rules, status change events, and execution logs.

Revision ID: 20260601_000002
Revises: 20260601_000001
Create Date: 2026-06-01 00:00:02
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20260601_000002"
down_revision: Union[str, None] = "20260601_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add automation tables and the pending event index."""
    op.create_table(
        "automations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("board_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("trigger_type", sa.String(length=64), nullable=False),
        sa.Column("trigger_config", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("action_type", sa.String(length=64), nullable=True),
        sa.Column("action_config", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["board_id"], ["boards.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_automations_board_id"), "automations", ["board_id"], unique=False)

    op.create_table(
        "automation_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("board_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("item_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("column_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("old_value", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("new_value", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_automation_events_board_id"), "automation_events", ["board_id"], unique=False)
    op.create_index(op.f("ix_automation_events_item_id"), "automation_events", ["item_id"], unique=False)
    op.create_index(op.f("ix_automation_events_created_at"), "automation_events", ["created_at"], unique=False)
    op.create_index(
        op.f("ix_automation_events_processed_at"), "automation_events", ["processed_at"], unique=False
    )
    # Cycles scan only pending rows, oldest first.
    op.create_index(
        "ix_automation_events_pending",
        "automation_events",
        ["created_at"],
        unique=False,
        postgresql_where=sa.text("processed_at IS NULL"),
    )

    op.create_table(
        "automation_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("automation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["automation_id"], ["automations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_automation_logs_automation_id"), "automation_logs", ["automation_id"], unique=False)
    op.create_index(op.f("ix_automation_logs_created_at"), "automation_logs", ["created_at"], unique=False)


def downgrade() -> None:
    """Drop automation tables."""
    op.drop_index(op.f("ix_automation_logs_created_at"), table_name="automation_logs")
    op.drop_index(op.f("ix_automation_logs_automation_id"), table_name="automation_logs")
    op.drop_table("automation_logs")
    op.drop_index("ix_automation_events_pending", table_name="automation_events")
    op.drop_index(op.f("ix_automation_events_processed_at"), table_name="automation_events")
    op.drop_index(op.f("ix_automation_events_created_at"), table_name="automation_events")
    op.drop_index(op.f("ix_automation_events_item_id"), table_name="automation_events")
    op.drop_index(op.f("ix_automation_events_board_id"), table_name="automation_events")
    op.drop_table("automation_events")
    op.drop_index(op.f("ix_automations_board_id"), table_name="automations")
    op.drop_table("automations")
