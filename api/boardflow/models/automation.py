"""Automation rule, change event, and execution log models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from boardflow.db.base_class import JSON_COMPATIBLE, Base

STATUS_CHANGED = "STATUS_CHANGED"

MOVE_TO_BOARD = "MOVE_TO_BOARD"
MOVE_TO_GROUP = "MOVE_TO_GROUP"
CALL_WEBHOOK = "CALL_WEBHOOK"
SEND_EMAIL = "SEND_EMAIL"
NOTIFY = "NOTIFY"
CHANGE_STATUS = "CHANGE_STATUS"
AI_FILL_FIELDS = "AI_FILL_FIELDS"

ACTION_TYPES = frozenset(
    {MOVE_TO_BOARD, MOVE_TO_GROUP, CALL_WEBHOOK, SEND_EMAIL, NOTIFY, CHANGE_STATUS, AI_FILL_FIELDS}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Automation(Base):
    """Board-scoped rule: a status trigger plus an ordered list of action steps.

    `action_config` holds either a list of `{type, config}` steps or, for rules
    written before multi-step support, a single config object paired with
    `action_type`.
    """

    __tablename__ = "automations"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    board_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    trigger_type: Mapped[str] = mapped_column(String(64), nullable=False, default=STATUS_CHANGED)
    trigger_config: Mapped[dict[str, Any] | None] = mapped_column(JSON_COMPATIBLE)
    action_type: Mapped[str | None] = mapped_column(String(64))
    action_config: Mapped[Any] = mapped_column(JSON_COMPATIBLE)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class AutomationEvent(Base):
    """Captured write to a status cell; `processed_at` is set once and never cleared."""

    __tablename__ = "automation_events"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    board_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    item_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    column_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    old_value: Mapped[Any] = mapped_column(JSON_COMPATIBLE)
    new_value: Mapped[Any] = mapped_column(JSON_COMPATIBLE)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)


class AutomationLog(Base):
    """Append-only execution record for a rule."""

    __tablename__ = "automation_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    automation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("automations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
