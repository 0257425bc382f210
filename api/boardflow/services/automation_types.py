"""Plain snapshots of events and rules handed to the matcher and executor.

ORM rows are copied into these dataclasses when a cycle loads them, so the
engine never touches expired instances after a rollback and never mutates the
stored rows while matching.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from boardflow.models.automation import (  # noqa: F401  action types are re-exported for the engine
    ACTION_TYPES,
    AI_FILL_FIELDS,
    CALL_WEBHOOK,
    CHANGE_STATUS,
    MOVE_TO_BOARD,
    MOVE_TO_GROUP,
    NOTIFY,
    SEND_EMAIL,
    Automation,
    AutomationEvent,
)


@dataclass(frozen=True, slots=True)
class ActionStep:
    type: str
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One observed write to a status cell."""

    id: uuid.UUID
    board_id: uuid.UUID
    item_id: uuid.UUID
    column_id: uuid.UUID
    old_value: Any = None
    new_value: Any = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: AutomationEvent) -> "ChangeEvent":
        return cls(
            id=row.id,
            board_id=row.board_id,
            item_id=row.item_id,
            column_id=row.column_id,
            old_value=row.old_value,
            new_value=row.new_value,
            created_at=row.created_at,
        )


@dataclass(frozen=True, slots=True)
class RuleDefinition:
    """Automation rule with its actions normalized into an ordered step list."""

    id: uuid.UUID
    board_id: uuid.UUID
    name: str
    is_active: bool
    trigger_type: str
    trigger_config: dict[str, Any]
    actions: tuple[ActionStep, ...]

    @classmethod
    def from_row(cls, row: Automation) -> "RuleDefinition":
        trigger_config = row.trigger_config if isinstance(row.trigger_config, dict) else {}
        return cls(
            id=row.id,
            board_id=row.board_id,
            name=row.name,
            is_active=bool(row.is_active),
            trigger_type=row.trigger_type,
            trigger_config=dict(trigger_config),
            actions=normalize_actions(row.action_type, row.action_config),
        )


def normalize_actions(action_type: str | None, action_config: Any) -> tuple[ActionStep, ...]:
    """Wrap legacy single-action rules into a one-element step list."""
    if isinstance(action_config, list):
        steps: list[ActionStep] = []
        for entry in action_config:
            if not isinstance(entry, dict):
                continue
            config = entry.get("config")
            steps.append(
                ActionStep(
                    type=str(entry.get("type") or ""),
                    config=config if isinstance(config, dict) else {},
                )
            )
        return tuple(steps)
    if not action_type:
        return ()
    return (ActionStep(type=action_type, config=action_config if isinstance(action_config, dict) else {}),)


@dataclass(frozen=True, slots=True)
class RuleMatch:
    event: ChangeEvent
    rule: RuleDefinition
