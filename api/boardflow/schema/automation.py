"""Automation rule, run, and inspection schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from boardflow.models.automation import ACTION_TYPES, STATUS_CHANGED
from boardflow.schema.base import ORMModel


class ActionStepPayload(BaseModel):
    """One ordered action step."""
    type: str
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("type")
    @classmethod
    def _known_type(cls, value: str) -> str:
        if value not in ACTION_TYPES:
            raise ValueError(f"unsupported action type: {value}")
        return value


def _validate_actions(action_type: str | None, action_config: Any) -> None:
    if isinstance(action_config, dict) and action_type not in ACTION_TYPES:
        raise ValueError("action_type must name a supported action for single-action rules")


class AutomationRuleCreate(BaseModel):
    """Payload for creating an automation rule."""
    board_id: UUID
    name: str
    is_active: bool = True
    trigger_type: str = STATUS_CHANGED
    trigger_config: dict[str, Any] | None = None
    action_type: str | None = None
    action_config: list[ActionStepPayload] | dict[str, Any] | None = None

    @model_validator(mode="after")
    def _check_actions(self) -> "AutomationRuleCreate":
        _validate_actions(self.action_type, self.action_config)
        return self


class AutomationRuleUpdate(BaseModel):
    """Payload for updating an automation rule."""
    name: str | None = None
    is_active: bool | None = None
    trigger_type: str | None = None
    trigger_config: dict[str, Any] | None = None
    action_type: str | None = None
    action_config: list[ActionStepPayload] | dict[str, Any] | None = None

    @model_validator(mode="after")
    def _check_actions(self) -> "AutomationRuleUpdate":
        if "action_config" in self.model_fields_set and isinstance(self.action_config, dict):
            _validate_actions(self.action_type, self.action_config)
        return self


class AutomationRuleRead(ORMModel):
    """Automation rule representation."""
    id: UUID
    board_id: UUID
    name: str
    is_active: bool
    trigger_type: str
    trigger_config: dict[str, Any] | None = None
    action_type: str | None = None
    action_config: Any = None
    created_at: datetime
    updated_at: datetime


class TriggerRepairRequest(BaseModel):
    column_id: UUID


class RunCycleRequest(BaseModel):
    board_id: UUID | None = None


class RunCycleResponse(BaseModel):
    processed: int


class AutomationConfigStatus(BaseModel):
    """Which external providers are configured; values are never echoed."""
    database_configured: bool
    email_relay_configured: bool
    ai_configured: bool
    service_key_configured: bool
    queue_enabled: bool


class AutomationSummary(ORMModel):
    name: str
    board_id: UUID
    is_active: bool
    trigger_config: dict[str, Any] | None = None
    action_config: Any = None


class AutomationLogRead(ORMModel):
    id: UUID
    automation_id: UUID
    status: str
    message: str
    created_at: datetime
    automation: AutomationSummary | None = None


class StatusColumnRead(BaseModel):
    id: UUID
    board_id: UUID
    board_name: str | None = None
    name: str
    type: str
    config: dict[str, Any] | None = None


class ChangeEventRead(ORMModel):
    id: UUID
    board_id: UUID
    item_id: UUID
    column_id: UUID
    column_name: str | None = None
    old_value: Any = None
    new_value: Any = None
    created_at: datetime
    processed_at: datetime | None = None
