"""Automation rule storage, run dispatch, and inspection helpers."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.jobs.automations import run_automation_cycle_job
from boardflow.models.automation import Automation, AutomationEvent
from boardflow.models.board import STATUS_COLUMN_TYPE, Board, BoardColumn
from boardflow.schema.automation import (
    ActionStepPayload,
    AutomationRuleCreate,
    AutomationRuleUpdate,
    ChangeEventRead,
    StatusColumnRead,
)
from boardflow.services import automation_runner
from boardflow.services.task_queue import task_queue


def _dump_action_config(action_config: list[ActionStepPayload] | dict[str, Any] | None) -> Any:
    if isinstance(action_config, list):
        return [step.model_dump() for step in action_config]
    return action_config


async def list_rules(session: AsyncSession, *, board_id: uuid.UUID | None = None) -> list[Automation]:
    """List automation rules, optionally for one board."""
    stmt = select(Automation).order_by(Automation.created_at)
    if board_id:
        stmt = stmt.where(Automation.board_id == board_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_rule(session: AsyncSession, *, rule_id: uuid.UUID) -> Automation:
    """Fetch a single automation rule by ID."""
    rule = await session.get(Automation, rule_id)
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found")
    return rule


async def create_rule(session: AsyncSession, *, payload: AutomationRuleCreate) -> Automation:
    """Create a new automation rule on an existing board."""
    if not await session.get(Board, payload.board_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Board not found")
    rule = Automation(
        board_id=payload.board_id,
        name=payload.name,
        is_active=payload.is_active,
        trigger_type=payload.trigger_type,
        trigger_config=payload.trigger_config or {},
        action_type=payload.action_type,
        action_config=_dump_action_config(payload.action_config),
    )
    session.add(rule)
    await session.commit()
    await session.refresh(rule)
    return rule


async def update_rule(session: AsyncSession, *, rule: Automation, payload: AutomationRuleUpdate) -> Automation:
    """Update an automation rule."""
    fields = payload.model_fields_set
    if "name" in fields and payload.name is not None:
        rule.name = payload.name
    if "is_active" in fields and payload.is_active is not None:
        rule.is_active = payload.is_active
    if "trigger_type" in fields and payload.trigger_type is not None:
        rule.trigger_type = payload.trigger_type
    if "trigger_config" in fields:
        rule.trigger_config = payload.trigger_config or {}
    if "action_type" in fields:
        rule.action_type = payload.action_type
    if "action_config" in fields:
        rule.action_config = _dump_action_config(payload.action_config)
    await session.commit()
    await session.refresh(rule)
    return rule


async def delete_rule(session: AsyncSession, *, rule: Automation) -> None:
    """Delete an automation rule."""
    await session.delete(rule)
    await session.commit()


async def repair_trigger_column(session: AsyncSession, *, rule: Automation, column_id: uuid.UUID) -> Automation:
    """Point a rule's trigger at another column, keeping the rest of its trigger config."""
    rule.trigger_config = {**(rule.trigger_config or {}), "column_id": str(column_id)}
    await session.commit()
    await session.refresh(rule)
    return rule


async def run_cycle(session: AsyncSession, *, board_id: uuid.UUID | None) -> dict[str, Any]:
    """Run one automation cycle on the worker queue, or inline when it is unavailable."""
    async def _fallback() -> dict[str, Any]:
        result = await automation_runner.run_cycle(session, board_id=board_id)
        return result.as_response()

    return await task_queue.enqueue_or_run(
        run_automation_cycle_job,
        fallback=_fallback,
        queue_name="automations",
        timeout_seconds=120,
        description=f"automation-cycle:{board_id or 'all'}",
        board_id=str(board_id) if board_id else None,
    )


async def list_status_columns(session: AsyncSession) -> list[StatusColumnRead]:
    """All status-typed columns with their board names."""
    result = await session.execute(
        select(BoardColumn, Board.name)
        .outerjoin(Board, Board.id == BoardColumn.board_id)
        .where(BoardColumn.type == STATUS_COLUMN_TYPE)
        .order_by(BoardColumn.board_id, BoardColumn.position)
    )
    return [
        StatusColumnRead(
            id=column.id,
            board_id=column.board_id,
            board_name=board_name,
            name=column.name,
            type=column.type,
            config=column.config,
        )
        for column, board_name in result.all()
    ]


async def list_recent_events(session: AsyncSession, *, limit: int = 10) -> list[ChangeEventRead]:
    """Newest change events, processed or not, with their column names."""
    result = await session.execute(
        select(AutomationEvent, BoardColumn.name)
        .outerjoin(BoardColumn, BoardColumn.id == AutomationEvent.column_id)
        .order_by(desc(AutomationEvent.created_at))
        .limit(limit)
    )
    return [
        ChangeEventRead.model_validate(event).model_copy(update={"column_name": column_name})
        for event, column_name in result.all()
    ]
