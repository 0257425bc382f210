"""Automation rule, run coordinator, and inspection endpoints."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Body, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.api.deps import get_db, require_service_key
from boardflow.core.config import settings
from boardflow.schema.automation import (
    AutomationConfigStatus,
    AutomationLogRead,
    AutomationRuleCreate,
    AutomationRuleRead,
    AutomationRuleUpdate,
    AutomationSummary,
    ChangeEventRead,
    RunCycleRequest,
    RunCycleResponse,
    StatusColumnRead,
    TriggerRepairRequest,
)
from boardflow.services import automation_log_service, automation_service
from boardflow.services.task_queue import task_queue
from boardflow.utils.redaction import redact_secrets

logger = logging.getLogger("boardflow.api.automations")

router = APIRouter(dependencies=[Depends(require_service_key)])


@router.post("/process", response_model=RunCycleResponse)
async def process_automation_events(
    payload: RunCycleRequest | None = Body(default=None),
    session: AsyncSession = Depends(get_db),
) -> RunCycleResponse | JSONResponse:
    """Run one automation cycle over pending status changes."""
    board_id = payload.board_id if payload else None
    try:
        result = await automation_service.run_cycle(session, board_id=board_id)
    except Exception as exc:
        logger.exception("Automation cycle failed for %s", board_id or "all boards")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": redact_secrets(str(exc)) or exc.__class__.__name__},
        )
    return RunCycleResponse(processed=result["processed"])


@router.get("/process", response_model=AutomationConfigStatus)
async def automation_config_status() -> AutomationConfigStatus:
    """Report which providers are configured without running anything."""
    return AutomationConfigStatus(
        database_configured=bool(settings.database_url),
        email_relay_configured=bool(settings.email_relay_url),
        ai_configured=bool(settings.ai_api_key),
        service_key_configured=bool(settings.automation_service_key),
        queue_enabled=task_queue.enabled,
    )


@router.get("/logs", response_model=list[AutomationLogRead])
async def list_automation_logs(
    automation_id: uuid.UUID | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    session: AsyncSession = Depends(get_db),
) -> list[AutomationLogRead]:
    """Recent execution log rows with their rule details."""
    rows = await automation_log_service.list_logs(session, automation_id=automation_id, limit=limit)
    return [
        AutomationLogRead.model_validate(entry).model_copy(
            update={"automation": AutomationSummary.model_validate(rule) if rule else None}
        )
        for entry, rule in rows
    ]


@router.get("/debug/columns", response_model=list[StatusColumnRead])
async def list_status_columns(session: AsyncSession = Depends(get_db)) -> list[StatusColumnRead]:
    return await automation_service.list_status_columns(session)


@router.get("/debug/events", response_model=list[ChangeEventRead])
async def list_change_events(
    limit: int = Query(default=10, ge=1, le=500),
    session: AsyncSession = Depends(get_db),
) -> list[ChangeEventRead]:
    return await automation_service.list_recent_events(session, limit=limit)


@router.get("", response_model=list[AutomationRuleRead])
async def list_automation_rules(
    board_id: uuid.UUID | None = None,
    session: AsyncSession = Depends(get_db),
) -> list[AutomationRuleRead]:
    """List automation rules, optionally for one board."""
    rules = await automation_service.list_rules(session, board_id=board_id)
    return [AutomationRuleRead.model_validate(rule) for rule in rules]


@router.post("", response_model=AutomationRuleRead, status_code=status.HTTP_201_CREATED)
async def create_automation_rule(
    payload: AutomationRuleCreate,
    session: AsyncSession = Depends(get_db),
) -> AutomationRuleRead:
    """Create a new automation rule."""
    rule = await automation_service.create_rule(session, payload=payload)
    return AutomationRuleRead.model_validate(rule)


@router.patch("/{rule_id}", response_model=AutomationRuleRead)
async def update_automation_rule(
    rule_id: uuid.UUID,
    payload: AutomationRuleUpdate,
    session: AsyncSession = Depends(get_db),
) -> AutomationRuleRead:
    """Update an automation rule."""
    rule = await automation_service.get_rule(session, rule_id=rule_id)
    rule = await automation_service.update_rule(session, rule=rule, payload=payload)
    return AutomationRuleRead.model_validate(rule)


@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    response_model=None,
)
async def delete_automation_rule(
    rule_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
) -> None:
    """Delete an automation rule."""
    rule = await automation_service.get_rule(session, rule_id=rule_id)
    await automation_service.delete_rule(session, rule=rule)


@router.post("/{rule_id}/repair-trigger", response_model=AutomationRuleRead)
async def repair_automation_trigger(
    rule_id: uuid.UUID,
    payload: TriggerRepairRequest,
    session: AsyncSession = Depends(get_db),
) -> AutomationRuleRead:
    """Point a misconfigured rule at the correct status column."""
    rule = await automation_service.get_rule(session, rule_id=rule_id)
    rule = await automation_service.repair_trigger_column(session, rule=rule, column_id=payload.column_id)
    return AutomationRuleRead.model_validate(rule)
