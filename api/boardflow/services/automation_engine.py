"""Automation execution engine for matched rules.

Invariants:
- Steps run strictly in list order and a failing step never stops the next one.
- Every failing step leaves one "error" log row naming its action type.
- One "success" summary row follows each rule run, even when every step failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.core.config import AutomationConfig
from boardflow.services import automation_actions
from boardflow.services.automation_actions import ActionContext, AutomationExecutionError
from boardflow.services.automation_log_service import LOG_ERROR, LOG_SUCCESS, record_log
from boardflow.services.automation_types import (
    AI_FILL_FIELDS,
    CALL_WEBHOOK,
    CHANGE_STATUS,
    MOVE_TO_BOARD,
    MOVE_TO_GROUP,
    NOTIFY,
    SEND_EMAIL,
    ActionStep,
    ChangeEvent,
    RuleDefinition,
)
from boardflow.services.outbound import ExternalAPIError
from boardflow.utils.redaction import redact_secrets

logger = logging.getLogger("boardflow.services.automation_engine")

ActionHandler = Callable[[ActionContext, dict[str, Any]], Awaitable[None]]

ACTION_HANDLERS: dict[str, ActionHandler] = {
    MOVE_TO_BOARD: automation_actions.move_to_board,
    MOVE_TO_GROUP: automation_actions.move_to_group,
    CALL_WEBHOOK: automation_actions.call_webhook,
    SEND_EMAIL: automation_actions.send_email,
    NOTIFY: automation_actions.notify,
    CHANGE_STATUS: automation_actions.change_status,
    AI_FILL_FIELDS: automation_actions.ai_fill_fields,
}


@dataclass(slots=True)
class RuleExecution:
    """Outcome of running one rule against one event."""

    attempted: int = 0
    failures: list[str] = field(default_factory=list)


async def execute_step(ctx: ActionContext, step: ActionStep) -> None:
    """Run a single action step, raising on failure."""
    handler = ACTION_HANDLERS.get(step.type)
    if not handler:
        raise AutomationExecutionError(f"unsupported_action:{step.type}")
    await handler(ctx, step.config)


async def execute_rule(
    session: AsyncSession,
    *,
    rule: RuleDefinition,
    event: ChangeEvent,
    config: AutomationConfig,
) -> RuleExecution:
    """Execute every action step of a matched rule and record the outcome."""
    ctx = ActionContext(session=session, rule=rule, event=event, config=config)
    outcome = RuleExecution()
    for step in rule.actions:
        outcome.attempted += 1
        try:
            await execute_step(ctx, step)
        except Exception as exc:
            await session.rollback()
            if isinstance(exc, (AutomationExecutionError, ExternalAPIError)):
                reason = exc.message
                logger.warning("Automation %s step %s failed: %s", rule.id, step.type, redact_secrets(reason))
            else:
                reason = str(exc) or exc.__class__.__name__
                logger.exception("Automation %s step %s raised", rule.id, step.type)
            outcome.failures.append(step.type)
            await record_log(
                session,
                automation_id=rule.id,
                status=LOG_ERROR,
                message=f"Failed to execute {step.type}: {reason}",
            )

    # TODO: report partial/all-failed runs in the summary status once the log UI can show them.
    await record_log(
        session,
        automation_id=rule.id,
        status=LOG_SUCCESS,
        message=f"Processed event {event.id} with {len(rule.actions)} action(s)",
    )
    logger.info(
        "Automation %s ran %d step(s) for event %s (%d failed)",
        rule.id,
        outcome.attempted,
        event.id,
        len(outcome.failures),
    )
    return outcome
