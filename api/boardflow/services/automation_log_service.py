"""Append-only automation log writes and debug listings."""

from __future__ import annotations

import uuid

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.models.automation import Automation, AutomationLog
from boardflow.utils.redaction import redact_secrets

LOG_SUCCESS = "success"
LOG_ERROR = "error"
MESSAGE_LIMIT = 2000


async def record_log(
    session: AsyncSession, *, automation_id: uuid.UUID, status: str, message: str
) -> AutomationLog:
    """Append and commit one log row for a rule."""
    entry = AutomationLog(
        automation_id=automation_id,
        status=status,
        message=redact_secrets(message)[:MESSAGE_LIMIT],
    )
    session.add(entry)
    await session.commit()
    return entry


async def list_logs(
    session: AsyncSession, *, automation_id: uuid.UUID | None = None, limit: int = 50
) -> list[tuple[AutomationLog, Automation | None]]:
    """Newest-first log rows joined with their rule."""
    stmt = select(AutomationLog, Automation).outerjoin(Automation, Automation.id == AutomationLog.automation_id)
    if automation_id:
        stmt = stmt.where(AutomationLog.automation_id == automation_id)
    stmt = stmt.order_by(desc(AutomationLog.created_at)).limit(limit)
    result = await session.execute(stmt)
    return [(row[0], row[1]) for row in result.all()]
