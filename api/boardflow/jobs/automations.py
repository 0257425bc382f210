"""Worker job entrypoints for automation cycles."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from boardflow.db.session import async_session
from boardflow.services import automation_runner

logger = logging.getLogger("boardflow.jobs.automations")


def run_automation_cycle_job(*, board_id: str | None = None) -> dict[str, Any]:
    """Process one batch of pending change events within a worker context."""

    async def _run() -> dict[str, Any]:
        async with async_session() as session:
            result = await automation_runner.run_cycle(
                session, board_id=uuid.UUID(board_id) if board_id else None
            )
            return result.as_response()

    result = asyncio.run(_run())
    logger.info("Automation cycle complete for %s (processed=%s)", board_id or "all boards", result["processed"])
    return result


def sweep_pending_events_job() -> dict[str, Any]:
    """Scheduled catch-up for backlogs left behind by missed or oversized triggers."""
    return run_automation_cycle_job()
