"""Run coordinator: drain pending status-change events through matching rules.

Invariants:
- A cycle handles at most `batch_size` events, oldest first.
- Every fetched event is marked processed at the end of the cycle regardless of
  matches or step failures; `processed_at` is only ever set on pending rows.
- Failures while listing events or rules propagate and abort the cycle.

Implementation notes:
- By default events are fetched and only marked processed after execution, so
  two overlapping cycles may both act on an event (at-least-once).
- With `claim_before_execute`, a conditional UPDATE ... RETURNING claims the
  batch up front so concurrent cycles never share an event.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.core.config import AutomationConfig, settings
from boardflow.models.automation import Automation, AutomationEvent
from boardflow.services import automation_engine
from boardflow.services.automation_types import ChangeEvent, RuleDefinition
from boardflow.services.trigger_matcher import match_events

logger = logging.getLogger("boardflow.services.automation_runner")


@dataclass(slots=True)
class CycleResult:
    processed: int
    matched: int = 0
    failed_steps: int = 0

    def as_response(self) -> dict[str, int]:
        return {"processed": self.processed}


def _utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def _pending_events_query(board_id: uuid.UUID | None, limit: int):
    stmt = select(AutomationEvent).where(AutomationEvent.processed_at.is_(None))
    if board_id:
        stmt = stmt.where(AutomationEvent.board_id == board_id)
    return stmt.order_by(AutomationEvent.created_at.asc()).limit(limit)


async def fetch_pending_events(
    session: AsyncSession, *, board_id: uuid.UUID | None = None, limit: int = 100
) -> list[ChangeEvent]:
    """Oldest-first pending events, optionally for a single board."""
    rows = await session.scalars(_pending_events_query(board_id, limit))
    return [ChangeEvent.from_row(row) for row in rows]


async def claim_pending_events(
    session: AsyncSession, *, board_id: uuid.UUID | None = None, limit: int = 100
) -> list[ChangeEvent]:
    """Atomically mark a batch processed and return only the rows this call claimed."""
    candidates = _pending_events_query(board_id, limit).with_only_columns(AutomationEvent.id)
    result = await session.execute(
        update(AutomationEvent)
        .where(AutomationEvent.id.in_(candidates), AutomationEvent.processed_at.is_(None))
        .values(processed_at=_utcnow())
        .returning(AutomationEvent.id)
        .execution_options(synchronize_session=False)
    )
    claimed_ids = list(result.scalars().all())
    await session.commit()
    if not claimed_ids:
        return []
    rows = await session.scalars(
        select(AutomationEvent)
        .where(AutomationEvent.id.in_(claimed_ids))
        .order_by(AutomationEvent.created_at.asc())
        .execution_options(populate_existing=True)
    )
    return [ChangeEvent.from_row(row) for row in rows]


async def fetch_active_rules(session: AsyncSession, board_ids: Sequence[uuid.UUID]) -> list[RuleDefinition]:
    """Active rules for exactly the given boards, with normalized action lists."""
    rows = await session.scalars(
        select(Automation).where(Automation.is_active.is_(True), Automation.board_id.in_(list(board_ids)))
    )
    return [RuleDefinition.from_row(row) for row in rows]


async def mark_processed(session: AsyncSession, event_ids: Sequence[uuid.UUID]) -> None:
    if not event_ids:
        return
    await session.execute(
        update(AutomationEvent)
        .where(AutomationEvent.id.in_(list(event_ids)), AutomationEvent.processed_at.is_(None))
        .values(processed_at=_utcnow())
    )
    await session.commit()


async def run_cycle(
    session: AsyncSession,
    *,
    board_id: uuid.UUID | None = None,
    config: AutomationConfig | None = None,
) -> CycleResult:
    """Process one batch of pending events and report how many were fetched."""
    config = config or AutomationConfig.from_settings(settings)
    if config.claim_before_execute:
        events = await claim_pending_events(session, board_id=board_id, limit=config.batch_size)
    else:
        events = await fetch_pending_events(session, board_id=board_id, limit=config.batch_size)
    if not events:
        return CycleResult(processed=0)

    board_ids = list(dict.fromkeys(event.board_id for event in events))
    rules = await fetch_active_rules(session, board_ids)
    matches = match_events(events, rules)
    logger.info(
        "Automation cycle: %d event(s), %d active rule(s), %d match(es)", len(events), len(rules), len(matches)
    )

    failed_steps = 0
    for match in matches:
        outcome = await automation_engine.execute_rule(session, rule=match.rule, event=match.event, config=config)
        failed_steps += len(outcome.failures)

    if not config.claim_before_execute:
        await mark_processed(session, [event.id for event in events])
    return CycleResult(processed=len(events), matched=len(matches), failed_steps=failed_steps)
