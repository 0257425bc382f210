"""Shared helpers for API tests."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.models.automation import STATUS_CHANGED, Automation, AutomationEvent, AutomationLog
from boardflow.models.board import Board, BoardColumn, CellValue, Group, Item


@dataclass(slots=True)
class SeededBoard:
    """IDs of a small board with a status, email, and notes column plus one item."""

    board_id: uuid.UUID
    group_id: uuid.UUID
    item_id: uuid.UUID
    status_column_id: uuid.UUID
    email_column_id: uuid.UUID
    notes_column_id: uuid.UUID


async def seed_board(
    session: AsyncSession,
    *,
    name: str = "Sprint",
    item_name: str = "Write launch notes",
    cells: dict[str, Any] | None = None,
) -> SeededBoard:
    """Create a board with one group, three columns, and one item; commits."""
    board = Board(name=name)
    session.add(board)
    await session.flush()
    group = Group(board_id=board.id, name="Backlog", position=0)
    status_column = BoardColumn(
        board_id=board.id,
        name="Status",
        type="status",
        position=0,
        config={"options": [{"label": "Done", "color": "#00c875"}, {"label": "Working", "color": "#fdab3d"}]},
    )
    email_column = BoardColumn(board_id=board.id, name="Contact Email", type="email", position=1)
    notes_column = BoardColumn(board_id=board.id, name="Notes", type="text", position=2)
    session.add_all([group, status_column, email_column, notes_column])
    await session.flush()
    item = Item(board_id=board.id, group_id=group.id, name=item_name, position=0)
    session.add(item)
    await session.flush()

    by_name = {"Status": status_column, "Contact Email": email_column, "Notes": notes_column}
    for column_name, value in (cells or {}).items():
        session.add(CellValue(item_id=item.id, column_id=by_name[column_name].id, value=value))
    await session.commit()
    return SeededBoard(
        board_id=board.id,
        group_id=group.id,
        item_id=item.id,
        status_column_id=status_column.id,
        email_column_id=email_column.id,
        notes_column_id=notes_column.id,
    )


async def add_rule(
    session: AsyncSession,
    *,
    board_id: uuid.UUID,
    trigger_config: dict[str, Any] | None = None,
    actions: list[dict[str, Any]] | None = None,
    action_type: str | None = None,
    action_config: Any = None,
    name: str = "Rule",
    is_active: bool = True,
) -> uuid.UUID:
    rule = Automation(
        board_id=board_id,
        name=name,
        is_active=is_active,
        trigger_type=STATUS_CHANGED,
        trigger_config=trigger_config or {},
        action_type=action_type,
        action_config=actions if actions is not None else action_config,
    )
    session.add(rule)
    await session.commit()
    return rule.id


async def add_event(
    session: AsyncSession,
    seeded: SeededBoard,
    *,
    new_value: Any,
    old_value: Any = None,
    column_id: uuid.UUID | None = None,
) -> uuid.UUID:
    event = AutomationEvent(
        board_id=seeded.board_id,
        item_id=seeded.item_id,
        column_id=column_id or seeded.status_column_id,
        old_value=old_value,
        new_value=new_value,
    )
    session.add(event)
    await session.commit()
    return event.id


async def logs_for(session: AsyncSession, rule_id: uuid.UUID) -> list[tuple[str, str]]:
    """(status, message) pairs for a rule in insertion order."""
    rows = await session.scalars(
        select(AutomationLog).where(AutomationLog.automation_id == rule_id).order_by(AutomationLog.created_at)
    )
    return [(row.status, row.message) for row in rows]


async def cell_value(session: AsyncSession, *, item_id: uuid.UUID, column_id: uuid.UUID) -> Any:
    cell = await session.scalar(
        select(CellValue)
        .where(CellValue.item_id == item_id, CellValue.column_id == column_id)
        .execution_options(populate_existing=True)
    )
    return cell.value if cell else None


async def reload(session: AsyncSession, model: type, row_id: uuid.UUID) -> Any:
    """Fetch a row bypassing the identity map's cached state."""
    return await session.get(model, row_id, populate_existing=True)


class RecordingPost:
    """Stand-in for `outbound.post_json` that records calls and replies with a canned response."""

    def __init__(self, status_code: int = 200, body: Any = None) -> None:
        self.status_code = status_code
        self.body = body if body is not None else {"ok": True}
        self.calls: list[dict[str, Any]] = []

    async def __call__(
        self,
        url: str,
        payload: Any,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        self.calls.append({"url": url, "payload": payload, "headers": headers or {}, "timeout": timeout})
        return httpx.Response(self.status_code, json=self.body, request=httpx.Request("POST", url))
