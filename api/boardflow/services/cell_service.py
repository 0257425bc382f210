"""Cell writes with status change capture.

Every write to a status-typed cell that changes the stored value appends a
pending automation event; automation actions write through the same helper so
their status changes feed later cycles.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.models.automation import AutomationEvent
from boardflow.models.board import BoardColumn, CellValue, Item

logger = logging.getLogger("boardflow.services.cell_service")


@dataclass(slots=True)
class CellWrite:
    cell: CellValue
    event: AutomationEvent | None = None


async def get_cell(session: AsyncSession, *, item_id: uuid.UUID, column_id: uuid.UUID) -> CellValue | None:
    return await session.scalar(
        select(CellValue).where(CellValue.item_id == item_id, CellValue.column_id == column_id)
    )


async def write_cell(
    session: AsyncSession,
    *,
    item_id: uuid.UUID,
    column_id: uuid.UUID,
    value: Any,
) -> CellWrite:
    """Update the cell in place when it exists, otherwise insert it.

    The caller owns the commit.
    """
    cell = await get_cell(session, item_id=item_id, column_id=column_id)
    old_value = cell.value if cell else None
    if cell:
        cell.value = value
    else:
        cell = CellValue(item_id=item_id, column_id=column_id, value=value)
        session.add(cell)

    event: AutomationEvent | None = None
    if old_value != value:
        event = await _capture_status_change(
            session, item_id=item_id, column_id=column_id, old_value=old_value, new_value=value
        )
    await session.flush()
    return CellWrite(cell=cell, event=event)


async def _capture_status_change(
    session: AsyncSession,
    *,
    item_id: uuid.UUID,
    column_id: uuid.UUID,
    old_value: Any,
    new_value: Any,
) -> AutomationEvent | None:
    column = await session.get(BoardColumn, column_id)
    if not column or not column.is_status:
        return None
    item = await session.get(Item, item_id)
    board_id = item.board_id if item else column.board_id
    event = AutomationEvent(
        board_id=board_id,
        item_id=item_id,
        column_id=column_id,
        old_value=old_value,
        new_value=new_value,
    )
    session.add(event)
    logger.debug("Captured status change on item %s column %s", item_id, column_id)
    return event


async def update_cell_for_board(
    session: AsyncSession,
    *,
    board_id: uuid.UUID,
    item_id: uuid.UUID,
    column_id: uuid.UUID,
    value: Any,
) -> CellWrite:
    """Validate board ownership of the item and column, then write and commit."""
    item = await session.get(Item, item_id)
    if not item or item.board_id != board_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    column = await session.get(BoardColumn, column_id)
    if not column or column.board_id != board_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Column not found")
    result = await write_cell(session, item_id=item_id, column_id=column_id, value=value)
    await session.commit()
    return result
