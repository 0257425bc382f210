"""Cell write endpoint that feeds status change capture."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.api.deps import get_db, require_service_key
from boardflow.schema.board import CellValueWrite, CellValueWriteResponse
from boardflow.services import cell_service

router = APIRouter(dependencies=[Depends(require_service_key)])


@router.put(
    "/{board_id}/items/{item_id}/cells/{column_id}",
    response_model=CellValueWriteResponse,
)
async def write_cell_value(
    board_id: uuid.UUID,
    item_id: uuid.UUID,
    column_id: uuid.UUID,
    payload: CellValueWrite,
    session: AsyncSession = Depends(get_db),
) -> CellValueWriteResponse:
    """Upsert a cell; status columns record a change event for the automation engine."""
    result = await cell_service.update_cell_for_board(
        session, board_id=board_id, item_id=item_id, column_id=column_id, value=payload.value
    )
    return CellValueWriteResponse(
        item_id=item_id,
        column_id=column_id,
        value=result.cell.value,
        event_recorded=result.event is not None,
    )
