"""Status change capture on cell writes."""

from __future__ import annotations

import uuid

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from boardflow.models.automation import AutomationEvent
from boardflow.services import cell_service
from boardflow.tests.utils import cell_value, seed_board


async def _events(session):
    rows = await session.scalars(select(AutomationEvent).order_by(AutomationEvent.created_at))
    return list(rows)


@pytest.mark.asyncio
async def test_status_write_records_pending_event(session):
    seeded = await seed_board(session, cells={"Status": "Working"})

    result = await cell_service.update_cell_for_board(
        session,
        board_id=seeded.board_id,
        item_id=seeded.item_id,
        column_id=seeded.status_column_id,
        value={"label": "Done", "color": "#00c875"},
    )

    assert result.event is not None
    events = await _events(session)
    assert len(events) == 1
    event = events[0]
    assert event.board_id == seeded.board_id
    assert event.item_id == seeded.item_id
    assert event.old_value == "Working"
    assert event.new_value == {"label": "Done", "color": "#00c875"}
    assert event.processed_at is None


@pytest.mark.asyncio
async def test_first_status_write_inserts_cell_with_null_old_value(session):
    seeded = await seed_board(session)

    await cell_service.write_cell(session, item_id=seeded.item_id, column_id=seeded.status_column_id, value="Done")
    await session.commit()

    events = await _events(session)
    assert [(event.old_value, event.new_value) for event in events] == [(None, "Done")]
    assert await cell_value(session, item_id=seeded.item_id, column_id=seeded.status_column_id) == "Done"


@pytest.mark.asyncio
async def test_unchanged_and_non_status_writes_record_nothing(session):
    seeded = await seed_board(session, cells={"Status": "Done"})

    same = await cell_service.write_cell(
        session, item_id=seeded.item_id, column_id=seeded.status_column_id, value="Done"
    )
    notes = await cell_service.write_cell(
        session, item_id=seeded.item_id, column_id=seeded.notes_column_id, value="changed"
    )
    await session.commit()

    assert same.event is None
    assert notes.event is None
    assert await _events(session) == []


@pytest.mark.asyncio
async def test_update_cell_rejects_items_from_other_boards(session):
    seeded = await seed_board(session)
    other = await seed_board(session, name="Other")

    with pytest.raises(HTTPException) as exc:
        await cell_service.update_cell_for_board(
            session,
            board_id=seeded.board_id,
            item_id=other.item_id,
            column_id=seeded.status_column_id,
            value="Done",
        )
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException):
        await cell_service.update_cell_for_board(
            session,
            board_id=seeded.board_id,
            item_id=seeded.item_id,
            column_id=uuid.uuid4(),
            value="Done",
        )
