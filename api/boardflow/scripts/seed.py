"""Seed script for a demo board with status automations in local/dev environments."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.db.session import async_session
from boardflow.models.automation import STATUS_CHANGED, Automation
from boardflow.models.board import Board, BoardColumn, CellValue, Group, Item

DEMO_BOARD_NAME = "Demo Launch Board"
STATUS_OPTIONS = (
    {"label": "Working", "color": "#fdab3d"},
    {"label": "Review", "color": "#579bfc"},
    {"label": "Done", "color": "#00c875"},
)


@dataclass(frozen=True)
class SeedColumnDefinition:
    """Column layout for the demo board."""
    key: str
    name: str
    type: str
    config: dict[str, Any] | None = None


SEED_COLUMNS: tuple[SeedColumnDefinition, ...] = (
    SeedColumnDefinition("status", "Status", "status", {"options": list(STATUS_OPTIONS)}),
    SeedColumnDefinition("email", "Owner Email", "email"),
    SeedColumnDefinition("summary", "Summary", "text"),
    SeedColumnDefinition("budget", "Budget", "money"),
)

SEED_ITEMS: tuple[tuple[str, str, str], ...] = (
    ("Draft release notes", "Working", "writer@example.com"),
    ("Record demo video", "Review", "video@example.com"),
)


async def seed(session: AsyncSession | None = None) -> None:
    """Seed demo data into the database."""
    if session is None:
        async with async_session() as managed_session:
            await _seed_session(managed_session)
    else:
        await _seed_session(session)


async def _seed_session(session: AsyncSession) -> None:
    """Create the demo board once; re-running leaves an existing board alone."""
    board = await session.scalar(select(Board).where(Board.name == DEMO_BOARD_NAME))
    if board:
        print(f"Seed skipped - board already exists: {board.id}")
        return

    board = Board(name=DEMO_BOARD_NAME)
    session.add(board)
    await session.flush()

    groups = {
        name: Group(board_id=board.id, name=name, position=index)
        for index, name in enumerate(("In progress", "Shipped"))
    }
    columns = {
        definition.key: BoardColumn(
            board_id=board.id,
            name=definition.name,
            type=definition.type,
            position=index,
            config=definition.config,
        )
        for index, definition in enumerate(SEED_COLUMNS)
    }
    session.add_all([*groups.values(), *columns.values()])
    await session.flush()

    await _add_items(session, board, groups["In progress"], columns)
    _add_rules(session, board, groups["Shipped"], columns)
    await session.commit()
    print(f"Seed complete - board: {board.id}")


async def _add_items(
    session: AsyncSession, board: Board, group: Group, columns: dict[str, BoardColumn]
) -> None:
    """Add demo items with a status and owner; no change events are recorded."""
    for position, (name, status_label, email) in enumerate(SEED_ITEMS):
        item = Item(board_id=board.id, group_id=group.id, name=name, position=position)
        session.add(item)
        await session.flush()
        option = next(option for option in STATUS_OPTIONS if option["label"] == status_label)
        session.add_all(
            [
                CellValue(item_id=item.id, column_id=columns["status"].id, value=dict(option)),
                CellValue(item_id=item.id, column_id=columns["email"].id, value=email),
            ]
        )


def _add_rules(session: AsyncSession, board: Board, shipped: Group, columns: dict[str, BoardColumn]) -> None:
    status_column_id = str(columns["status"].id)
    session.add_all(
        [
            Automation(
                board_id=board.id,
                name="Ship finished work",
                trigger_type=STATUS_CHANGED,
                trigger_config={"column_id": status_column_id, "target_status": "Done"},
                action_config=[
                    {"type": "MOVE_TO_GROUP", "config": {"dest_group_id": str(shipped.id)}},
                    {
                        "type": "SEND_EMAIL",
                        "config": {
                            "email_template": (
                                "Subject: {{item.name}} shipped\n\n"
                                "{{item.name}} on {{board.name}} is now {{status.value}}."
                            ),
                        },
                    },
                ],
            ),
            Automation(
                board_id=board.id,
                name="Summarize for review",
                trigger_type=STATUS_CHANGED,
                trigger_config={"column_id": status_column_id, "target_status": "Review"},
                action_config=[
                    {
                        "type": "AI_FILL_FIELDS",
                        "config": {
                            "ai_instructions": "Summarize the task and estimate a budget in USD.",
                            "field_mappings": [
                                {"column_id": str(columns["summary"].id), "instruction": "One sentence"},
                                {"column_id": str(columns["budget"].id), "instruction": "Number only"},
                            ],
                        },
                    }
                ],
            ),
        ]
    )


def main() -> None:
    """CLI entrypoint for seeding demo data."""
    asyncio.run(seed())


if __name__ == "__main__":
    main()
