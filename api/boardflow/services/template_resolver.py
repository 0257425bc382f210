"""Resolve `{{...}}` placeholders against live item, board, and cell data.

Implementation notes:
- Keys are literal `{{...}}` tokens, so substitution is plain find-and-replace
  and unknown placeholders are left untouched.
- Each column value is registered under six spellings of the column name to
  tolerate inconsistent casing and separators in user-authored templates.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.models.board import Board, BoardColumn, CellValue, Item
from boardflow.services.status_values import cell_display_text, status_display_text

ITEM_NAME_KEY = "{{item.name}}"
BOARD_NAME_KEY = "{{board.name}}"
STATUS_VALUE_KEY = "{{status.value}}"
UNKNOWN_BOARD_NAME = "Unknown Board"

_WHITESPACE_RE = re.compile(r"\s+")
_URL_RE = re.compile(r"(https?://[^\s<>\"{}|\\^`\[\]]+)", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    id: uuid.UUID
    name: str
    type: str


@dataclass(slots=True)
class ItemContext:
    """Snapshot of an item, its board, and its cells used to fill templates."""

    item_id: uuid.UUID
    item_name: str
    board_id: uuid.UUID
    board_name: str
    columns: dict[uuid.UUID, ColumnInfo] = field(default_factory=dict)
    cells: dict[uuid.UUID, Any] = field(default_factory=dict)

    def field_values(self) -> dict[str, str]:
        """Display text of every populated cell keyed by column name."""
        values: dict[str, str] = {}
        for column_id, raw in self.cells.items():
            column = self.columns.get(column_id)
            if column:
                values[column.name] = cell_display_text(raw)
        return values


async def load_item_context(
    session: AsyncSession, *, item_id: uuid.UUID, board_id: uuid.UUID
) -> ItemContext | None:
    """Fetch the item, board name, board columns, and the item's cells."""
    item = await session.get(Item, item_id)
    if not item:
        return None
    board = await session.get(Board, board_id)
    column_rows = await session.scalars(
        select(BoardColumn).where(BoardColumn.board_id == board_id).order_by(BoardColumn.position)
    )
    cell_rows = await session.scalars(select(CellValue).where(CellValue.item_id == item_id))
    return ItemContext(
        item_id=item.id,
        item_name=item.name or "",
        board_id=board_id,
        board_name=board.name if board and board.name else UNKNOWN_BOARD_NAME,
        columns={column.id: ColumnInfo(column.id, column.name, column.type) for column in column_rows},
        cells={cell.column_id: cell.value for cell in cell_rows},
    )


def placeholder_keys(column_name: str) -> list[str]:
    """Return the six accepted placeholder spellings for a column name."""
    lowered = column_name.lower()
    underscored = _WHITESPACE_RE.sub("_", lowered)
    no_hyphen = underscored.replace("-", "_")
    hyphenated = _WHITESPACE_RE.sub("-", lowered)
    stripped = no_hyphen.replace("_", "")
    variants = (column_name, lowered, underscored, no_hyphen, hyphenated, stripped)
    return ["{{column." + variant + "}}" for variant in variants]


def replacements_for_context(
    context: ItemContext, *, status_column_id: uuid.UUID | str | None = None
) -> dict[str, str]:
    """Build the placeholder map for an item context."""
    replacements = {ITEM_NAME_KEY: context.item_name, BOARD_NAME_KEY: context.board_name}
    if status_column_id is not None:
        for column_id, raw in context.cells.items():
            if str(column_id) == str(status_column_id):
                replacements[STATUS_VALUE_KEY] = status_display_text(raw)
                break
    for column_id, raw in context.cells.items():
        column = context.columns.get(column_id)
        if not column:
            continue
        text = cell_display_text(raw)
        for key in placeholder_keys(column.name):
            replacements[key] = text
    return replacements


async def build_replacements(
    session: AsyncSession,
    *,
    item_id: uuid.UUID,
    board_id: uuid.UUID,
    status_column_id: uuid.UUID | str | None = None,
) -> dict[str, str]:
    """Resolve the placeholder map for an item; empty when the item is gone."""
    context = await load_item_context(session, item_id=item_id, board_id=board_id)
    if context is None:
        return {}
    return replacements_for_context(context, status_column_id=status_column_id)


def substitute(template: str, replacements: Mapping[str, str]) -> str:
    for key, value in replacements.items():
        template = template.replace(key, value)
    return template


def substitute_deep(value: Any, replacements: Mapping[str, str]) -> Any:
    """Substitute placeholders in every string leaf of a JSON-like structure."""
    if isinstance(value, str):
        return substitute(value, replacements)
    if isinstance(value, list):
        return [substitute_deep(entry, replacements) for entry in value]
    if isinstance(value, dict):
        return {key: substitute_deep(entry, replacements) for key, entry in value.items()}
    return value


def linkify_urls(html: str) -> str:
    """Wrap bare URLs in anchor tags, leaving URLs already inside an anchor alone."""
    parts: list[str] = []
    last_index = 0
    for match in _URL_RE.finditer(html):
        url = match.group(0)
        start = match.start()
        parts.append(html[last_index:start])
        before = html[:start]
        after = html[match.end():]
        inside_anchor = before.rfind("<a") > before.rfind("</a>") and "</a>" in after
        if inside_anchor:
            parts.append(url)
        else:
            parts.append(f'<a href="{url}" target="_blank" rel="noopener noreferrer">{url}</a>')
        last_index = match.end()
    parts.append(html[last_index:])
    return "".join(parts)


def strip_tags(html: str) -> str:
    return _TAG_RE.sub("", html)
