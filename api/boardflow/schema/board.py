"""Cell write schemas."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel


class CellValueWrite(BaseModel):
    value: Any = None


class CellValueWriteResponse(BaseModel):
    item_id: UUID
    column_id: UUID
    value: Any = None
    event_recorded: bool
