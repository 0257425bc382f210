from boardflow.models.automation import STATUS_CHANGED, Automation, AutomationEvent, AutomationLog
from boardflow.models.board import STATUS_COLUMN_TYPE, Board, BoardColumn, CellValue, Group, Item

__all__ = [
    "Automation",
    "AutomationEvent",
    "AutomationLog",
    "Board",
    "BoardColumn",
    "CellValue",
    "Group",
    "Item",
    "STATUS_CHANGED",
    "STATUS_COLUMN_TYPE",
]
"""SQLAlchemy ORM models for the Boardflow API."""
