"""Status cell value parsing shared by trigger matching, templates, and actions.

Status cells arrive either as bare strings or as `{label, color}` option
objects depending on the write path. Everything that needs the displayed label
goes through `resolve_display_label` so the two shapes are handled in one place.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class PlainStatus:
    text: str


@dataclass(frozen=True, slots=True)
class LabeledStatus:
    label: str
    color: str | None = None


StatusValue = Union[PlainStatus, LabeledStatus]


def parse_status_value(raw: Any) -> StatusValue | None:
    """Lift a raw cell value into a status variant, or None when not comparable."""
    if isinstance(raw, str):
        return PlainStatus(raw)
    if isinstance(raw, dict):
        label = raw.get("label")
        if isinstance(label, str):
            color = raw.get("color")
            return LabeledStatus(label=label, color=color if isinstance(color, str) else None)
    return None


def resolve_display_label(raw: Any) -> str | None:
    """Return the displayed label of a status value, or None if it has none."""
    parsed = parse_status_value(raw)
    if isinstance(parsed, PlainStatus):
        return parsed.text
    if isinstance(parsed, LabeledStatus):
        return parsed.label
    return None


def is_empty_status(raw: Any) -> bool:
    """True for cleared statuses: null, empty string, or an option with an empty label."""
    if raw is None or raw == "":
        return True
    return isinstance(raw, dict) and raw.get("label") == ""


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def status_display_text(raw: Any) -> str:
    """Text for `{{status.value}}`: the option label, else the value cast to text."""
    if isinstance(raw, dict) and raw.get("label"):
        return str(raw["label"])
    return _scalar_text(raw)


def cell_display_text(raw: Any) -> str:
    """Text for an arbitrary cell: label, then text, then JSON for other objects."""
    if isinstance(raw, dict):
        if raw.get("label"):
            return str(raw["label"])
        if raw.get("text"):
            return str(raw["text"])
        return json.dumps(raw)
    if isinstance(raw, list):
        return json.dumps(raw)
    return _scalar_text(raw)
