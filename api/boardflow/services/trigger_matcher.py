"""Match pending status-change events against board automation rules.

Invariants:
- A rule scoped to a column only matches events on that exact column,
  whatever spelling of the column UUID the rule stored.
- An unset target status matches cleared statuses only.
- Label comparison is exact: case-sensitive and untrimmed.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, Sequence

from boardflow.models.automation import STATUS_CHANGED
from boardflow.services.automation_types import ChangeEvent, RuleDefinition, RuleMatch
from boardflow.services.status_values import is_empty_status, resolve_display_label

logger = logging.getLogger("boardflow.services.trigger_matcher")

# Placeholder text the rule editor saves when no status option was picked.
EMPTY_STATUS_SENTINELS = frozenset({"", "Status..."})


def _target_status(trigger_config: dict[str, Any]) -> str | None:
    target = trigger_config.get("target_status")
    if target is None or not isinstance(target, str) or target in EMPTY_STATUS_SENTINELS:
        return None
    return target


def _column_filter(trigger_config: dict[str, Any]) -> str | None:
    column_id = trigger_config.get("column_id")
    if column_id is None or column_id == "":
        return None
    return str(column_id)


def _same_column(column_id: str, event_column_id: uuid.UUID) -> bool:
    # Any UUID spelling matches; an unparseable id matches nothing.
    try:
        return uuid.UUID(column_id) == uuid.UUID(str(event_column_id))
    except ValueError:
        return False


def rule_matches(event: ChangeEvent, rule: RuleDefinition) -> bool:
    """Return True when a single rule's trigger accepts the event."""
    if not rule.is_active or rule.trigger_type != STATUS_CHANGED:
        return False
    column_id = _column_filter(rule.trigger_config)
    if column_id is not None and not _same_column(column_id, event.column_id):
        return False
    target = _target_status(rule.trigger_config)
    if target is None:
        return is_empty_status(event.new_value)
    return resolve_display_label(event.new_value) == target


def match_events(events: Iterable[ChangeEvent], rules: Sequence[RuleDefinition]) -> list[RuleMatch]:
    """Pair every event with each rule whose trigger it satisfies."""
    matches: list[RuleMatch] = []
    for event in events:
        for rule in rules:
            if rule_matches(event, rule):
                matches.append(RuleMatch(event=event, rule=rule))
        logger.debug("Event %s on column %s evaluated against %d rules", event.id, event.column_id, len(rules))
    return matches
