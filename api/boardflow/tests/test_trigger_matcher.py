"""Trigger matching rules for status-change events."""

from __future__ import annotations

import uuid

import pytest

from boardflow.services.automation_types import ActionStep, ChangeEvent, RuleDefinition
from boardflow.services.trigger_matcher import match_events, rule_matches

BOARD_ID = uuid.uuid4()
STATUS_COLUMN = uuid.uuid4()
OTHER_COLUMN = uuid.uuid4()


def _event(new_value, *, column_id=STATUS_COLUMN) -> ChangeEvent:
    return ChangeEvent(
        id=uuid.uuid4(), board_id=BOARD_ID, item_id=uuid.uuid4(), column_id=column_id, new_value=new_value
    )


def _rule(trigger_config, *, is_active=True, trigger_type="STATUS_CHANGED") -> RuleDefinition:
    return RuleDefinition(
        id=uuid.uuid4(),
        board_id=BOARD_ID,
        name="rule",
        is_active=is_active,
        trigger_type=trigger_type,
        trigger_config=trigger_config,
        actions=(ActionStep(type="NOTIFY"),),
    )


@pytest.mark.parametrize("new_value", ["Done", {"label": "Done", "color": "#00c875"}])
def test_label_match_accepts_both_value_shapes(new_value):
    rule = _rule({"column_id": str(STATUS_COLUMN), "target_status": "Done"})
    assert rule_matches(_event(new_value), rule)


def test_column_scoping_rejects_other_columns():
    rule = _rule({"column_id": str(STATUS_COLUMN), "target_status": "Done"})
    assert not rule_matches(_event("Done", column_id=OTHER_COLUMN), rule)


def test_column_scoping_accepts_any_uuid_spelling():
    for spelling in (str(STATUS_COLUMN).upper(), STATUS_COLUMN.hex, f"{{{STATUS_COLUMN}}}"):
        assert rule_matches(_event("Done"), _rule({"column_id": spelling, "target_status": "Done"}))


def test_unparseable_column_id_matches_nothing():
    rule = _rule({"column_id": "status-column", "target_status": "Done"})
    assert not rule_matches(_event("Done"), rule)


def test_rule_without_column_matches_any_column():
    rule = _rule({"target_status": "Done"})
    assert rule_matches(_event("Done", column_id=OTHER_COLUMN), rule)


@pytest.mark.parametrize("target", [None, "", "Status..."])
def test_unset_target_matches_only_cleared_statuses(target):
    trigger_config = {"column_id": str(STATUS_COLUMN)}
    if target is not None:
        trigger_config["target_status"] = target
    rule = _rule(trigger_config)
    assert rule_matches(_event(None), rule)
    assert rule_matches(_event(""), rule)
    assert rule_matches(_event({"label": ""}), rule)
    assert not rule_matches(_event("Done"), rule)
    assert not rule_matches(_event({"label": "Done"}), rule)


def test_label_comparison_is_exact():
    rule = _rule({"target_status": "Done"})
    assert not rule_matches(_event("done"), rule)
    assert not rule_matches(_event("Done "), rule)


def test_inactive_and_other_trigger_types_never_match():
    assert not rule_matches(_event("Done"), _rule({"target_status": "Done"}, is_active=False))
    assert not rule_matches(_event("Done"), _rule({"target_status": "Done"}, trigger_type="ITEM_CREATED"))


def test_match_events_pairs_each_event_with_every_matching_rule():
    done_rule = _rule({"target_status": "Done"})
    also_done = _rule({"column_id": str(STATUS_COLUMN), "target_status": "Done"})
    working_rule = _rule({"target_status": "Working"})
    done_event = _event("Done")
    working_event = _event({"label": "Working"})

    matches = match_events([done_event, working_event], [done_rule, also_done, working_rule])

    assert [(m.event.id, m.rule.id) for m in matches] == [
        (done_event.id, done_rule.id),
        (done_event.id, also_done.id),
        (working_event.id, working_rule.id),
    ]


def test_matching_is_repeatable_and_leaves_inputs_untouched():
    rule = _rule({"column_id": str(STATUS_COLUMN), "target_status": "Done"})
    events = [_event({"label": "Done"}), _event("Working"), _event("Done")]

    first = match_events(events, [rule])
    second = match_events(events, [rule])

    assert first == second
    assert len(first) == 2
    assert rule.trigger_config == {"column_id": str(STATUS_COLUMN), "target_status": "Done"}
