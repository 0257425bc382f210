"""Step execution, failure isolation, and logging for matched rules."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from boardflow.models.automation import Automation, AutomationEvent
from boardflow.services import automation_engine, outbound
from boardflow.services.automation_actions import AutomationExecutionError
from boardflow.services.automation_types import ActionStep, ChangeEvent, RuleDefinition, normalize_actions
from boardflow.services.cell_service import write_cell
from boardflow.tests.utils import RecordingPost, add_rule, cell_value, logs_for, seed_board


def _event(seeded, new_value="Done") -> ChangeEvent:
    return ChangeEvent(
        id=uuid.uuid4(),
        board_id=seeded.board_id,
        item_id=seeded.item_id,
        column_id=seeded.status_column_id,
        new_value=new_value,
    )


async def _rule(session, seeded, actions) -> RuleDefinition:
    rule_id = await add_rule(
        session, board_id=seeded.board_id, trigger_config={"target_status": "Done"}, actions=actions
    )
    return RuleDefinition.from_row(await session.get(Automation, rule_id))


@pytest.mark.asyncio
async def test_failing_step_does_not_stop_later_steps(session, automation_config, monkeypatch):
    seeded = await seed_board(session, cells={"Status": "Done"})
    monkeypatch.setattr(outbound, "post_json", RecordingPost(status_code=500))
    rule = await _rule(
        session,
        seeded,
        [
            {"type": "CALL_WEBHOOK", "config": {"url": "https://hooks.test/in"}},
            {
                "type": "CHANGE_STATUS",
                "config": {"status_column_id": str(seeded.status_column_id), "status_value": "Archived"},
            },
        ],
    )
    event = _event(seeded)

    outcome = await automation_engine.execute_rule(session, rule=rule, event=event, config=automation_config)

    assert outcome.attempted == 2
    assert outcome.failures == ["CALL_WEBHOOK"]
    assert await cell_value(session, item_id=seeded.item_id, column_id=seeded.status_column_id) == "Archived"
    assert await logs_for(session, rule.id) == [
        ("error", "Failed to execute CALL_WEBHOOK: Webhook 500"),
        ("success", f"Processed event {event.id} with 2 action(s)"),
    ]


@pytest.mark.asyncio
async def test_failed_step_rolls_back_its_partial_writes(session, automation_config, monkeypatch):
    seeded = await seed_board(session, cells={"Status": "Done"})

    async def _write_then_fail(ctx, config):
        await write_cell(ctx.session, item_id=ctx.event.item_id, column_id=seeded.status_column_id, value="Half")
        raise AutomationExecutionError("relay offline")

    monkeypatch.setitem(automation_engine.ACTION_HANDLERS, "SEND_EMAIL", _write_then_fail)
    rule = await _rule(session, seeded, [{"type": "SEND_EMAIL", "config": {}}])

    outcome = await automation_engine.execute_rule(
        session, rule=rule, event=_event(seeded), config=automation_config
    )

    assert outcome.failures == ["SEND_EMAIL"]
    assert await cell_value(session, item_id=seeded.item_id, column_id=seeded.status_column_id) == "Done"
    assert list(await session.scalars(select(AutomationEvent))) == []
    assert (await logs_for(session, rule.id))[0] == ("error", "Failed to execute SEND_EMAIL: relay offline")


@pytest.mark.asyncio
async def test_unknown_action_type_is_logged_as_error(session, automation_config):
    seeded = await seed_board(session)
    rule = await _rule(session, seeded, [{"type": "TELEPORT", "config": {}}, {"type": "NOTIFY", "config": {}}])
    event = _event(seeded)

    outcome = await automation_engine.execute_rule(session, rule=rule, event=event, config=automation_config)

    assert outcome.failures == ["TELEPORT"]
    assert await logs_for(session, rule.id) == [
        ("error", "Failed to execute TELEPORT: unsupported_action:TELEPORT"),
        ("success", f"Processed event {event.id} with 2 action(s)"),
    ]


@pytest.mark.asyncio
async def test_unexpected_exception_is_isolated(session, automation_config, monkeypatch):
    seeded = await seed_board(session)

    async def _explode(ctx, config):
        raise RuntimeError("boom")

    monkeypatch.setitem(automation_engine.ACTION_HANDLERS, "NOTIFY", _explode)
    rule = await _rule(session, seeded, [{"type": "NOTIFY", "config": {}}])
    event = _event(seeded)

    outcome = await automation_engine.execute_rule(session, rule=rule, event=event, config=automation_config)

    assert outcome.failures == ["NOTIFY"]
    assert await logs_for(session, rule.id) == [
        ("error", "Failed to execute NOTIFY: boom"),
        ("success", f"Processed event {event.id} with 1 action(s)"),
    ]


@pytest.mark.asyncio
async def test_legacy_single_action_rule_runs_once(session, automation_config, monkeypatch):
    seeded = await seed_board(session, cells={"Status": "Done"})
    post = RecordingPost()
    monkeypatch.setattr(outbound, "post_json", post)
    rule_id = await add_rule(
        session,
        board_id=seeded.board_id,
        trigger_config={"target_status": "Done"},
        action_type="CALL_WEBHOOK",
        action_config={"url": "https://hooks.test/legacy"},
    )
    rule = RuleDefinition.from_row(await session.get(Automation, rule_id))

    await automation_engine.execute_rule(session, rule=rule, event=_event(seeded), config=automation_config)

    assert [call["url"] for call in post.calls] == ["https://hooks.test/legacy"]


def test_normalize_actions_shapes():
    assert normalize_actions("CALL_WEBHOOK", {"url": "u"}) == (ActionStep("CALL_WEBHOOK", {"url": "u"}),)
    assert normalize_actions(None, [{"type": "NOTIFY"}, "junk", {"type": "CHANGE_STATUS", "config": None}]) == (
        ActionStep("NOTIFY", {}),
        ActionStep("CHANGE_STATUS", {}),
    )
    assert normalize_actions("CALL_WEBHOOK", [{"type": "NOTIFY", "config": {"a": 1}}]) == (
        ActionStep("NOTIFY", {"a": 1}),
    )
    assert normalize_actions(None, None) == ()
