"""Settings parsing and automation option injection."""

from __future__ import annotations

from boardflow.core.config import AutomationConfig, Settings, _split_list
from boardflow.jobs import schedule_registry
from boardflow.jobs.automations import sweep_pending_events_job


def test_split_list_accepts_json_csv_and_lists():
    assert _split_list('["default", "automations"]') == ["default", "automations"]
    assert _split_list("default, automations ,") == ["default", "automations"]
    assert _split_list([" a ", "", 3]) == ["a"]
    assert _split_list(None) == []


def test_automation_config_from_settings():
    source = Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        email_relay_url="https://relay.test/send",
        ai_api_key="sk-test",
        automation_batch_size=25,
        automation_claim_before_execute=True,
        automation_http_timeout_seconds=0,
    )
    config = AutomationConfig.from_settings(source)
    assert config.email_relay_url == "https://relay.test/send"
    assert config.email_default_subject == "Task Update"
    assert config.ai_api_key == "sk-test"
    assert config.batch_size == 25
    assert config.claim_before_execute is True
    assert config.http_timeout_seconds is None


def test_sweep_schedule_only_when_interval_set(monkeypatch):
    monkeypatch.setattr(schedule_registry.settings, "automation_sweep_interval_seconds", 0)
    assert schedule_registry._schedule_entries() == []

    monkeypatch.setattr(schedule_registry.settings, "automation_sweep_interval_seconds", 10)
    entries = schedule_registry._schedule_entries()
    assert len(entries) == 1
    assert entries[0]["func"] is sweep_pending_events_job
    assert entries[0]["interval"] == 30
    assert entries[0]["queue_name"] == "automations"
