"""Task queue dispatch: enqueue once, wait for the result, never retry."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from rq.results import Result

from boardflow.services.task_queue import QueueJobError, TaskQueue


class FakeQueue:
    def __init__(self, result) -> None:
        self.result = result
        self.enqueued: list[tuple[object, dict]] = []

    def enqueue(self, func, **kwargs):
        self.enqueued.append((func, kwargs))
        return SimpleNamespace(id="job-1", latest_result=lambda timeout: self.result)


def _queue_with(monkeypatch, fake: FakeQueue) -> TaskQueue:
    queue = TaskQueue()
    monkeypatch.setattr(queue, "_enabled", True)
    monkeypatch.setattr(queue, "_connection", object())
    monkeypatch.setattr(queue, "get_queue", lambda queue_name=None: fake)
    return queue


def _job(board_id=None):
    return {"processed": 0}


@pytest.mark.asyncio
async def test_enqueue_submits_job_once_without_retry_policy(monkeypatch):
    fake = FakeQueue(SimpleNamespace(type=Result.Type.SUCCESSFUL, return_value={"processed": 3}))
    queue = _queue_with(monkeypatch, fake)

    result = await queue.enqueue_or_run(_job, timeout_seconds=5, description="cycle", board_id="b-1")

    assert result == {"processed": 3}
    assert fake.enqueued == [
        (_job, {"kwargs": {"board_id": "b-1"}, "job_timeout": 5, "description": "cycle"})
    ]


@pytest.mark.asyncio
async def test_failed_job_raises_instead_of_running_inline(monkeypatch):
    fake = FakeQueue(SimpleNamespace(type=Result.Type.FAILED, exc_string="boom", return_value=None))
    queue = _queue_with(monkeypatch, fake)
    fallback_calls = []

    with pytest.raises(QueueJobError, match="boom"):
        await queue.enqueue_or_run(_job, fallback=lambda: fallback_calls.append(1))

    assert len(fake.enqueued) == 1
    assert fallback_calls == []


@pytest.mark.asyncio
async def test_disabled_queue_runs_fallback_inline():
    queue = TaskQueue()

    assert queue.enabled is False
    assert await queue.enqueue_or_run(_job, board_id=None) == {"processed": 0}
