from __future__ import annotations

import logging
from datetime import datetime, timedelta

from rq_scheduler import Scheduler

from boardflow.core.config import settings
from boardflow.jobs.automations import sweep_pending_events_job
from boardflow.services.task_queue import task_queue

logger = logging.getLogger("boardflow.jobs.schedule_registry")


def _schedule_entries() -> list[dict]:
    entries: list[dict] = []
    if settings.automation_sweep_interval_seconds > 0:
        fallback_queue = task_queue.queue_names[0] if task_queue.queue_names else "default"
        entries.append(
            {
                "id": "automations:sweep_pending_events",
                "func": sweep_pending_events_job,
                "interval": max(30, settings.automation_sweep_interval_seconds),
                "repeat": None,
                "queue_name": "automations" if "automations" in task_queue.queue_names else fallback_queue,
            }
        )
    return entries


def ensure_schedules() -> None:
    """Idempotently register periodic jobs with rq-scheduler."""
    if settings.environment.lower() == "test":
        return
    entries = _schedule_entries()
    if not entries:
        return
    if not task_queue.connection:
        logger.info("Skipping scheduler bootstrap; queue connection is unavailable")
        return
    scheduler = Scheduler(connection=task_queue.connection, queue_name=task_queue.queue_names[0])
    for entry in entries:
        if scheduler.get_job(entry["id"]):
            continue
        scheduler.schedule(
            scheduled_time=datetime.utcnow(),
            func=entry["func"],
            interval=entry["interval"],
            repeat=entry["repeat"],
            id=entry["id"],
            queue_name=entry["queue_name"],
            result_ttl=int(timedelta(hours=1).total_seconds()),
        )
        logger.info("Scheduled job %s every %ss on queue %s", entry["id"], entry["interval"], entry["queue_name"])
