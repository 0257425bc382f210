from __future__ import annotations

from fastapi import APIRouter, Depends

from boardflow.api.deps import require_service_key
from boardflow.services.task_queue import task_queue

router = APIRouter()


@router.get("/queues", tags=["ops"], dependencies=[Depends(require_service_key)])
async def queue_health() -> dict:
    """Minimal operations dashboard for Redis/RQ health."""
    return task_queue.snapshot()
