"""FastAPI application entrypoint and health reporting."""

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from boardflow.api.router import api_router
from boardflow.core.config import settings
from boardflow.core.logging import configure_logging
from boardflow.jobs.schedule_registry import ensure_schedules
from boardflow.services.task_queue import task_queue

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix=settings.api_prefix)


@app.on_event("startup")
async def _startup() -> None:
    """Configure logging and register scheduled jobs on startup."""
    configure_logging()
    ensure_schedules()


@app.get("/health", tags=["internal"])
@app.get(f"{settings.api_prefix}/health", tags=["internal"])
async def health() -> dict[str, Any]:
    """Return liveness plus whether background jobs run on the queue or inline."""
    return {"status": "ok", "queue": "online" if task_queue.enabled else "inline"}
