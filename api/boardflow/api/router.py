"""API router composition for all route groups."""

from fastapi import APIRouter

from .routes import automations, boards, ops

api_router = APIRouter()
api_router.include_router(automations.router, prefix="/automations", tags=["automations"])
api_router.include_router(boards.router, prefix="/boards", tags=["boards"])
api_router.include_router(ops.router, prefix="/ops", tags=["ops"])
