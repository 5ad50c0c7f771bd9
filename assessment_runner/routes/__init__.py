"""APIRouter registration for the assessment runner."""

from __future__ import annotations

from fastapi import APIRouter

from assessment_runner.routes.sessions import router as sessions_router

api_router = APIRouter()
api_router.include_router(sessions_router, tags=["Sessions"])

__all__ = ["api_router"]
