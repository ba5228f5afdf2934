"""Health check endpoint."""

import platform
import sys

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Service health, provider and job counters."""
    state = request.app.state
    return {
        "status": "healthy",
        "provider": state.provider.name,
        "dispatcher_running": state.dispatcher.running,
        "jobs_in_flight": state.dispatcher.in_flight,
        "jobs": state.store.counts(),
        "python_version": sys.version,
        "platform": platform.platform(),
    }
