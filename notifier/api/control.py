"""
HTTP control surface for the dispatch engine.
"""

import logging
from typing import Dict, List

from fastapi import APIRouter, HTTPException, Query, Request

from notifier.config.reminder_settings import ReminderSettings
from notifier.domain.messages import CategoryKind, DeliveryLogResponse, TickReport
from notifier.usecases.categories import CATEGORIES

logger = logging.getLogger(__name__)
router = APIRouter()


def _component(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(status_code=503, detail=f"{name} is not running")
    return component


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "clinic-whatsapp-notifier"}


@router.get("/settings/reminders", response_model=ReminderSettings)
async def get_reminder_settings(request: Request):
    """Current appointment reminder settings."""
    return _component(request, "reminder_settings").load()


@router.put("/settings/reminders", response_model=ReminderSettings)
async def update_reminder_settings(request: Request, settings: ReminderSettings):
    """Replace appointment reminder settings."""
    _component(request, "reminder_settings").save(settings)
    return settings


@router.post("/profile/refresh")
async def refresh_profile(request: Request):
    """Reload the clinic profile used in messages."""
    profile = await _component(request, "profiles").refresh()
    return {"found": profile is not None}


@router.post("/maintenance/reclaim")
async def reclaim_stale(request: Request) -> Dict[str, int]:
    """Run the stale claim reclaimer immediately."""
    return await _component(request, "reclaimer").run()


@router.post("/dispatch/{category}", response_model=TickReport)
async def dispatch_now(request: Request, category: CategoryKind):
    """Run one dispatch tick for a category immediately."""
    return await _component(request, "dispatcher").run_tick(CATEGORIES[category])


@router.get("/deliveries", response_model=List[DeliveryLogResponse])
async def list_deliveries(request: Request, limit: int = Query(100, ge=1, le=1000)):
    """Most recent delivery attempts."""
    return await _component(request, "delivery_log").recent(limit)
