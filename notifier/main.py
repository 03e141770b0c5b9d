"""
Clinic WhatsApp Notifier - Main Application Entry Point

Delivers welcome, appointment confirmation and appointment reminder
messages over WhatsApp, safely across any number of concurrently running
instances sharing one database.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from notifier.api.control import router as control_router
from notifier.config.reminder_settings import ReminderSettingsStore
from notifier.config.settings import get_settings
from notifier.infrastructure.claim_store import ClaimStore
from notifier.infrastructure.database import async_session_factory, init_database
from notifier.infrastructure.delivery_log import DeliveryLogRepository
from notifier.infrastructure.profile_cache import ProfileCache
from notifier.infrastructure.scheduler import (
    get_scheduler,
    register_jobs,
    start_scheduler,
    stop_scheduler,
)
from notifier.infrastructure.twilio_whatsapp import TwilioWhatsAppTransport
from notifier.infrastructure.worker_identity import build_worker_id
from notifier.usecases.dispatch_service import DispatchService
from notifier.usecases.ingestion import AppointmentIngestor
from notifier.usecases.stale_reclaimer import StaleReclaimer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Wires the dispatch engine and starts the pollers.
    """
    logger.info("Starting Clinic WhatsApp Notifier...")
    
    await init_database()
    logger.info("Database initialized")
    
    worker_id = build_worker_id()
    stale_timeout = timedelta(minutes=settings.stale_timeout_minutes)
    
    store = ClaimStore(async_session_factory, max_retries=settings.max_retries)
    profiles = ProfileCache(async_session_factory)
    reminder_settings = ReminderSettingsStore(settings.reminder_settings_file)
    delivery_log = DeliveryLogRepository(async_session_factory)
    
    dispatcher = DispatchService(
        store=store,
        transport=TwilioWhatsAppTransport(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_whatsapp_number,
        ),
        profiles=profiles,
        reminder_settings=reminder_settings,
        ingestor=AppointmentIngestor(
            async_session_factory,
            store,
            timezone=settings.timezone,
            country_code=settings.default_country_code,
            lookback_days=settings.ingest_lookback_days,
        ),
        worker_id=worker_id,
        batch_size=settings.batch_size,
        stale_timeout=stale_timeout,
        country_code=settings.default_country_code,
        delivery_log=delivery_log,
    )
    reclaimer = StaleReclaimer(store, stale_timeout)
    
    app.state.dispatcher = dispatcher
    app.state.reclaimer = reclaimer
    app.state.profiles = profiles
    app.state.reminder_settings = reminder_settings
    app.state.delivery_log = delivery_log
    
    register_jobs(get_scheduler(), dispatcher, reclaimer, settings)
    await start_scheduler()
    
    logger.info(f"Application startup complete! Worker: {worker_id}")
    logger.info(f"Clinic timezone: {settings.timezone}")
    
    yield
    
    logger.info("Shutting down...")
    await stop_scheduler()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Clinic WhatsApp Notifier",
    description="At-most-once WhatsApp notifications for clinic patients",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(control_router, tags=["Notifier"])


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Clinic WhatsApp Notifier",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "scheduler": "/scheduler/status",
            "deliveries": "/deliveries"
        }
    }


@app.get("/scheduler/status")
async def scheduler_status():
    """Get scheduler status and registered jobs."""
    scheduler = get_scheduler()
    
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })
    
    return {
        "running": scheduler.running,
        "jobs_count": len(jobs),
        "jobs": jobs
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "notifier.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
