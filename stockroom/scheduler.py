"""
Scheduled tasks that run inside the FastAPI process.
Currently only the WebSocket liveness probe.
"""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from stockroom.services.websockets.manager import ConnectionManager

logger = logging.getLogger(__name__)


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.debug(f"Job {event.job_id} executed successfully at {datetime.now()}")


def create_scheduler(manager: ConnectionManager, heartbeat_interval: int) -> AsyncIOScheduler:
    """Create the scheduler with the liveness probe job"""
    scheduler = AsyncIOScheduler()
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    scheduler.add_job(
        manager.probe_all,
        IntervalTrigger(seconds=heartbeat_interval),
        id="websocket_liveness_probe",
        name="WebSocket liveness probe",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Liveness probe scheduled every {heartbeat_interval}s")
    return scheduler


async def start_scheduler(scheduler: AsyncIOScheduler):
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started successfully")


async def stop_scheduler(scheduler: Optional[AsyncIOScheduler]):
    """Stop the scheduler without waiting for a probe in flight"""
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped successfully")
