"""
Polling worker for deferred jobs (task reminders, AI chat responses).

Checks the scheduled_jobs table every SCHEDULER_POLL_INTERVAL_SECONDS,
claims due jobs and runs their handlers. The API process runs this loop in
its lifespan when SCHEDULER_ENABLED is true; it can also run on its own:

    python -m app.worker
"""

import asyncio
import logging
import signal

from app import services  # noqa: F401 - import registers job handlers
from app.config import get_settings
from app.db.session import AsyncSessionLocal
from app.logging_config import setup_logging
from app.services.scheduler import job_scheduler

logger = logging.getLogger(__name__)
settings = get_settings()


async def run_worker(stop_event: asyncio.Event) -> None:
    """Drain due jobs until stop_event is set."""
    logger.info("Worker started, polling every %.1fs", settings.scheduler_poll_interval_seconds)

    while not stop_event.is_set():
        processed = 0
        try:
            async with AsyncSessionLocal() as db:
                processed = await job_scheduler.run_due_jobs(db)
        except Exception:
            logger.exception("Worker iteration failed")

        if processed:
            continue

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=settings.scheduler_poll_interval_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info("Worker stopped")


async def _main() -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)
    await run_worker(stop_event)


def main() -> None:
    setup_logging(settings.log_level, settings.log_format)
    asyncio.run(_main())


if __name__ == "__main__":
    main()
