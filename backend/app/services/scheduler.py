"""
Run-once deferred jobs.

Producers call ``schedule_once`` inside their own transaction, so a job
only becomes visible if the write that scheduled it commits. The worker
claims due jobs (queued with run_at <= now, or running with an expired
lease), dispatches them to the handler registered for their kind, and
records the outcome. Handlers receive (db, subject_id, payload) and must
no-op when the subject no longer exists. Failed jobs are not retried.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.models import JobKind, JobStatus, ScheduledJob
from app.timeutil import now_ms

logger = logging.getLogger(__name__)
settings = get_settings()

JobHandler = Callable[[AsyncSession, UUID, dict[str, Any]], Awaitable[None]]

# Stored error text is capped so a runaway traceback can't bloat the row
_MAX_ERROR_CHARS = 2000


class JobScheduler:
    """Registry of job handlers plus the queue operations."""

    def __init__(self):
        self._handlers: dict[str, JobHandler] = {}

    def handler(self, kind: JobKind) -> Callable[[JobHandler], JobHandler]:
        """Decorator registering the consumer for a job kind."""

        def decorator(func: JobHandler) -> JobHandler:
            self._handlers[kind.value] = func
            return func

        return decorator

    async def schedule_once(
        self,
        db: AsyncSession,
        kind: JobKind,
        subject_id: UUID,
        delay_ms: int,
        payload: dict[str, Any] | None = None,
        now: int | None = None,
    ) -> ScheduledJob:
        """
        Enqueue a job to run once, delay_ms from now.

        Flushes but does not commit; the caller's commit publishes the job.
        """
        now = now_ms() if now is None else now
        job = ScheduledJob(
            kind=kind.value,
            subject_id=subject_id,
            payload=payload or {},
            run_at=now + max(delay_ms, 0),
            status=JobStatus.QUEUED.value,
            attempts=0,
        )
        db.add(job)
        await db.flush()
        logger.info("Scheduled %s for %s in %d ms (job %s)", kind.value, subject_id, max(delay_ms, 0), job.id)
        return job

    async def claim_due(
        self,
        db: AsyncSession,
        now: int | None = None,
        limit: int | None = None,
    ) -> list[ScheduledJob]:
        """Claim up to `limit` due jobs, oldest run_at first, and mark them running."""
        now = now_ms() if now is None else now
        lease_cutoff = now - settings.scheduler_lease_seconds * 1000

        stmt = (
            select(ScheduledJob)
            .where(
                or_(
                    and_(
                        ScheduledJob.status == JobStatus.QUEUED.value,
                        ScheduledJob.run_at <= now,
                    ),
                    and_(
                        ScheduledJob.status == JobStatus.RUNNING.value,
                        ScheduledJob.claimed_at < lease_cutoff,
                    ),
                )
            )
            .order_by(ScheduledJob.run_at.asc())
            .limit(limit or settings.scheduler_batch_size)
            .with_for_update(skip_locked=True)
        )
        result = await db.execute(stmt)
        jobs = list(result.scalars())

        for job in jobs:
            if job.status == JobStatus.RUNNING.value:
                logger.warning("Reclaiming job %s after expired lease", job.id)
            job.status = JobStatus.RUNNING.value
            job.claimed_at = now
            job.attempts += 1
        await db.commit()
        return jobs

    async def run_job(self, db: AsyncSession, job: ScheduledJob) -> bool:
        """Dispatch one claimed job. Returns True if the handler succeeded."""
        job_id = job.id
        handler = self._handlers.get(job.kind)
        if handler is None:
            logger.error("No handler registered for job kind %s (job %s)", job.kind, job_id)
            await self._finish(db, job_id, JobStatus.FAILED, f"Unknown job kind: {job.kind}")
            return False

        try:
            await handler(db, job.subject_id, dict(job.payload or {}))
            await db.commit()
        except Exception as e:
            logger.exception("Job %s (%s) failed", job_id, job.kind)
            await db.rollback()
            await self._finish(db, job_id, JobStatus.FAILED, str(e))
            return False

        await self._finish(db, job_id, JobStatus.COMPLETED)
        return True

    async def run_due_jobs(self, db: AsyncSession, now: int | None = None) -> int:
        """Claim and run every currently due job. Returns how many were processed."""
        jobs = await self.claim_due(db, now=now)
        for job in jobs:
            await self.run_job(db, job)
        return len(jobs)

    async def _finish(
        self,
        db: AsyncSession,
        job_id: UUID,
        status: JobStatus,
        error: str | None = None,
    ) -> None:
        job = await db.get(ScheduledJob, job_id)
        if job is None:
            return
        job.status = status.value
        job.completed_at = now_ms()
        if error is not None:
            job.last_error = error[-_MAX_ERROR_CHARS:]
        await db.commit()


# Singleton instance
job_scheduler = JobScheduler()
