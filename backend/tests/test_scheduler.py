"""Tests for the run-once job queue."""

import asyncio
from unittest.mock import AsyncMock, patch
from uuid import uuid4

from sqlalchemy import select

from app.config import get_settings
from app.db.models import JobKind, JobStatus, ScheduledJob
from app.services.scheduler import job_scheduler
from app.worker import run_worker

NOW = 1_750_000_000_000


async def _job(db, job_id):
    return (await db.execute(select(ScheduledJob).where(ScheduledJob.id == job_id))).scalars().one()


class TestScheduleOnce:

    async def test_not_visible_until_caller_commits(self, db):
        job = await job_scheduler.schedule_once(db, JobKind.TASK_REMINDER, uuid4(), 1000, now=NOW)
        assert job.run_at == NOW + 1000
        assert job.status == JobStatus.QUEUED.value

        await db.rollback()
        assert (await db.execute(select(ScheduledJob))).scalars().all() == []

    async def test_negative_delay_runs_immediately(self, db):
        job = await job_scheduler.schedule_once(db, JobKind.TASK_REMINDER, uuid4(), -50, now=NOW)
        assert job.run_at == NOW


class TestRunDueJobs:

    async def test_dispatches_with_subject_and_payload(self, db):
        handler = AsyncMock()
        subject = uuid4()
        with patch.dict(job_scheduler._handlers, {JobKind.TASK_REMINDER.value: handler}):
            await job_scheduler.schedule_once(db, JobKind.TASK_REMINDER, subject, 0, payload={"a": 1}, now=NOW)
            await db.commit()
            assert await job_scheduler.run_due_jobs(db, now=NOW) == 1

        handler.assert_awaited_once()
        _, called_subject, payload = handler.await_args.args
        assert called_subject == subject
        assert payload == {"a": 1}

    async def test_runs_each_job_once(self, db):
        handler = AsyncMock()
        with patch.dict(job_scheduler._handlers, {JobKind.TASK_REMINDER.value: handler}):
            await job_scheduler.schedule_once(db, JobKind.TASK_REMINDER, uuid4(), 0, now=NOW)
            await db.commit()
            await job_scheduler.run_due_jobs(db, now=NOW)
            assert await job_scheduler.run_due_jobs(db, now=NOW + 10_000) == 0
        assert handler.await_count == 1

    async def test_handler_failure_marks_job_failed(self, db):
        handler = AsyncMock(side_effect=RuntimeError("boom"))
        with patch.dict(job_scheduler._handlers, {JobKind.TASK_REMINDER.value: handler}):
            job = await job_scheduler.schedule_once(db, JobKind.TASK_REMINDER, uuid4(), 0, now=NOW)
            job_id = job.id
            await db.commit()
            await job_scheduler.run_due_jobs(db, now=NOW)

        job = await _job(db, job_id)
        assert job.status == JobStatus.FAILED.value
        assert job.last_error == "boom"
        assert job.attempts == 1

    async def test_unknown_kind_marks_job_failed(self, db):
        job = ScheduledJob(kind="mystery", subject_id=uuid4(), payload={}, run_at=NOW)
        db.add(job)
        await db.commit()
        job_id = job.id

        assert await job_scheduler.run_due_jobs(db, now=NOW) == 1

        job = await _job(db, job_id)
        assert job.status == JobStatus.FAILED.value
        assert "mystery" in job.last_error

    async def test_expired_lease_is_reclaimed(self, db):
        lease_ms = get_settings().scheduler_lease_seconds * 1000
        stale = ScheduledJob(
            kind=JobKind.TASK_REMINDER.value,
            subject_id=uuid4(),
            payload={},
            run_at=NOW - lease_ms - 10,
            status=JobStatus.RUNNING.value,
            attempts=1,
            claimed_at=NOW - lease_ms - 1,
        )
        fresh = ScheduledJob(
            kind=JobKind.TASK_REMINDER.value,
            subject_id=uuid4(),
            payload={},
            run_at=NOW - 10,
            status=JobStatus.RUNNING.value,
            attempts=1,
            claimed_at=NOW - 5,
        )
        db.add_all([stale, fresh])
        await db.commit()
        stale_id, fresh_id = stale.id, fresh.id

        handler = AsyncMock()
        with patch.dict(job_scheduler._handlers, {JobKind.TASK_REMINDER.value: handler}):
            assert await job_scheduler.run_due_jobs(db, now=NOW) == 1

        assert (await _job(db, stale_id)).status == JobStatus.COMPLETED.value
        assert (await _job(db, stale_id)).attempts == 2
        assert (await _job(db, fresh_id)).status == JobStatus.RUNNING.value


class TestWorker:

    async def test_stops_when_event_set(self):
        stop_event = asyncio.Event()
        stop_event.set()
        await asyncio.wait_for(run_worker(stop_event), timeout=5)

    async def test_survives_a_failing_iteration(self):
        stop_event = asyncio.Event()

        async def fail_then_stop(db, now=None):
            stop_event.set()
            raise RuntimeError("database unavailable")

        with patch.object(job_scheduler, "run_due_jobs", side_effect=fail_then_stop):
            await asyncio.wait_for(run_worker(stop_event), timeout=5)
