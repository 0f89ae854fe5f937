"""Tests for tasks and their deferred reminders."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from app.db.models import JobKind, JobStatus, ScheduledJob
from app.exceptions import AccessDenied
from app.services.notifications import notification_service
from app.services.scheduler import job_scheduler
from app.services.task_service import task_service
from app.timeutil import MINUTE_MS
from conftest import auth_headers

NOW = 1_750_000_000_000


def _task_kwargs(**overrides):
    kwargs = {
        "title": "Read chapter 4",
        "type": "study",
        "start_time": NOW + 60 * MINUTE_MS,
        "end_time": NOW + 120 * MINUTE_MS,
    }
    kwargs.update(overrides)
    return kwargs


async def _jobs(db):
    return list((await db.execute(select(ScheduledJob))).scalars())


class TestCreate:

    async def test_future_reminder_is_scheduled(self, db, user):
        task = await task_service.create(
            db, user.id, **_task_kwargs(reminder_time=NOW + 30 * MINUTE_MS), now=NOW
        )
        jobs = await _jobs(db)
        assert len(jobs) == 1
        assert jobs[0].kind == JobKind.TASK_REMINDER.value
        assert jobs[0].subject_id == task.id
        assert jobs[0].run_at == NOW + 30 * MINUTE_MS

    async def test_past_reminder_is_silently_skipped(self, db, user):
        task = await task_service.create(db, user.id, **_task_kwargs(reminder_time=NOW - 1), now=NOW)
        assert task.id is not None
        assert await _jobs(db) == []

    async def test_reminder_at_now_is_skipped(self, db, user):
        await task_service.create(db, user.id, **_task_kwargs(reminder_time=NOW), now=NOW)
        assert await _jobs(db) == []

    async def test_no_reminder(self, db, user):
        await task_service.create(db, user.id, **_task_kwargs(), now=NOW)
        assert await _jobs(db) == []


class TestUpdateAndDelete:

    async def test_update_flips_completed(self, db, user):
        task = await task_service.create(db, user.id, **_task_kwargs(), now=NOW)
        updated = await task_service.update(db, user.id, task.id, True)
        assert updated.completed is True

    async def test_update_not_owner(self, db, user, other_user):
        task = await task_service.create(db, other_user.id, **_task_kwargs(), now=NOW)
        with pytest.raises(AccessDenied):
            await task_service.update(db, user.id, task.id, True)

    async def test_delete(self, db, user):
        task = await task_service.create(db, user.id, **_task_kwargs(), now=NOW)
        await task_service.delete(db, user.id, task.id)
        assert await task_service.get(db, user.id, task.id) is None

    async def test_delete_not_owner(self, db, user, other_user):
        task = await task_service.create(db, other_user.id, **_task_kwargs(), now=NOW)
        with pytest.raises(AccessDenied):
            await task_service.delete(db, user.id, task.id)


class TestReminderFire:

    async def test_fires_at_reminder_instant(self, db, user):
        reminder_at = NOW + 30 * MINUTE_MS
        task = await task_service.create(db, user.id, **_task_kwargs(reminder_time=reminder_at), now=NOW)

        with patch.object(notification_service, "send_task_reminder", AsyncMock()) as send:
            # Not due yet
            assert await job_scheduler.run_due_jobs(db, now=reminder_at - 1) == 0
            send.assert_not_awaited()

            assert await job_scheduler.run_due_jobs(db, now=reminder_at) == 1
            send.assert_awaited_once()
            assert send.await_args.args[0].id == task.id

        job = (await _jobs(db))[0]
        assert job.status == JobStatus.COMPLETED.value

    async def test_deleted_task_reminder_is_noop(self, db, user):
        reminder_at = NOW + 30 * MINUTE_MS
        task = await task_service.create(db, user.id, **_task_kwargs(reminder_time=reminder_at), now=NOW)
        await task_service.delete(db, user.id, task.id)

        with patch.object(notification_service, "send_task_reminder", AsyncMock()) as send:
            assert await job_scheduler.run_due_jobs(db, now=reminder_at) == 1
            send.assert_not_awaited()

        job = (await _jobs(db))[0]
        assert job.status == JobStatus.COMPLETED.value


class TestTasksAPI:

    async def test_create_and_list(self, client, user):
        headers = auth_headers(user.id)
        resp = await client.post("/tasks/", json=_task_kwargs(), headers=headers)
        assert resp.status_code == 201
        assert resp.json()["completed"] is False

        resp = await client.get("/tasks/", headers=headers)
        assert [t["title"] for t in resp.json()] == ["Read chapter 4"]

    async def test_end_before_start_accepted(self, client, user):
        body = _task_kwargs(start_time=2000, end_time=1000)
        resp = await client.post("/tasks/", json=body, headers=auth_headers(user.id))
        assert resp.status_code == 201
        assert (resp.json()["start_time"], resp.json()["end_time"]) == (2000, 1000)

    async def test_list_signed_out_is_empty(self, client):
        resp = await client.get("/tasks/")
        assert resp.json() == []

    async def test_create_signed_out_is_401(self, client):
        resp = await client.post("/tasks/", json=_task_kwargs())
        assert resp.status_code == 401

    async def test_update_other_users_task_is_403(self, client, db, user, other_user):
        task = await task_service.create(db, other_user.id, **_task_kwargs(), now=NOW)
        resp = await client.patch(
            f"/tasks/{task.id}", json={"completed": True}, headers=auth_headers(user.id)
        )
        assert resp.status_code == 403
