"""Task service: calendar items and their one-shot reminders."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import JobKind, Task
from app.exceptions import AccessDenied
from app.services.notifications import notification_service
from app.services.scheduler import job_scheduler
from app.timeutil import now_ms

logger = logging.getLogger(__name__)


class TaskService:
    """Owner-scoped task operations."""

    async def create(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        title: str,
        type: str,
        start_time: int,
        end_time: int,
        reminder_time: int | None = None,
        completed: bool = False,
        now: int | None = None,
    ) -> Task:
        """
        Insert a task and, if its reminder lies strictly in the future, schedule it.

        reminder_time is an absolute instant (epoch ms). A reminder at or before
        now is silently not scheduled.
        """
        task = Task(
            user_id=user_id,
            title=title,
            type=type,
            start_time=start_time,
            end_time=end_time,
            reminder_time=reminder_time,
            completed=completed,
        )
        db.add(task)
        await db.flush()

        now = now_ms() if now is None else now
        if reminder_time is not None and reminder_time > now:
            await job_scheduler.schedule_once(
                db, JobKind.TASK_REMINDER, task.id, reminder_time - now, now=now
            )
        elif reminder_time is not None:
            logger.debug("Skipping past reminder for task %s", task.id)

        await db.commit()
        await db.refresh(task)
        return task

    async def list_tasks(self, db: AsyncSession, user_id: UUID) -> list[Task]:
        result = await db.execute(
            select(Task).where(Task.user_id == user_id).order_by(Task.end_time.asc())
        )
        return list(result.scalars())

    async def get(self, db: AsyncSession, user_id: UUID, task_id: UUID) -> Task | None:
        task = await db.get(Task, task_id)
        if task is None or task.user_id != user_id:
            return None
        return task

    async def _get_owned(self, db: AsyncSession, user_id: UUID, task_id: UUID) -> Task:
        task = await self.get(db, user_id, task_id)
        if task is None:
            raise AccessDenied("Task not found or access denied", {"task_id": str(task_id)})
        return task

    async def update(self, db: AsyncSession, user_id: UUID, task_id: UUID, completed: bool) -> Task:
        """Flip the completed flag. No other field is mutable here."""
        task = await self._get_owned(db, user_id, task_id)
        task.completed = completed
        await db.commit()
        await db.refresh(task)
        return task

    async def delete(self, db: AsyncSession, user_id: UUID, task_id: UUID) -> None:
        """Delete a task. A pending reminder stays queued and no-ops when it fires."""
        task = await self._get_owned(db, user_id, task_id)
        await db.delete(task)
        await db.commit()


# Singleton instance
task_service = TaskService()


@job_scheduler.handler(JobKind.TASK_REMINDER)
async def fire_task_reminder(db: AsyncSession, task_id: UUID, payload: dict[str, Any]) -> None:
    """Reminder callback. Tasks deleted since scheduling are skipped."""
    task = await db.get(Task, task_id)
    if task is None:
        logger.info("Reminder for deleted task %s skipped", task_id)
        return
    await notification_service.send_task_reminder(task)
