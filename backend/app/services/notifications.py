"""Reminder notification collaborator.

Delivery is a structured log record; push/email channels plug in here.
"""

import logging

from app.db.models import Task

logger = logging.getLogger(__name__)


class NotificationService:
    """Emits user-facing notifications."""

    async def send_task_reminder(self, task: Task) -> None:
        logger.info(
            'Reminder: task "%s" is due soon',
            task.title,
            extra={"user_id": str(task.user_id), "task_id": str(task.id), "end_time": task.end_time},
        )


# Singleton instance
notification_service = NotificationService()
