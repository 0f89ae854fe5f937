"""
Dashboard aggregation over a user's tasks.

Nothing here is stored or cached; every call recomputes from the task table
and the clock. ``compute_dashboard_stats`` is the pure core, the service
method only loads rows and resolves the zone that "today" is measured in.
"""

import math
from datetime import timedelta, tzinfo
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.models import Task
from app.timeutil import DAY_MS, MINUTE_MS, from_ms, now_ms, to_ms

settings = get_settings()

UPCOMING_WINDOW_DAYS = 3


def window_starts(now: int, tz: tzinfo | None = None) -> tuple[int, int]:
    """(start of today, start of this week) in epoch ms. Weeks start on Sunday."""
    local_now = from_ms(now, tz)
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    # weekday(): Monday=0 .. Sunday=6
    days_since_sunday = (midnight.weekday() + 1) % 7
    week_start = midnight - timedelta(days=days_since_sunday)
    return to_ms(midnight), to_ms(week_start)


def _minutes(task: Task) -> float:
    return (task.end_time - task.start_time) / MINUTE_MS


def compute_dashboard_stats(tasks: list[Task], now: int, tz: tzinfo | None = None) -> dict:
    """Study time, completion counts and upcoming tasks as of `now`."""
    start_of_day, start_of_week = window_starts(now, tz)
    upcoming_limit = now + UPCOMING_WINDOW_DAYS * DAY_MS

    done = [t for t in tasks if t.completed]
    today = sum(_minutes(t) for t in done if start_of_day <= t.end_time <= now)
    this_week = sum(_minutes(t) for t in done if start_of_week <= t.end_time <= now)

    upcoming = [
        {"task": t, "due_in": math.ceil((t.end_time - now) / DAY_MS)}
        for t in sorted(tasks, key=lambda t: t.end_time)
        if now <= t.end_time <= upcoming_limit
    ]

    return {
        "study_time": {"today": today, "this_week": this_week},
        "tasks": {
            "completed": sum(1 for t in done if t.end_time >= start_of_day),
            "remaining": sum(1 for t in tasks if not t.completed and t.end_time >= now),
        },
        "upcoming_tasks": upcoming,
    }


class DashboardService:
    def timezone(self) -> tzinfo | None:
        # None means the server's local zone
        if settings.dashboard_timezone:
            return ZoneInfo(settings.dashboard_timezone)
        return None

    async def get_stats(self, db: AsyncSession, user_id: UUID, now: int | None = None) -> dict:
        now = now_ms() if now is None else now
        result = await db.execute(select(Task).where(Task.user_id == user_id))
        return compute_dashboard_stats(list(result.scalars()), now, self.timezone())


# Singleton instance
dashboard_service = DashboardService()
