"""Tests for dashboard aggregation."""

from datetime import datetime, timezone

from app.db.models import Task
from app.services.dashboard_service import compute_dashboard_stats, dashboard_service, window_starts
from app.services.task_service import task_service
from app.timeutil import DAY_MS, MINUTE_MS, now_ms, to_ms
from conftest import auth_headers

UTC = timezone.utc
# Wednesday 2025-06-11 15:00 UTC
NOW = to_ms(datetime(2025, 6, 11, 15, 0, tzinfo=UTC))


def _at(day: int, hour: int, minute: int = 0) -> int:
    return to_ms(datetime(2025, 6, day, hour, minute, tzinfo=UTC))


def _task(start: int, end: int, completed: bool = True, title: str = "Study") -> Task:
    return Task(title=title, type="study", start_time=start, end_time=end, completed=completed)


class TestWindows:

    def test_today_and_week_start(self):
        start_of_day, start_of_week = window_starts(NOW, UTC)
        assert start_of_day == _at(11, 0)
        # Most recent Sunday
        assert start_of_week == _at(8, 0)

    def test_on_sunday_week_starts_today(self):
        sunday_noon = _at(8, 12)
        start_of_day, start_of_week = window_starts(sunday_noon, UTC)
        assert start_of_day == start_of_week == _at(8, 0)


class TestStudyTime:

    def test_no_completed_tasks_today_is_zero(self):
        stats = compute_dashboard_stats([], NOW, UTC)
        assert stats["study_time"]["today"] == 0
        assert stats["study_time"]["this_week"] == 0

    def test_one_hour_task_today_is_sixty_minutes(self):
        stats = compute_dashboard_stats([_task(_at(11, 9), _at(11, 10))], NOW, UTC)
        assert stats["study_time"]["today"] == 60
        assert stats["study_time"]["this_week"] == 60

    def test_incomplete_tasks_do_not_count(self):
        stats = compute_dashboard_stats([_task(_at(11, 9), _at(11, 10), completed=False)], NOW, UTC)
        assert stats["study_time"]["today"] == 0

    def test_week_window(self):
        tasks = [
            _task(_at(9, 10), _at(9, 11, 30)),  # Monday
            _task(_at(7, 10), _at(7, 12)),  # last Saturday, outside the week
        ]
        stats = compute_dashboard_stats(tasks, NOW, UTC)
        assert stats["study_time"]["today"] == 0
        assert stats["study_time"]["this_week"] == 90


class TestTaskCounts:

    def test_completed_and_remaining(self):
        tasks = [
            _task(_at(11, 9), _at(11, 10)),  # completed today
            _task(_at(11, 16), _at(11, 17)),  # completed ahead of time
            _task(_at(10, 9), _at(10, 10)),  # completed yesterday
            _task(_at(12, 9), _at(12, 10), completed=False),  # remaining
            _task(_at(11, 9), _at(11, 10), completed=False),  # overdue, not remaining
        ]
        stats = compute_dashboard_stats(tasks, NOW, UTC)
        assert stats["tasks"] == {"completed": 2, "remaining": 1}


class TestUpcoming:

    def test_due_in_rounds_up_days(self):
        soon = _task(NOW, NOW + 60 * MINUTE_MS, completed=False, title="soon")
        later = _task(NOW, NOW + 2 * DAY_MS + 12 * 60 * MINUTE_MS, completed=False, title="later")
        edge = _task(NOW, NOW + 3 * DAY_MS, completed=False, title="edge")
        too_far = _task(NOW, NOW + 3 * DAY_MS + 1, completed=False, title="too far")
        past = _task(NOW - DAY_MS, NOW - 1, completed=False, title="past")

        stats = compute_dashboard_stats([later, too_far, soon, past, edge], NOW, UTC)
        upcoming = [(item["task"].title, item["due_in"]) for item in stats["upcoming_tasks"]]
        assert upcoming == [("soon", 1), ("later", 3), ("edge", 3)]


class TestDashboardAPI:

    async def test_signed_out_is_null(self, client):
        resp = await client.get("/dashboard/")
        assert resp.status_code == 200
        assert resp.json() is None

    async def test_stats_shape(self, client, db, user, monkeypatch):
        monkeypatch.setattr(dashboard_service, "timezone", lambda: UTC)
        now = now_ms()
        await task_service.create(
            db,
            user.id,
            title="Essay",
            type="writing",
            start_time=now,
            end_time=now + DAY_MS - MINUTE_MS,
            now=now,
        )

        resp = await client.get("/dashboard/", headers=auth_headers(user.id))
        body = resp.json()
        assert body["study_time"] == {"today": 0, "this_week": 0}
        assert body["tasks"] == {"completed": 0, "remaining": 1}
        assert body["upcoming_tasks"][0]["title"] == "Essay"
        assert body["upcoming_tasks"][0]["due_in"] == 1
