"""Dashboard schemas."""

from pydantic import BaseModel

from app.schemas.tasks import TaskRead


class StudyTime(BaseModel):
    """Minutes of completed work in each window."""

    today: float
    this_week: float


class TaskCounts(BaseModel):
    completed: int
    remaining: int


class UpcomingTask(TaskRead):
    """Task due within three days, with whole days until due (rounded up)."""

    due_in: int


class DashboardStats(BaseModel):
    study_time: StudyTime
    tasks: TaskCounts
    upcoming_tasks: list[UpcomingTask]
