"""Dashboard route: study time, task counts and upcoming deadlines."""

from fastapi import APIRouter

from app.api.deps import DbSession, OptionalUser
from app.schemas.dashboard import DashboardStats, StudyTime, TaskCounts, UpcomingTask
from app.schemas.tasks import TaskRead
from app.services import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/", response_model=DashboardStats | None)
async def get_dashboard_stats(
    user: OptionalUser,
    db: DbSession,
) -> DashboardStats | None:
    """Recomputed on every call; null when signed out."""
    if user is None:
        return None
    stats = await dashboard_service.get_stats(db, user.id)
    return DashboardStats(
        study_time=StudyTime(**stats["study_time"]),
        tasks=TaskCounts(**stats["tasks"]),
        upcoming_tasks=[
            UpcomingTask(**TaskRead.model_validate(item["task"]).model_dump(), due_in=item["due_in"])
            for item in stats["upcoming_tasks"]
        ],
    )
