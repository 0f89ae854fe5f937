"""Task CRUD routes. Times are epoch milliseconds."""

from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.schemas.tasks import TaskCreate, TaskRead, TaskUpdate
from app.services import task_service

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    user: OptionalUser,
    db: DbSession,
) -> list[TaskRead]:
    """All of the caller's tasks ordered by end time."""
    if user is None:
        return []
    return [TaskRead.model_validate(t) for t in await task_service.list_tasks(db, user.id)]


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    user: CurrentUser,
    db: DbSession,
) -> TaskRead:
    """Create a task; a future reminder_time schedules a one-shot reminder."""
    task = await task_service.create(db, user.id, **data.model_dump())
    return TaskRead.model_validate(task)


@router.get("/{task_id}", response_model=TaskRead | None)
async def get_task(
    task_id: UUID,
    user: OptionalUser,
    db: DbSession,
) -> TaskRead | None:
    if user is None:
        return None
    task = await task_service.get(db, user.id, task_id)
    return TaskRead.model_validate(task) if task else None


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    user: CurrentUser,
    db: DbSession,
) -> TaskRead:
    task = await task_service.update(db, user.id, task_id, data.completed)
    return TaskRead.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    user: CurrentUser,
    db: DbSession,
) -> None:
    await task_service.delete(db, user.id, task_id)
