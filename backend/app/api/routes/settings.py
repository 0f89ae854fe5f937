"""User settings routes."""

from fastapi import APIRouter

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.schemas.settings import StudyTimeIncrement, UserSettingsRead, UserSettingsUpdate
from app.services import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/", response_model=UserSettingsRead | None)
async def get_settings_route(
    user: OptionalUser,
    db: DbSession,
) -> UserSettingsRead | None:
    """The caller's settings, created with defaults and a fresh serial number on first read."""
    if user is None:
        return None
    return UserSettingsRead.model_validate(await settings_service.get_or_create(db, user.id))


@router.patch("/", response_model=UserSettingsRead)
async def update_settings(
    data: UserSettingsUpdate,
    user: CurrentUser,
    db: DbSession,
) -> UserSettingsRead:
    """Merge the provided fields. 404 until settings have been read once."""
    # An explicit null means "leave unchanged"; every settings column is required
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    row = await settings_service.update(db, user.id, changes)
    return UserSettingsRead.model_validate(row)


@router.post("/study-time", response_model=UserSettingsRead)
async def add_study_time(
    data: StudyTimeIncrement,
    user: CurrentUser,
    db: DbSession,
) -> UserSettingsRead:
    row = await settings_service.add_study_time(db, user.id, data.duration)
    return UserSettingsRead.model_validate(row)


@router.delete("/ai-memory", response_model=UserSettingsRead)
async def clear_ai_memory(
    user: CurrentUser,
    db: DbSession,
) -> UserSettingsRead:
    row = await settings_service.clear_ai_memory(db, user.id)
    return UserSettingsRead.model_validate(row)
