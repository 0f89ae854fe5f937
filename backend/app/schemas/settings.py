"""User settings schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from app.schemas.base import BaseSchema, EpochMillis

ThemeType = Literal["light", "dark", "system"]
StudyModeType = Literal["normal", "pomodoro"]


class StudyPreferences(BaseModel):
    """Durations in milliseconds."""

    preferred_study_time: EpochMillis
    focus_duration: EpochMillis
    break_duration: EpochMillis


class AIMemoryEntry(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: int


class UserSettingsRead(BaseSchema):
    """Schema for reading settings."""

    user_id: UUID
    serial_number: str
    theme: ThemeType
    study_mode: StudyModeType
    focus_mode: bool
    notifications: bool
    study_preferences: StudyPreferences
    ai_memory: list[AIMemoryEntry]
    total_study_time: int
    created_at: datetime
    updated_at: datetime


class UserSettingsUpdate(BaseSchema):
    """Partial update; only provided fields are merged."""

    theme: ThemeType | None = None
    study_mode: StudyModeType | None = None
    focus_mode: bool | None = None
    notifications: bool | None = None
    study_preferences: StudyPreferences | None = None


class StudyTimeIncrement(BaseSchema):
    """Study time to add, in milliseconds. Never negative, so the total only grows."""

    duration: EpochMillis
