"""Task schemas. Times are epoch milliseconds."""

from pydantic import Field

from app.schemas.base import BaseSchema, EpochMillis, OwnedRecordMixin


class TaskBase(BaseSchema):
    """Base task schema."""

    title: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=50)
    start_time: EpochMillis
    end_time: EpochMillis
    # Absolute instant, not an offset from start_time
    reminder_time: EpochMillis | None = None
    completed: bool = False


class TaskCreate(TaskBase):
    """Schema for creating a task. end_time before start_time is accepted as given."""


class TaskRead(TaskBase, OwnedRecordMixin):
    """Schema for reading task data."""


class TaskUpdate(BaseSchema):
    """Only the completed flag is mutable."""

    completed: bool
