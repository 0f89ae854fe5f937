"""Shared schema configuration and building blocks."""

from datetime import datetime
from typing import Annotated, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Wire-contract instants and durations are integer epoch milliseconds
EpochMillis = Annotated[int, Field(ge=0)]


class BaseSchema(BaseModel):
    """Base schema: reads ORM rows, strips string whitespace."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class OwnedRecordMixin(BaseModel):
    """Identity and bookkeeping columns of a per-user record."""

    id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime


class TimeRangeMixin(BaseModel):
    """start_time/end_time pair where end may not precede start."""

    start_time: EpochMillis
    end_time: EpochMillis

    @model_validator(mode="after")
    def validate_time_range(self) -> Self:
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self
