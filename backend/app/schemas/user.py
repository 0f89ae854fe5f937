"""User schemas."""

from datetime import datetime
from uuid import UUID

from app.schemas.base import BaseSchema


class UserRead(BaseSchema):
    """Schema for reading the caller's own profile."""

    id: UUID
    email: str | None
    name: str
    created_at: datetime
    updated_at: datetime
