"""Per-user settings: lazy creation, serial numbers, study time and AI memory."""

import logging
import secrets
import string
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.models import StudyMode, Theme, UserSettings
from app.exceptions import Conflict, NotFound
from app.timeutil import MINUTE_MS

logger = logging.getLogger(__name__)
settings = get_settings()

SERIAL_ALPHABET = string.digits + string.ascii_uppercase

DEFAULT_STUDY_PREFERENCES = {
    "preferred_study_time": 25 * MINUTE_MS,
    "focus_duration": 25 * MINUTE_MS,
    "break_duration": 5 * MINUTE_MS,
}


def generate_serial_number(length: int | None = None) -> str:
    """Random uppercase base-36 code used to look users up when adding friends."""
    length = length or settings.serial_number_length
    return "".join(secrets.choice(SERIAL_ALPHABET) for _ in range(length))


class SettingsService:
    """Owns the one-per-user UserSettings row."""

    async def find(self, db: AsyncSession, user_id: UUID) -> UserSettings | None:
        return await db.get(UserSettings, user_id)

    async def find_by_serial(self, db: AsyncSession, serial_number: str) -> UserSettings | None:
        result = await db.execute(
            select(UserSettings).where(UserSettings.serial_number == serial_number.upper())
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, db: AsyncSession, user_id: UUID) -> UserSettings:
        """
        Return the caller's settings, creating them with defaults on first read.

        A fresh serial is drawn until one is unused, up to
        serial_number_max_attempts draws; the unique index on serial_number
        backs the read-then-insert check.
        """
        existing = await self.find(db, user_id)
        if existing is not None:
            return existing

        for attempt in range(1, settings.serial_number_max_attempts + 1):
            serial = generate_serial_number()
            if await self.find_by_serial(db, serial) is not None:
                logger.warning("Serial number collision on attempt %d", attempt)
                continue

            row = UserSettings(
                user_id=user_id,
                serial_number=serial,
                theme=Theme.SYSTEM.value,
                study_mode=StudyMode.NORMAL.value,
                focus_mode=False,
                notifications=True,
                study_preferences=dict(DEFAULT_STUDY_PREFERENCES),
                ai_memory=[],
                total_study_time=0,
            )
            db.add(row)
            try:
                await db.commit()
            except IntegrityError:
                # Lost a race: either the serial or this user's row was inserted concurrently
                await db.rollback()
                existing = await self.find(db, user_id)
                if existing is not None:
                    return existing
                logger.warning("Serial number insert conflict on attempt %d", attempt)
                continue

            await db.refresh(row)
            logger.info("Created settings for user %s", user_id)
            return row

        raise Conflict("Could not allocate a unique serial number")

    async def _require(self, db: AsyncSession, user_id: UUID) -> UserSettings:
        row = await self.find(db, user_id)
        if row is None:
            raise NotFound("Settings not initialised")
        return row

    async def update(self, db: AsyncSession, user_id: UUID, changes: dict[str, Any]) -> UserSettings:
        """Merge the provided fields into an existing row."""
        row = await self._require(db, user_id)
        for field, value in changes.items():
            setattr(row, field, value)
        await db.commit()
        await db.refresh(row)
        return row

    async def add_study_time(self, db: AsyncSession, user_id: UUID, duration: int) -> UserSettings:
        row = await self._require(db, user_id)
        row.total_study_time = row.total_study_time + duration
        await db.commit()
        await db.refresh(row)
        return row

    async def clear_ai_memory(self, db: AsyncSession, user_id: UUID) -> UserSettings:
        row = await self._require(db, user_id)
        row.ai_memory = []
        await db.commit()
        await db.refresh(row)
        return row

    async def remember(self, db: AsyncSession, user_id: UUID, entries: list[dict[str, Any]]) -> None:
        """Append transcript entries to the user's AI memory, keeping the newest ai_memory_window."""
        row = await self.get_or_create(db, user_id)
        # JSON columns are reassigned, never mutated in place
        row.ai_memory = (list(row.ai_memory or []) + entries)[-settings.ai_memory_window:]
        await db.flush()


# Singleton instance
settings_service = SettingsService()
