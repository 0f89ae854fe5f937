"""API routes package."""

from app.api.routes import (
    ai_chats,
    auth,
    dashboard,
    files,
    settings,
    study_groups,
    tasks,
)

__all__ = [
    "ai_chats",
    "auth",
    "dashboard",
    "files",
    "settings",
    "study_groups",
    "tasks",
]
