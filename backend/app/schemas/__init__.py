"""Pydantic schemas for API request/response validation."""

from app.schemas.user import UserRead
from app.schemas.auth import GoogleAuthRequest, TokenResponse
from app.schemas.files import (
    FileRead,
    FileRegister,
    FileURLResponse,
    FolderCreate,
    UploadURLRequest,
    UploadURLResponse,
)
from app.schemas.tasks import TaskCreate, TaskRead, TaskUpdate
from app.schemas.dashboard import DashboardStats, UpcomingTask
from app.schemas.settings import StudyTimeIncrement, UserSettingsRead, UserSettingsUpdate
from app.schemas.study_groups import (
    FriendRead,
    FriendRequest,
    FriendshipRead,
    GroupCreate,
    GroupMessageCreate,
    GroupMessageRead,
    GroupRead,
    MemberAdd,
    QuizCreate,
    QuizRead,
    QuizResult,
    QuizSubmission,
    SessionCreate,
    SessionRead,
)
from app.schemas.ai_chats import (
    AIChatRead,
    ChatIdResponse,
    CurrentChatRead,
    ProcessFileRequest,
    SendMessageRequest,
)

__all__ = [
    # User / auth
    "UserRead",
    "GoogleAuthRequest",
    "TokenResponse",
    # Files
    "FileRead",
    "FileRegister",
    "FileURLResponse",
    "FolderCreate",
    "UploadURLRequest",
    "UploadURLResponse",
    # Tasks / dashboard
    "TaskCreate",
    "TaskRead",
    "TaskUpdate",
    "DashboardStats",
    "UpcomingTask",
    # Settings
    "StudyTimeIncrement",
    "UserSettingsRead",
    "UserSettingsUpdate",
    # Study groups
    "FriendRead",
    "FriendRequest",
    "FriendshipRead",
    "GroupCreate",
    "GroupMessageCreate",
    "GroupMessageRead",
    "GroupRead",
    "MemberAdd",
    "QuizCreate",
    "QuizRead",
    "QuizResult",
    "QuizSubmission",
    "SessionCreate",
    "SessionRead",
    # AI chat
    "AIChatRead",
    "ChatIdResponse",
    "CurrentChatRead",
    "ProcessFileRequest",
    "SendMessageRequest",
]
