"""
SQLAlchemy 2.0 Models for StudyNest.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys (except the 1:1 user_settings table).

Instants that travel over the API (task times, message timestamps,
last-active stamps, quiz expiry, job run_at) are stored as integer epoch
milliseconds. created_at/updated_at are bookkeeping timestamps.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType


# =============================================================================
# ENUMS
# =============================================================================


class Theme(str, PyEnum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class StudyMode(str, PyEnum):
    NORMAL = "normal"
    POMODORO = "pomodoro"


class FriendshipStatus(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class GroupMessageType(str, PyEnum):
    TEXT = "text"
    FILE = "file"
    LINK = "link"
    IMAGE = "image"


class ChatRole(str, PyEnum):
    """Role in an AI chat transcript."""

    USER = "user"
    ASSISTANT = "assistant"


class JobKind(str, PyEnum):
    """Deferred job kinds handled by the worker."""

    TASK_REMINDER = "task_reminder"
    AI_CHAT_RESPONSE = "ai_chat_response"
    AI_FILE_ACTION = "ai_file_action"


class JobStatus(str, PyEnum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# USERS
# =============================================================================


class User(Base):
    """
    Core user account.

    Decoupled from auth providers - users can have multiple auth_identities
    linked to one account.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, index=True, nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    auth_identities: Mapped[list["AuthIdentity"]] = relationship(
        "AuthIdentity", back_populates="user", cascade="all, delete-orphan"
    )
    files: Mapped[list["File"]] = relationship(
        "File", back_populates="user", cascade="all, delete-orphan"
    )
    tasks: Mapped[list["Task"]] = relationship(
        "Task", back_populates="user", cascade="all, delete-orphan"
    )
    settings: Mapped[Optional["UserSettings"]] = relationship(
        "UserSettings", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    ai_chats: Mapped[list["AIChat"]] = relationship(
        "AIChat", back_populates="user", cascade="all, delete-orphan"
    )


class AuthIdentity(Base):
    """
    OAuth provider identity linked to a user.

    We only verify id_tokens at login; provider access/refresh tokens are not stored.
    """

    __tablename__ = "auth_identities"
    __table_args__ = (
        UniqueConstraint("provider", "provider_user_id", name="unique_provider_identity"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)  # 'google'
    provider_user_id: Mapped[str] = mapped_column(String(255), nullable=False)  # Provider's 'sub' claim
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_login_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="auth_identities")


# =============================================================================
# FILES
# =============================================================================


class File(Base):
    """
    File or folder in a user's hierarchy.

    Folders never carry a storage_id. parent_folder_id intentionally has no
    foreign key: ownership of the parent is checked at write time, and
    deleting a folder leaves its children in place.
    """

    __tablename__ = "files"
    __table_args__ = (
        Index("idx_files_user_parent", "user_id", "parent_folder_id"),
        CheckConstraint(
            "NOT is_folder OR storage_id IS NULL",
            name="folder_has_no_blob",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(255), nullable=False)  # "folder" or MIME type
    parent_folder_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    is_folder: Mapped[bool] = mapped_column(default=False, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    storage_id: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)  # S3 key
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="files")


# =============================================================================
# TASKS
# =============================================================================


class Task(Base):
    """Calendar task with optional reminder."""

    __tablename__ = "tasks"
    __table_args__ = (Index("idx_tasks_user_end_time", "user_id", "end_time"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)  # category, e.g. "study", "exam"
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reminder_time: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    completed: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="tasks")


# =============================================================================
# SETTINGS
# =============================================================================


class UserSettings(Base):
    """Per-user preferences, friend serial number and AI memory (1:1 with users)."""

    __tablename__ = "user_settings"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    serial_number: Mapped[str] = mapped_column(String(16), unique=True, index=True, nullable=False)
    theme: Mapped[str] = mapped_column(String(10), nullable=False, default=Theme.SYSTEM.value)
    study_mode: Mapped[str] = mapped_column(String(10), nullable=False, default=StudyMode.NORMAL.value)
    focus_mode: Mapped[bool] = mapped_column(default=False, nullable=False)
    notifications: Mapped[bool] = mapped_column(default=True, nullable=False)
    # {preferred_study_time, focus_duration, break_duration} in milliseconds
    study_preferences: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    # [{role, content, timestamp}]
    ai_memory: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    total_study_time: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="settings")


# =============================================================================
# STUDY GROUPS
# =============================================================================


class Friendship(Base):
    """
    Friend link between two users.

    user_id_1 is the requester, user_id_2 the target. At most one row per
    unordered pair; enforced by read-then-check in the service layer.
    """

    __tablename__ = "friendships"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id_1: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id_2: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=FriendshipStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class StudyGroup(Base):
    """
    Peer study group.

    points = {"month": "YYYY-MM", "monthly": {user_id: n}, "total": {user_id: n}}
    """

    __tablename__ = "study_groups"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    creator_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    points: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    last_active: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    members: Mapped[list["StudyGroupMember"]] = relationship(
        "StudyGroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="StudyGroupMember.joined_at",
        lazy="selectin",
    )

    @property
    def member_ids(self) -> list[UUID]:
        return [m.user_id for m in self.members]


class StudyGroupMember(Base):
    """Membership row; the member set only grows."""

    __tablename__ = "study_group_members"
    __table_args__ = (Index("idx_study_group_members_user", "user_id"),)

    group_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("study_groups.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    joined_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    group: Mapped["StudyGroup"] = relationship("StudyGroup", back_populates="members")


class GroupMessage(Base):
    """Chat message posted to a study group. Never edited or deleted."""

    __tablename__ = "group_messages"
    __table_args__ = (Index("idx_group_messages_group_time", "group_id", "timestamp"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    group_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("study_groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    file_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)


class StudySession(Base):
    """Scheduled group study session. attendees is a list of user id strings."""

    __tablename__ = "study_sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    group_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("study_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scheduled_by: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    attendees: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)


class Quiz(Base):
    """
    Group quiz.

    questions: [{question, options, correct_answer}]
    participants: [{user_id, score, completed}]
    Submissions are rejected once expires_at has passed.
    """

    __tablename__ = "quizzes"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    group_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("study_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_by: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False)
    participants: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    file_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


# =============================================================================
# AI CHAT
# =============================================================================


class AIChat(Base):
    """
    AI assistant conversation.

    The "current" chat is never stored: it is the chat with the greatest
    last_active for the user.
    """

    __tablename__ = "ai_chats"
    __table_args__ = (Index("idx_ai_chats_user_last_active", "user_id", "last_active"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    last_active: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="ai_chats")
    messages: Mapped[list["AIChatMessage"]] = relationship(
        "AIChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="AIChatMessage.position",
        lazy="selectin",
    )


class AIChatMessage(Base):
    """One transcript entry. position keeps insertion order when timestamps tie."""

    __tablename__ = "ai_chat_messages"
    __table_args__ = (Index("idx_ai_chat_messages_chat_position", "chat_id", "position"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    chat_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("ai_chats.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # 'user' or 'assistant'
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    chat: Mapped["AIChat"] = relationship("AIChat", back_populates="messages")


# =============================================================================
# DEFERRED JOBS
# =============================================================================


class ScheduledJob(Base):
    """
    Run-once deferred job.

    Keyed by (kind, subject_id). Status transitions:
    queued -> running -> completed | failed. A running job whose claim is
    older than the lease is reclaimed, so delivery is at-least-once.
    """

    __tablename__ = "scheduled_jobs"
    __table_args__ = (
        Index("idx_scheduled_jobs_status_run_at", "status", "run_at"),
        Index("idx_scheduled_jobs_kind_subject", "kind", "subject_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    subject_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    run_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=JobStatus.QUEUED.value)
    attempts: Mapped[int] = mapped_column(nullable=False, default=0)
    claimed_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    completed_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
