"""
Study group routes: friends, groups, group chat, sessions and quizzes.

Reads degrade for signed-out callers and non-members (null / []);
mutations require a signed-in member.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, status

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.schemas.study_groups import (
    FriendRead,
    FriendRequest,
    FriendshipRead,
    GroupCreate,
    GroupMessageRead,
    GroupMessageVariant,
    GroupRead,
    MemberAdd,
    QuizCreate,
    QuizRead,
    QuizResult,
    QuizSubmission,
    SessionCreate,
    SessionRead,
)
from app.services import study_group_service

router = APIRouter(prefix="/study-groups", tags=["study-groups"])


# =============================================================================
# FRIENDS
# =============================================================================


@router.post("/friends", response_model=FriendshipRead, status_code=status.HTTP_201_CREATED)
async def add_friend(
    data: FriendRequest,
    user: CurrentUser,
    db: DbSession,
) -> FriendshipRead:
    """Send a friend request by serial number."""
    friendship = await study_group_service.add_friend(db, user.id, data.serial_number)
    return FriendshipRead.model_validate(friendship)


@router.post("/friends/{friendship_id}/accept", response_model=FriendshipRead)
async def accept_friend(
    friendship_id: UUID,
    user: CurrentUser,
    db: DbSession,
) -> FriendshipRead:
    friendship = await study_group_service.accept_friend(db, user.id, friendship_id)
    return FriendshipRead.model_validate(friendship)


@router.get("/friends", response_model=list[FriendRead])
async def list_friends(
    user: OptionalUser,
    db: DbSession,
) -> list[FriendRead]:
    if user is None:
        return []
    return [FriendRead(**f) for f in await study_group_service.list_friends(db, user.id)]


# =============================================================================
# GROUPS
# =============================================================================


@router.post("/", response_model=GroupRead, status_code=status.HTTP_201_CREATED)
async def create_group(
    data: GroupCreate,
    user: CurrentUser,
    db: DbSession,
) -> GroupRead:
    group = await study_group_service.create_group(db, user.id, data.name, data.description)
    return GroupRead.model_validate(group)


@router.get("/", response_model=list[GroupRead])
async def list_groups(
    user: OptionalUser,
    db: DbSession,
) -> list[GroupRead]:
    """Every group the caller is a member of."""
    if user is None:
        return []
    return [GroupRead.model_validate(g) for g in await study_group_service.list_groups(db, user.id)]


@router.get("/{group_id}", response_model=GroupRead | None)
async def get_group(
    group_id: UUID,
    user: OptionalUser,
    db: DbSession,
) -> GroupRead | None:
    if user is None:
        return None
    group = await study_group_service.get_group_details(db, user.id, group_id)
    return GroupRead.model_validate(group) if group else None


@router.post("/{group_id}/members", response_model=GroupRead)
async def add_member(
    group_id: UUID,
    data: MemberAdd,
    user: CurrentUser,
    db: DbSession,
) -> GroupRead:
    """Add one of the caller's friends to the group."""
    group = await study_group_service.add_member(db, user.id, group_id, data.user_id)
    return GroupRead.model_validate(group)


# =============================================================================
# MESSAGES
# =============================================================================


@router.post(
    "/{group_id}/messages",
    response_model=GroupMessageRead,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    group_id: UUID,
    message: Annotated[GroupMessageVariant, Body(discriminator="type")],
    user: CurrentUser,
    db: DbSession,
) -> GroupMessageRead:
    created = await study_group_service.send_message(
        db,
        user.id,
        group_id,
        type=message.type,
        content=message.content,
        file_id=getattr(message, "file_id", None),
    )
    return GroupMessageRead.model_validate(created)


@router.get("/{group_id}/messages", response_model=list[GroupMessageRead])
async def get_group_messages(
    group_id: UUID,
    user: OptionalUser,
    db: DbSession,
) -> list[GroupMessageRead]:
    """The 50 most recent messages, newest first."""
    if user is None:
        return []
    messages = await study_group_service.get_group_messages(db, user.id, group_id)
    return [GroupMessageRead.model_validate(m) for m in messages]


# =============================================================================
# SESSIONS
# =============================================================================


@router.post(
    "/{group_id}/sessions",
    response_model=SessionRead,
    status_code=status.HTTP_201_CREATED,
)
async def schedule_session(
    group_id: UUID,
    data: SessionCreate,
    user: CurrentUser,
    db: DbSession,
) -> SessionRead:
    session = await study_group_service.schedule_session(db, user.id, group_id, **data.model_dump())
    return SessionRead.model_validate(session)


@router.get("/{group_id}/sessions", response_model=list[SessionRead])
async def list_sessions(
    group_id: UUID,
    user: OptionalUser,
    db: DbSession,
) -> list[SessionRead]:
    if user is None:
        return []
    sessions = await study_group_service.list_sessions(db, user.id, group_id)
    return [SessionRead.model_validate(s) for s in sessions]


@router.post("/sessions/{session_id}/join", response_model=SessionRead)
async def join_session(
    session_id: UUID,
    user: CurrentUser,
    db: DbSession,
) -> SessionRead:
    session = await study_group_service.join_session(db, user.id, session_id)
    return SessionRead.model_validate(session)


# =============================================================================
# QUIZZES
# =============================================================================


@router.post(
    "/{group_id}/quizzes",
    response_model=QuizRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_quiz(
    group_id: UUID,
    data: QuizCreate,
    user: CurrentUser,
    db: DbSession,
) -> QuizRead:
    quiz = await study_group_service.create_quiz(
        db,
        user.id,
        group_id,
        title=data.title,
        questions=[q.model_dump() for q in data.questions],
        expires_at=data.expires_at,
        file_id=data.file_id,
    )
    return QuizRead.model_validate(quiz)


@router.get("/{group_id}/quizzes", response_model=list[QuizRead])
async def list_quizzes(
    group_id: UUID,
    user: OptionalUser,
    db: DbSession,
) -> list[QuizRead]:
    """Group quizzes without their answer keys."""
    if user is None:
        return []
    quizzes = await study_group_service.list_quizzes(db, user.id, group_id)
    return [QuizRead.model_validate(q) for q in quizzes]


@router.post("/quizzes/{quiz_id}/submit", response_model=QuizResult)
async def submit_quiz(
    quiz_id: UUID,
    data: QuizSubmission,
    user: CurrentUser,
    db: DbSession,
) -> QuizResult:
    """Grade the caller's answers and credit the score to the group's points."""
    result = await study_group_service.submit_quiz(db, user.id, quiz_id, data.answers)
    return QuizResult(**result)
