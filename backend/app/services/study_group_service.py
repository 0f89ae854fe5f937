"""
Study groups: friendships, groups and membership, group chat, sessions and quizzes.

Every group-scoped mutation is membership-gated. Queries degrade instead of
failing: a non-member reading a group gets None or an empty list.
Cross-record uniqueness (one friendship per unordered pair) is a
read-then-check-then-write sequence and is not protected against
concurrent callers.
"""

import logging
from datetime import timezone
from typing import Any
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.models import (
    Friendship,
    FriendshipStatus,
    GroupMessage,
    Quiz,
    StudyGroup,
    StudyGroupMember,
    StudySession,
    User,
    UserSettings,
)
from app.exceptions import AccessDenied, Conflict, InvalidOperation, NotFound
from app.services.file_service import file_service
from app.services.settings_service import settings_service
from app.timeutil import from_ms, now_ms

logger = logging.getLogger(__name__)
settings = get_settings()


def points_month(now: int) -> str:
    """UTC calendar month ("YYYY-MM") a points award falls in."""
    return from_ms(now, timezone.utc).strftime("%Y-%m")


def award_points(points: dict[str, Any] | None, user_id: UUID, amount: int, now: int) -> dict[str, Any]:
    """
    Return a new points ledger with `amount` added for user_id.

    The monthly ledger starts over when the calendar month has changed since
    the last award; the total ledger never resets.
    """
    points = points or {}
    month = points_month(now)
    monthly = dict(points.get("monthly") or {}) if points.get("month") == month else {}
    total = dict(points.get("total") or {})
    key = str(user_id)
    monthly[key] = monthly.get(key, 0) + amount
    total[key] = total.get(key, 0) + amount
    return {"month": month, "monthly": monthly, "total": total}


class StudyGroupService:
    # =========================================================================
    # FRIENDS
    # =========================================================================

    async def _find_friendship(self, db: AsyncSession, user_a: UUID, user_b: UUID) -> Friendship | None:
        """The friendship between two users in either ordering, if any."""
        result = await db.execute(
            select(Friendship).where(
                or_(
                    and_(Friendship.user_id_1 == user_a, Friendship.user_id_2 == user_b),
                    and_(Friendship.user_id_1 == user_b, Friendship.user_id_2 == user_a),
                )
            )
        )
        return result.scalars().first()

    async def add_friend(self, db: AsyncSession, user_id: UUID, serial_number: str) -> Friendship:
        """Send a pending friend request to the owner of serial_number."""
        target = await settings_service.find_by_serial(db, serial_number)
        if target is None:
            raise NotFound("No user with that serial number")
        if target.user_id == user_id:
            raise InvalidOperation("Cannot add yourself as a friend")
        if await self._find_friendship(db, user_id, target.user_id) is not None:
            raise Conflict("Friendship already exists")

        friendship = Friendship(
            user_id_1=user_id,
            user_id_2=target.user_id,
            status=FriendshipStatus.PENDING.value,
        )
        db.add(friendship)
        await db.commit()
        await db.refresh(friendship)
        logger.info("Friend request %s from %s to %s", friendship.id, user_id, target.user_id)
        return friendship

    async def accept_friend(self, db: AsyncSession, user_id: UUID, friendship_id: UUID) -> Friendship:
        """Accept a pending request. Only its target may accept."""
        friendship = await db.get(Friendship, friendship_id)
        if friendship is None:
            raise NotFound("Friend request not found")
        if friendship.user_id_2 != user_id:
            raise AccessDenied("Only the recipient can accept a friend request")
        if friendship.status == FriendshipStatus.ACCEPTED.value:
            raise InvalidOperation("Friend request already accepted")

        friendship.status = FriendshipStatus.ACCEPTED.value
        await db.commit()
        await db.refresh(friendship)
        return friendship

    async def list_friends(self, db: AsyncSession, user_id: UUID) -> list[dict[str, Any]]:
        """Other party of every friendship involving user_id, with their serial number."""
        result = await db.execute(
            select(Friendship)
            .where(or_(Friendship.user_id_1 == user_id, Friendship.user_id_2 == user_id))
            .order_by(Friendship.created_at)
        )
        friendships = list(result.scalars())
        if not friendships:
            return []

        other_ids = [f.user_id_2 if f.user_id_1 == user_id else f.user_id_1 for f in friendships]
        users = {
            u.id: u for u in (await db.execute(select(User).where(User.id.in_(other_ids)))).scalars()
        }
        serials = {
            s.user_id: s.serial_number
            for s in (
                await db.execute(select(UserSettings).where(UserSettings.user_id.in_(other_ids)))
            ).scalars()
        }

        friends = []
        for friendship, other_id in zip(friendships, other_ids):
            other = users.get(other_id)
            if other is None:
                continue
            friends.append(
                {
                    "id": other.id,
                    "name": other.name,
                    "email": other.email,
                    "serial_number": serials.get(other_id),
                    "friendship_id": friendship.id,
                    "status": friendship.status,
                }
            )
        return friends

    # =========================================================================
    # GROUPS
    # =========================================================================

    async def create_group(
        self, db: AsyncSession, user_id: UUID, name: str, description: str = "", now: int | None = None
    ) -> StudyGroup:
        now = now_ms() if now is None else now
        group = StudyGroup(
            name=name,
            description=description,
            creator_id=user_id,
            points={"month": points_month(now), "monthly": {}, "total": {}},
            last_active=now,
            members=[StudyGroupMember(user_id=user_id, joined_at=now)],
        )
        db.add(group)
        await db.commit()
        return group

    async def list_groups(self, db: AsyncSession, user_id: UUID) -> list[StudyGroup]:
        """Groups whose member set contains user_id, most recently active first."""
        result = await db.execute(
            select(StudyGroup)
            .join(StudyGroupMember, StudyGroupMember.group_id == StudyGroup.id)
            .where(StudyGroupMember.user_id == user_id)
            .order_by(StudyGroup.last_active.desc())
        )
        return list(result.scalars())

    async def get_group_details(self, db: AsyncSession, user_id: UUID, group_id: UUID) -> StudyGroup | None:
        group = await db.get(StudyGroup, group_id)
        if group is None or user_id not in group.member_ids:
            return None
        return group

    async def _require_member(self, db: AsyncSession, user_id: UUID, group_id: UUID) -> StudyGroup:
        group = await db.get(StudyGroup, group_id)
        if group is None:
            raise NotFound("Study group not found", {"group_id": str(group_id)})
        if user_id not in group.member_ids:
            raise AccessDenied("Not a member of this group", {"group_id": str(group_id)})
        return group

    async def add_member(
        self, db: AsyncSession, user_id: UUID, group_id: UUID, new_member_id: UUID, now: int | None = None
    ) -> StudyGroup:
        """
        Add a friend of the caller to a group the caller belongs to.

        Adding an existing member is a no-op.
        """
        group = await self._require_member(db, user_id, group_id)
        if new_member_id in group.member_ids:
            return group
        if await db.get(User, new_member_id) is None:
            raise NotFound("User not found", {"user_id": str(new_member_id)})
        if await self._find_friendship(db, user_id, new_member_id) is None:
            raise AccessDenied("Only friends can be added to a group")

        now = now_ms() if now is None else now
        group.members.append(StudyGroupMember(group_id=group.id, user_id=new_member_id, joined_at=now))
        group.last_active = now
        await db.commit()
        return group

    # =========================================================================
    # MESSAGES
    # =========================================================================

    async def send_message(
        self,
        db: AsyncSession,
        user_id: UUID,
        group_id: UUID,
        *,
        type: str,
        content: str,
        file_id: UUID | None = None,
        now: int | None = None,
    ) -> GroupMessage:
        """Post to a group chat and bump the group's last_active."""
        group = await self._require_member(db, user_id, group_id)
        # Shared files must belong to the sender
        if file_id is not None and await file_service.get(db, user_id, file_id) is None:
            raise AccessDenied("File not found or access denied", {"file_id": str(file_id)})

        now = now_ms() if now is None else now
        message = GroupMessage(
            group_id=group.id,
            user_id=user_id,
            type=type,
            content=content,
            file_id=file_id,
            timestamp=now,
        )
        db.add(message)
        group.last_active = now
        await db.commit()
        return message

    async def get_group_messages(self, db: AsyncSession, user_id: UUID, group_id: UUID) -> list[GroupMessage]:
        """Most recent page of messages, newest first. Empty for non-members."""
        if await self.get_group_details(db, user_id, group_id) is None:
            return []
        result = await db.execute(
            select(GroupMessage)
            .where(GroupMessage.group_id == group_id)
            .order_by(GroupMessage.timestamp.desc())
            .limit(settings.group_messages_page_size)
        )
        return list(result.scalars())

    # =========================================================================
    # SESSIONS
    # =========================================================================

    async def schedule_session(
        self,
        db: AsyncSession,
        user_id: UUID,
        group_id: UUID,
        *,
        title: str,
        description: str,
        start_time: int,
        end_time: int,
    ) -> StudySession:
        """Schedule a group session; the scheduler is its first attendee."""
        group = await self._require_member(db, user_id, group_id)
        session = StudySession(
            group_id=group.id,
            scheduled_by=user_id,
            title=title,
            description=description,
            start_time=start_time,
            end_time=end_time,
            attendees=[str(user_id)],
        )
        db.add(session)
        await db.commit()
        return session

    async def list_sessions(self, db: AsyncSession, user_id: UUID, group_id: UUID) -> list[StudySession]:
        if await self.get_group_details(db, user_id, group_id) is None:
            return []
        result = await db.execute(
            select(StudySession)
            .where(StudySession.group_id == group_id)
            .order_by(StudySession.start_time.asc())
        )
        return list(result.scalars())

    async def join_session(self, db: AsyncSession, user_id: UUID, session_id: UUID) -> StudySession:
        """Add the caller to a session's attendees. Joining twice is a no-op."""
        session = await db.get(StudySession, session_id)
        if session is None:
            raise NotFound("Study session not found", {"session_id": str(session_id)})
        await self._require_member(db, user_id, session.group_id)

        if str(user_id) not in session.attendees:
            session.attendees = [*session.attendees, str(user_id)]
            await db.commit()
        return session

    # =========================================================================
    # QUIZZES
    # =========================================================================

    async def create_quiz(
        self,
        db: AsyncSession,
        user_id: UUID,
        group_id: UUID,
        *,
        title: str,
        questions: list[dict[str, Any]],
        expires_at: int,
        file_id: UUID | None = None,
    ) -> Quiz:
        group = await self._require_member(db, user_id, group_id)
        if file_id is not None and await file_service.get(db, user_id, file_id) is None:
            raise AccessDenied("File not found or access denied", {"file_id": str(file_id)})

        quiz = Quiz(
            group_id=group.id,
            created_by=user_id,
            title=title,
            questions=questions,
            participants=[],
            file_id=file_id,
            expires_at=expires_at,
        )
        db.add(quiz)
        await db.commit()
        return quiz

    async def list_quizzes(self, db: AsyncSession, user_id: UUID, group_id: UUID) -> list[Quiz]:
        if await self.get_group_details(db, user_id, group_id) is None:
            return []
        result = await db.execute(
            select(Quiz).where(Quiz.group_id == group_id).order_by(Quiz.expires_at.desc())
        )
        return list(result.scalars())

    async def submit_quiz(
        self,
        db: AsyncSession,
        user_id: UUID,
        quiz_id: UUID,
        answers: list[int],
        now: int | None = None,
    ) -> dict[str, Any]:
        """
        Grade a submission and credit the score to the group's points.

        Quizzes lock at expires_at, and each member may submit once.
        """
        quiz = await db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFound("Quiz not found", {"quiz_id": str(quiz_id)})
        group = await self._require_member(db, user_id, quiz.group_id)

        now = now_ms() if now is None else now
        if now > quiz.expires_at:
            raise InvalidOperation("Quiz has expired", {"quiz_id": str(quiz_id)})
        if any(p.get("user_id") == str(user_id) for p in quiz.participants):
            raise Conflict("Quiz already submitted", {"quiz_id": str(quiz_id)})
        if len(answers) != len(quiz.questions):
            raise InvalidOperation(
                "Answer count does not match question count",
                {"expected": len(quiz.questions), "received": len(answers)},
            )

        correct_answers = [q["correct_answer"] for q in quiz.questions]
        score = sum(1 for given, expected in zip(answers, correct_answers) if given == expected)

        quiz.participants = [
            *quiz.participants,
            {"user_id": str(user_id), "score": score, "completed": True},
        ]
        group.points = award_points(group.points, user_id, score, now)
        group.last_active = now
        await db.commit()

        return {
            "quiz_id": quiz.id,
            "score": score,
            "total": len(correct_answers),
            "correct_answers": correct_answers,
        }


# Singleton instance
study_group_service = StudyGroupService()
