"""
AI assistant conversations.

The "current" chat is derived, never stored: it is the user's chat with the
greatest last_active. Sending a message only persists the user's turn and
enqueues an ai_chat_response job; the assistant's reply arrives later
through that job. Response jobs always append exactly one assistant
message: completion failures become a fixed apology in the transcript and
are never raised to the job runner.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.models import AIChat, AIChatMessage, ChatRole, File, JobKind
from app.exceptions import AccessDenied, InvalidOperation, ServiceError
from app.services.completion_service import completion_service
from app.services.file_service import file_service
from app.services.s3 import StorageError, s3_service
from app.services.scheduler import job_scheduler
from app.services.settings_service import settings_service
from app.services.text_extractor import text_extractor
from app.timeutil import now_ms

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_TONE = "friendly"

EMPTY_REPLY_FALLBACK = "I'm not sure how to respond to that."
APOLOGY_MESSAGE = "I apologize, but I'm having trouble responding right now. Please try again."
UNREADABLE_FILE_MESSAGE = 'I couldn\'t read "{name}". Try a PDF or a plain-text file.'

FILE_ACTION_PROMPTS = {
    "summarize": (
        'Summarize the following study material from "{name}". '
        "Highlight the key concepts and anything worth memorizing.\n\n{text}"
    ),
    "quiz": (
        'Write five multiple-choice questions that test understanding of the following study material from "{name}". '
        "Give four options per question and mark the correct answer.\n\n{text}"
    ),
}


def build_system_preamble(tone: str, memory: list[dict[str, Any]] | None = None) -> str:
    """Persona and tone instructions, plus recent memory from earlier conversations."""
    preamble = (
        "You are a helpful AI study assistant. "
        f"Your tone should be {tone}. "
        "If the user seems stressed or vents, offer support and mental wellness advice. "
        "If insulted, apologize and ask for clarification."
    )
    if memory:
        lines = [f"{entry['role']}: {entry['content']}" for entry in memory]
        preamble += "\n\nRecent conversation with this user, for context:\n" + "\n".join(lines)
    return preamble


def transcript(chat: AIChat) -> list[dict[str, str]]:
    """Chat messages as completion-service turns, starting from the first user turn."""
    turns = [{"role": m.role, "content": m.content} for m in chat.messages]
    while turns and turns[0]["role"] != ChatRole.USER.value:
        turns.pop(0)
    return turns


class AIChatService:
    """Conversation state for the AI assistant."""

    async def get_current_chat(self, db: AsyncSession, user_id: UUID) -> AIChat | None:
        result = await db.execute(
            select(AIChat)
            .where(AIChat.user_id == user_id)
            .order_by(AIChat.last_active.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_chat_history(self, db: AsyncSession, user_id: UUID) -> list[AIChat]:
        result = await db.execute(
            select(AIChat).where(AIChat.user_id == user_id).order_by(AIChat.last_active.desc())
        )
        return list(result.scalars())

    async def _new_chat(self, db: AsyncSession, user_id: UUID, now: int) -> AIChat:
        current = await self.get_current_chat(db, user_id)
        # The new chat must sort first even if the clock hasn't moved since the last activity
        last_active = now if current is None else max(now, current.last_active + 1)
        chat = AIChat(user_id=user_id, last_active=last_active, messages=[])
        db.add(chat)
        await db.flush()
        return chat

    async def start_new_chat(self, db: AsyncSession, user_id: UUID, now: int | None = None) -> AIChat:
        """Always creates a fresh chat, which becomes the current one."""
        chat = await self._new_chat(db, user_id, now_ms() if now is None else now)
        await db.commit()
        return chat

    @staticmethod
    def _append(chat: AIChat, role: ChatRole, content: str, now: int) -> AIChatMessage:
        message = AIChatMessage(
            position=len(chat.messages),
            role=role.value,
            content=content,
            timestamp=now,
        )
        chat.messages.append(message)
        chat.last_active = max(now, chat.last_active)
        return message

    async def send_message(
        self,
        db: AsyncSession,
        user_id: UUID,
        content: str,
        tone: str = DEFAULT_TONE,
        now: int | None = None,
    ) -> UUID:
        """
        Append the user's message to the current chat and enqueue the reply.

        Returns the chat id without waiting for the completion service.
        """
        now = now_ms() if now is None else now
        chat = await self.get_current_chat(db, user_id)
        if chat is None:
            chat = await self._new_chat(db, user_id, now)

        self._append(chat, ChatRole.USER, content, now)
        await job_scheduler.schedule_once(
            db, JobKind.AI_CHAT_RESPONSE, chat.id, 0, payload={"tone": tone}, now=now
        )
        await db.commit()
        return chat.id

    async def generate_response(self, db: AsyncSession, chat_id: UUID, tone: str = DEFAULT_TONE) -> None:
        """Ask the completion service for a reply and append it. No-op if the chat is gone."""
        chat = await db.get(AIChat, chat_id)
        if chat is None:
            logger.info("Chat %s no longer exists, skipping response", chat_id)
            return

        user_settings = await settings_service.find(db, chat.user_id)
        memory = list(user_settings.ai_memory) if user_settings else []
        turns = transcript(chat)

        succeeded = False
        try:
            reply = await completion_service.complete(build_system_preamble(tone, memory), turns)
            content = reply.strip() or EMPTY_REPLY_FALLBACK
            succeeded = True
        except ServiceError:
            logger.warning("Completion failed for chat %s, replying with apology", chat_id)
            content = APOLOGY_MESSAGE

        now = now_ms()
        self._append(chat, ChatRole.ASSISTANT, content, now)

        if succeeded and turns:
            last_user_turn = turns[-1] if turns[-1]["role"] == ChatRole.USER.value else None
            entries = []
            if last_user_turn is not None:
                entries.append({**last_user_turn, "timestamp": chat.messages[-2].timestamp})
            entries.append({"role": ChatRole.ASSISTANT.value, "content": content, "timestamp": now})
            await settings_service.remember(db, chat.user_id, entries)

        await db.commit()

    async def process_file(
        self,
        db: AsyncSession,
        user_id: UUID,
        file_id: UUID,
        action: str = "summarize",
        tone: str = DEFAULT_TONE,
        now: int | None = None,
    ) -> UUID:
        """
        Queue an assistant action (summary or practice quiz) on one of the caller's files.

        The result is appended to the chat that is current now. Returns its id.
        """
        file = await file_service.get(db, user_id, file_id)
        if file is None:
            raise AccessDenied("File not found or access denied", {"file_id": str(file_id)})
        if file.is_folder or not file.storage_id:
            raise InvalidOperation("File has no stored content", {"file_id": str(file_id)})

        now = now_ms() if now is None else now
        chat = await self.get_current_chat(db, user_id)
        if chat is None:
            chat = await self._new_chat(db, user_id, now)

        await job_scheduler.schedule_once(
            db,
            JobKind.AI_FILE_ACTION,
            file.id,
            0,
            payload={"chat_id": str(chat.id), "action": action, "tone": tone},
            now=now,
        )
        await db.commit()
        return chat.id

    async def process_file_content(
        self, db: AsyncSession, file_id: UUID, chat_id: UUID, action: str, tone: str = DEFAULT_TONE
    ) -> None:
        """Read the file, run the action through the completion service and post the result."""
        file = await db.get(File, file_id)
        chat = await db.get(AIChat, chat_id)
        if file is None or chat is None:
            logger.info("File %s or chat %s no longer exists, skipping", file_id, chat_id)
            return

        text = None
        if file.storage_id:
            try:
                data = await s3_service.download_object(file.storage_id)
                text = await text_extractor.extract(data, file.type)
            except StorageError:
                logger.warning("Could not download file %s", file_id, exc_info=True)

        if not text or not text.strip():
            content = UNREADABLE_FILE_MESSAGE.format(name=file.name)
        else:
            if len(text) > settings.file_context_max_chars:
                text = text[: settings.file_context_max_chars] + "\n\n[... content truncated ...]"
            template = FILE_ACTION_PROMPTS.get(action, FILE_ACTION_PROMPTS["summarize"])
            prompt = template.format(name=file.name, text=text)
            try:
                reply = await completion_service.complete(
                    build_system_preamble(tone), [{"role": ChatRole.USER.value, "content": prompt}]
                )
                content = reply.strip() or EMPTY_REPLY_FALLBACK
            except ServiceError:
                logger.warning("Completion failed for file %s, replying with apology", file_id)
                content = APOLOGY_MESSAGE

        self._append(chat, ChatRole.ASSISTANT, content, now_ms())
        await db.commit()


# Singleton instance
ai_chat_service = AIChatService()


@job_scheduler.handler(JobKind.AI_CHAT_RESPONSE)
async def run_chat_response(db: AsyncSession, chat_id: UUID, payload: dict[str, Any]) -> None:
    await ai_chat_service.generate_response(db, chat_id, payload.get("tone", DEFAULT_TONE))


@job_scheduler.handler(JobKind.AI_FILE_ACTION)
async def run_file_action(db: AsyncSession, file_id: UUID, payload: dict[str, Any]) -> None:
    await ai_chat_service.process_file_content(
        db,
        file_id,
        UUID(payload["chat_id"]),
        payload.get("action", "summarize"),
        payload.get("tone", DEFAULT_TONE),
    )
