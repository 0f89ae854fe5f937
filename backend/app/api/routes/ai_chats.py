"""
AI assistant chat routes.

POST /ai-chats/messages returns as soon as the user's message is stored;
the assistant's reply is appended by the background worker. Clients poll
GET /ai-chats/current to pick it up.
"""

from fastapi import APIRouter, status

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.schemas.ai_chats import (
    AIChatRead,
    ChatIdResponse,
    CurrentChatRead,
    ProcessFileRequest,
    SendMessageRequest,
)
from app.services import ai_chat_service

router = APIRouter(prefix="/ai-chats", tags=["ai-chats"])


@router.get("/current", response_model=CurrentChatRead | None)
async def get_current_chat(
    user: OptionalUser,
    db: DbSession,
) -> CurrentChatRead | None:
    """Most recently active chat, or an empty placeholder if the caller has none."""
    if user is None:
        return None
    chat = await ai_chat_service.get_current_chat(db, user.id)
    if chat is None:
        return CurrentChatRead()
    return CurrentChatRead.model_validate(chat, from_attributes=True)


@router.get("/history", response_model=list[AIChatRead])
async def get_chat_history(
    user: OptionalUser,
    db: DbSession,
) -> list[AIChatRead]:
    """All chats, newest activity first."""
    if user is None:
        return []
    return [AIChatRead.model_validate(c) for c in await ai_chat_service.get_chat_history(db, user.id)]


@router.post("/", response_model=ChatIdResponse, status_code=status.HTTP_201_CREATED)
async def start_new_chat(
    user: CurrentUser,
    db: DbSession,
) -> ChatIdResponse:
    chat = await ai_chat_service.start_new_chat(db, user.id)
    return ChatIdResponse(chat_id=chat.id)


@router.post("/messages", response_model=ChatIdResponse, status_code=status.HTTP_202_ACCEPTED)
async def send_message(
    data: SendMessageRequest,
    user: CurrentUser,
    db: DbSession,
) -> ChatIdResponse:
    chat_id = await ai_chat_service.send_message(db, user.id, data.content, data.tone)
    return ChatIdResponse(chat_id=chat_id)


@router.post("/process-file", response_model=ChatIdResponse, status_code=status.HTTP_202_ACCEPTED)
async def process_file(
    data: ProcessFileRequest,
    user: CurrentUser,
    db: DbSession,
) -> ChatIdResponse:
    """Queue a summary or practice quiz of one of the caller's files into the current chat."""
    chat_id = await ai_chat_service.process_file(db, user.id, data.file_id, data.action, data.tone)
    return ChatIdResponse(chat_id=chat_id)
