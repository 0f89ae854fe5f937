"""Pydantic schemas for the AI assistant chat."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.base import BaseSchema

ToneType = Literal["calm", "encouraging", "formal", "friendly"]


# Request schemas
class SendMessageRequest(BaseModel):
    """Request to send a message to the assistant."""

    content: str = Field(..., min_length=1, max_length=10000)
    tone: ToneType = "friendly"


class ProcessFileRequest(BaseModel):
    """Ask the assistant to work on one of the caller's files."""

    file_id: UUID
    action: Literal["summarize", "quiz"] = "summarize"
    tone: ToneType = "friendly"


# Response schemas
class ChatMessageRead(BaseSchema):
    role: Literal["user", "assistant"]
    content: str
    timestamp: int


class AIChatRead(BaseSchema):
    id: UUID
    user_id: UUID
    messages: list[ChatMessageRead]
    last_active: int


class CurrentChatRead(BaseModel):
    """The caller's current chat, or an empty placeholder when none exists yet."""

    id: UUID | None = None
    messages: list[ChatMessageRead] = Field(default_factory=list)
    last_active: int | None = None


class ChatIdResponse(BaseModel):
    chat_id: UUID
