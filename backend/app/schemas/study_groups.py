"""Study group, friendship, message, session and quiz schemas."""

from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, ValidationError, field_validator, model_validator

from app.schemas.base import BaseSchema, EpochMillis, TimeRangeMixin

_http_url = TypeAdapter(HttpUrl)


# =============================================================================
# FRIENDS
# =============================================================================


class FriendRequest(BaseSchema):
    serial_number: str = Field(..., min_length=1, max_length=16)


class FriendshipRead(BaseSchema):
    id: UUID
    user_id_1: UUID
    user_id_2: UUID
    status: Literal["pending", "accepted"]


class FriendRead(BaseModel):
    """The other party of a friendship."""

    id: UUID
    name: str
    email: str | None = None
    serial_number: str | None = None
    friendship_id: UUID
    status: Literal["pending", "accepted"]


# =============================================================================
# GROUPS
# =============================================================================


class GroupCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=2000)


class GroupPoints(BaseModel):
    """Points ledgers keyed by user id string. month is the UTC "YYYY-MM" of the monthly ledger."""

    month: str | None = None
    monthly: dict[str, int] = Field(default_factory=dict)
    total: dict[str, int] = Field(default_factory=dict)


class GroupRead(BaseSchema):
    id: UUID
    name: str
    description: str
    creator_id: UUID
    members: list[UUID]
    points: GroupPoints
    last_active: int

    @field_validator("members", mode="before")
    @classmethod
    def member_rows_to_ids(cls, v: Any) -> list:
        """Accept StudyGroupMember rows straight from the ORM."""
        return [getattr(m, "user_id", m) for m in v]


class MemberAdd(BaseSchema):
    user_id: UUID


# =============================================================================
# MESSAGES (closed tagged variant on `type`)
# =============================================================================


class TextMessage(BaseSchema):
    type: Literal["text"]
    content: str = Field(..., min_length=1, max_length=10000)


class LinkMessage(BaseSchema):
    type: Literal["link"]
    content: str = Field(..., min_length=1, max_length=2048)

    @field_validator("content")
    @classmethod
    def must_be_url(cls, v: str) -> str:
        try:
            _http_url.validate_python(v)
        except ValidationError as e:
            raise ValueError("content must be an http(s) URL") from e
        return v


class FileMessage(BaseSchema):
    """Shares one of the sender's files. content is the caption or file name."""

    type: Literal["file"]
    content: str = Field(..., min_length=1, max_length=1000)
    file_id: UUID


class ImageMessage(BaseSchema):
    """Image by uploaded file (file_id) or by URL in content."""

    type: Literal["image"]
    content: str = Field(..., min_length=1, max_length=2048)
    file_id: UUID | None = None


GroupMessageVariant = Union[TextMessage, LinkMessage, FileMessage, ImageMessage]
GroupMessageCreate = Annotated[GroupMessageVariant, Field(discriminator="type")]


class GroupMessageRead(BaseSchema):
    id: UUID
    group_id: UUID
    user_id: UUID
    type: Literal["text", "file", "link", "image"]
    content: str
    file_id: UUID | None = None
    timestamp: int


# =============================================================================
# SESSIONS
# =============================================================================


class SessionCreate(BaseSchema, TimeRangeMixin):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=2000)


class SessionRead(BaseSchema):
    id: UUID
    group_id: UUID
    scheduled_by: UUID
    title: str
    description: str
    start_time: int
    end_time: int
    attendees: list[UUID]


# =============================================================================
# QUIZZES
# =============================================================================


class QuizQuestion(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)
    options: list[str] = Field(..., min_length=2, max_length=10)
    correct_answer: int = Field(..., ge=0)

    @model_validator(mode="after")
    def answer_in_range(self) -> "QuizQuestion":
        if self.correct_answer >= len(self.options):
            raise ValueError("correct_answer must index into options")
        return self


class QuizCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=255)
    questions: list[QuizQuestion] = Field(..., min_length=1, max_length=100)
    file_id: UUID | None = None
    expires_at: EpochMillis


class QuizQuestionPublic(BaseModel):
    """Question as shown to participants: no answer key."""

    question: str
    options: list[str]


class QuizParticipant(BaseModel):
    user_id: UUID
    score: int
    completed: bool


class QuizRead(BaseSchema):
    id: UUID
    group_id: UUID
    created_by: UUID
    title: str
    questions: list[QuizQuestionPublic]
    participants: list[QuizParticipant]
    file_id: UUID | None = None
    expires_at: int


class QuizSubmission(BaseSchema):
    """Chosen option index per question, in question order."""

    answers: list[int] = Field(..., min_length=1)


class QuizResult(BaseModel):
    quiz_id: UUID
    score: int
    total: int
    correct_answers: list[int]
