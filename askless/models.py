"""Data models and schemas for the askless API.

Request/response envelopes use camelCase aliases (userId, isDuplicate...)
to match the browser client; entity rows keep their snake_case columns.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

VoteType = Literal["upvote", "downvote"]


# =============================================================================
# Entity Models
# =============================================================================

class Profile(BaseModel):
    """Public representation of a user or bot."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    is_ai: bool = False
    avatar_url: Optional[str] = None


class Tag(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class Question(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    user_id: str
    title: str
    content: str
    status: str
    search_count: int = 0


class QuestionDetail(Question):
    """Question with its tags and author."""
    tags: List[Tag] = []
    profile: Optional[Profile] = None


class Answer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    question_id: str
    user_id: str
    content: str
    is_accepted: bool = False
    profile: Optional[Profile] = None


class Comment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    answer_id: Optional[str] = None
    question_id: Optional[str] = None
    user_id: str
    content: str
    parent_id: Optional[str] = None
    profile: Optional[Profile] = None


class Vote(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    user_id: str
    question_id: Optional[str] = None
    answer_id: Optional[str] = None
    vote_type: VoteType


class VoteCounts(BaseModel):
    upvotes: int = 0
    downvotes: int = 0
    score: int = 0


class BotAnswer(BaseModel):
    """An answer tagged with the bot that wrote it."""
    model_config = ConfigDict(populate_by_name=True)

    answer: Answer
    bot_profile: Profile = Field(..., alias="botProfile")
    bot_name: str = Field(..., alias="botName")
    bot_id: str = Field(..., alias="botId")
    answer_text: str = Field(..., alias="answerText")


# =============================================================================
# Request Models
# =============================================================================

class IdentityFields(BaseModel):
    """Caller identity carried in every write request."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    username: Optional[str] = None
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")


class AskRequest(IdentityFields):
    """Schema for POST /api/ask."""
    question: str
    title: Optional[str] = None
    tag_ids: Optional[List[int]] = Field(None, alias="tagIds")
    tags: Optional[List[str]] = None
    fast: bool = False

    @field_validator('question')
    @classmethod
    def question_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Question is required')
        return v.strip()

    @property
    def resolved_title(self) -> str:
        return (self.title or "").strip() or self.question[:100]


class SingleAnswerRequest(BaseModel):
    """Schema for POST /api/answer (single, non-persisted answer)."""
    question: str
    sass: float = 50

    @field_validator('question')
    @classmethod
    def question_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Question is required')
        return v.strip()

    @field_validator('sass')
    @classmethod
    def clamp_sass(cls, v):
        return min(max(v, 0), 100)


class QuestionCreate(IdentityFields):
    title: str
    content: str
    tag_ids: Optional[List[int]] = Field(None, alias="tagIds")
    tags: Optional[List[str]] = None

    @field_validator('title', 'content')
    @classmethod
    def not_blank(cls, v, info):
        if not v or not v.strip():
            raise ValueError(f'{info.field_name.capitalize()} is required')
        return v.strip()


class AnswerCreate(IdentityFields):
    content: str

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Content is required')
        return v.strip()


class CommentCreate(AnswerCreate):
    parent_id: Optional[str] = Field(None, alias="parentId")


class OwnerAction(BaseModel):
    """Body for owner-only actions (delete, accept)."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")


class TagCreate(BaseModel):
    name: str

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Tag name is required')
        return v.strip().lower()


class VoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    question_id: Optional[str] = Field(None, alias="questionId")
    answer_id: Optional[str] = Field(None, alias="answerId")
    vote_type: VoteType = Field("upvote", alias="voteType")


class ConfigUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(..., alias="apiKey")

    @field_validator('api_key')
    @classmethod
    def key_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('API key is required')
        return v.strip()


# =============================================================================
# Response Models
# =============================================================================

class AskResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_duplicate: bool = Field(False, alias="isDuplicate")
    question: Optional[Question] = None
    original_question: Optional[Question] = Field(None, alias="originalQuestion")
    answers: List[BotAnswer] = []
    tags: List[Tag] = []
    total_bots: int = Field(0, alias="totalBots")
    successful_bots: int = Field(0, alias="successfulBots")
    pending: bool = False
    message: Optional[str] = None


class SingleAnswerResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    is_closed: bool = Field(False, alias="isClosed")


class VoteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vote: Optional[Vote] = None
    user_vote: Optional[Vote] = Field(None, alias="userVote")
    counts: VoteCounts


class BotInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    name: str
    username: str
    profile_id: str = Field(..., alias="profileId")


class BotInitResponse(BaseModel):
    bots: List[BotInfo]
    created: int


class UserActivity(BaseModel):
    questions: List[Question] = []
    answers: List[Answer] = []
    comments: List[Comment] = []


class ConfigStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field("", alias="apiKey")
    has_api_key: bool = Field(False, alias="hasApiKey")
    provider: str
    models: List[str] = []
