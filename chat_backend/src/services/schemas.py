"""
Read projections returned by the service layer.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.db.models import ConversationModel, MessageModel, UserModel

DEFAULT_TITLE = "New Chat"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Message(CamelModel):
    id: str
    role: str
    content: str
    timestamp: datetime
    tokens: int = 0
    model: str


class ChatSettings(CamelModel):
    temperature: float
    max_tokens: int


class ConversationSummary(CamelModel):
    id: str
    title: str
    message_count: int
    last_message: Optional[Message] = None
    created_at: datetime
    updated_at: datetime
    is_archived: bool
    is_pinned: bool
    tags: List[str] = Field(default_factory=list)


class ConversationDetail(ConversationSummary):
    messages: List[Message] = Field(default_factory=list)
    total_tokens: int = 0
    model: str
    settings: ChatSettings


class ConversationPage(CamelModel):
    conversations: List[ConversationSummary]
    total_pages: int
    current_page: int
    total: int


class SearchPage(ConversationPage):
    query: str


class PublicUser(CamelModel):
    id: str
    username: str
    email: str
    initials: str
    subscription: str
    is_active: bool
    last_login: Optional[datetime] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


# PUBLIC_INTERFACE
def to_message(msg: MessageModel) -> Message:
    return Message.model_validate(msg)


# PUBLIC_INTERFACE
def to_summary(conversation: ConversationModel) -> ConversationSummary:
    """Reduced view of a conversation without its message list."""
    messages = conversation.messages
    return ConversationSummary(
        id=conversation.id,
        title=conversation.title or DEFAULT_TITLE,
        message_count=len(messages),
        last_message=to_message(messages[-1]) if messages else None,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
        is_archived=conversation.is_archived,
        is_pinned=conversation.is_pinned,
        tags=conversation.tags,
    )


# PUBLIC_INTERFACE
def to_detail(conversation: ConversationModel) -> ConversationDetail:
    """Full conversation including every message."""
    summary = to_summary(conversation)
    return ConversationDetail(
        **summary.model_dump(),
        messages=[to_message(m) for m in conversation.messages],
        total_tokens=conversation.total_tokens,
        model=conversation.model,
        settings=ChatSettings(
            temperature=conversation.settings.get("temperature"),
            max_tokens=conversation.settings.get("maxTokens"),
        ),
    )


# PUBLIC_INTERFACE
def to_public_user(user: UserModel) -> PublicUser:
    """Public-safe projection of a user; never includes the password hash."""
    return PublicUser.model_validate(user)
