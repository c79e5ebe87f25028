from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, String, DateTime, Text, ForeignKey, Index, Integer
from sqlalchemy.types import TypeDecorator
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from .database import Base

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, including on backends that store naive values (SQLite)."""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def default_preferences() -> dict:
    return {"theme": "light", "language": "en"}


def default_settings() -> dict:
    return {"temperature": DEFAULT_TEMPERATURE, "maxTokens": DEFAULT_MAX_TOKENS}


class UserModel(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, index=True)
    username = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    initials = Column(String(2), nullable=False, default="")
    subscription = Column(String, nullable=False, default="free")
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(UTCDateTime, nullable=True)
    preferences = Column(JSON, nullable=False, default=default_preferences)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    conversations = relationship("ConversationModel", back_populates="user", cascade="all, delete-orphan")


class ConversationModel(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversations_user_created", "user_id", "created_at"),
        Index("ix_conversations_user_updated", "user_id", "updated_at"),
        Index("ix_conversations_user_archived", "user_id", "is_archived"),
        Index("ix_conversations_user_pinned", "user_id", "is_pinned"),
    )

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # NULL until set explicitly or derived from the first user message
    title = Column(String(100), nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    is_pinned = Column(Boolean, nullable=False, default=False)
    total_tokens = Column(Integer, nullable=False, default=0)
    model = Column(String, nullable=False, default=DEFAULT_MODEL)
    settings = Column(JSON, nullable=False, default=default_settings)
    version = Column(Integer, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, nullable=False)

    user = relationship("UserModel", back_populates="conversations")
    messages = relationship(
        "MessageModel",
        back_populates="conversation",
        order_by="MessageModel.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    tag_rows = relationship(
        "ConversationTagModel",
        order_by="ConversationTagModel.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tags(self) -> list:
        return [row.name for row in self.tag_rows]

    def replace_tags(self, names) -> None:
        self.tag_rows = [ConversationTagModel(name=name, position=i) for i, name in enumerate(names)]

    # Writes based on a stale read raise StaleDataError
    __mapper_args__ = {"version_id_col": version}


class MessageModel(Base):
    __tablename__ = "messages"
    id = Column(String, primary_key=True, index=True)
    conversation_id = Column(String, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    role = Column(String(16), nullable=False)  # 'user' | 'assistant'
    content = Column(Text, nullable=False)
    tokens = Column(Integer, nullable=False, default=0)
    model = Column(String, nullable=False, default=DEFAULT_MODEL)
    timestamp = Column(UTCDateTime, default=utcnow, nullable=False)

    conversation = relationship("ConversationModel", back_populates="messages")


class ConversationTagModel(Base):
    __tablename__ = "conversation_tags"
    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(String, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
