from __future__ import annotations

import uuid
from typing import Optional, List, Any

from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session

from .models import UserModel, ConversationModel, ConversationTagModel, MessageModel, utcnow


# --------------------------
# Users
# --------------------------

# PUBLIC_INTERFACE
def create_user(db: Session, username: str, email: str, password_hash: str, initials: str) -> UserModel:
    """Create a new user row."""
    user = UserModel(
        id=str(uuid.uuid4()),
        username=username,
        email=email.lower(),
        password_hash=password_hash,
        initials=initials,
        created_at=utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# PUBLIC_INTERFACE
def get_user_by_email(db: Session, email: str) -> Optional[UserModel]:
    """Fetch a user by email."""
    stmt = select(UserModel).where(func.lower(UserModel.email) == email.lower())
    return db.execute(stmt).scalars().first()


# PUBLIC_INTERFACE
def get_user_by_id(db: Session, user_id: str) -> Optional[UserModel]:
    return db.get(UserModel, user_id)


# PUBLIC_INTERFACE
def find_conflicting_user(
    db: Session,
    email: Optional[str] = None,
    username: Optional[str] = None,
    exclude_id: Optional[str] = None,
) -> Optional[UserModel]:
    """Return another user already holding the given email or username."""
    clauses = []
    if email:
        clauses.append(func.lower(UserModel.email) == email.lower())
    if username:
        clauses.append(UserModel.username == username)
    if not clauses:
        return None
    stmt = select(UserModel).where(or_(*clauses))
    if exclude_id:
        stmt = stmt.where(UserModel.id != exclude_id)
    return db.execute(stmt).scalars().first()


# --------------------------
# Conversations (always scoped by owner)
# --------------------------

def _conversation_filters(
    user_id: str,
    archived: Optional[bool] = None,
    search: Optional[str] = None,
    match_tags: bool = False,
) -> List[Any]:
    clauses: List[Any] = [ConversationModel.user_id == user_id]
    if archived is not None:
        clauses.append(ConversationModel.is_archived == archived)
    if search:
        matches = [
            ConversationModel.title.icontains(search, autoescape=True),
            ConversationModel.messages.any(MessageModel.content.icontains(search, autoescape=True)),
        ]
        if match_tags:
            matches.append(
                ConversationModel.tag_rows.any(ConversationTagModel.name.icontains(search, autoescape=True))
            )
        clauses.append(or_(*matches))
    return clauses


# PUBLIC_INTERFACE
def insert_conversation(db: Session, user_id: str, title: Optional[str] = None) -> ConversationModel:
    """Create an empty conversation owned by user_id (not yet committed)."""
    now = utcnow()
    conversation = ConversationModel(
        id=str(uuid.uuid4()),
        user_id=user_id,
        title=title,
        created_at=now,
        updated_at=now,
    )
    db.add(conversation)
    return conversation


# PUBLIC_INTERFACE
def get_conversation(db: Session, conversation_id: str, user_id: str) -> Optional[ConversationModel]:
    """Fetch one conversation by id and owner.

    Always reloads from the database, so an instance already in the session
    picks up writes committed by other sessions (including its version).
    """
    stmt = (
        select(ConversationModel)
        .where(
            ConversationModel.id == conversation_id,
            ConversationModel.user_id == user_id,
        )
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalars().first()


# PUBLIC_INTERFACE
def find_conversations(
    db: Session,
    user_id: str,
    offset: int,
    limit: int,
    archived: Optional[bool] = None,
    search: Optional[str] = None,
    match_tags: bool = False,
) -> List[ConversationModel]:
    """List an owner's conversations, most recently updated first."""
    stmt = (
        select(ConversationModel)
        .where(*_conversation_filters(user_id, archived, search, match_tags))
        .order_by(ConversationModel.updated_at.desc(), ConversationModel.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


# PUBLIC_INTERFACE
def count_conversations(
    db: Session,
    user_id: str,
    archived: Optional[bool] = None,
    search: Optional[str] = None,
    match_tags: bool = False,
) -> int:
    """Count an owner's conversations matching the same filters as find_conversations."""
    stmt = (
        select(func.count())
        .select_from(ConversationModel)
        .where(*_conversation_filters(user_id, archived, search, match_tags))
    )
    return int(db.execute(stmt).scalar_one())


# PUBLIC_INTERFACE
def delete_conversation(db: Session, conversation_id: str, user_id: str) -> bool:
    """Delete a conversation and its messages. Returns False when nothing matched."""
    conversation = get_conversation(db, conversation_id, user_id)
    if conversation is None:
        return False
    db.delete(conversation)
    db.commit()
    return True


# PUBLIC_INTERFACE
def add_message(
    conversation: ConversationModel,
    role: str,
    content: str,
    model: str,
    tokens: int = 0,
) -> MessageModel:
    """Append a message to the conversation's ordered message list (not yet committed)."""
    msg = MessageModel(
        id=str(uuid.uuid4()),
        role=role,
        content=content,
        model=model,
        tokens=tokens,
        timestamp=utcnow(),
    )
    conversation.messages.append(msg)
    return msg
