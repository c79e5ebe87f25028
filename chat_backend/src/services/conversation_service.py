"""
Conversation service.

Create, read, update, delete, search and append-message operations on the
conversation aggregate. Every operation is scoped by the owner's user id; a
conversation owned by someone else is reported as NotFound.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from src.db import repositories as repo
from src.db.models import ConversationModel, DEFAULT_MODEL, utcnow

from .errors import Conflict, NotFound, ValidationFailure
from .schemas import (
    ConversationDetail,
    ConversationPage,
    ConversationSummary,
    SearchPage,
    to_detail,
    to_summary,
)
from .validation import (
    ensure_valid,
    parse_conversation_id,
    validate_flag,
    validate_message,
    validate_pagination,
    validate_settings,
    validate_tags,
    validate_title,
)

logger = logging.getLogger("uvicorn.error")

TITLE_PREVIEW_LENGTH = 50
TITLE_ELLIPSIS = "..."


# PUBLIC_INTERFACE
def derive_title(content: str) -> str:
    """Title taken from a message: the first 50 characters, with '...' when truncated."""
    if len(content) > TITLE_PREVIEW_LENGTH:
        return content[:TITLE_PREVIEW_LENGTH] + TITLE_ELLIPSIS
    return content


def _clean_title(title: Optional[str]) -> Optional[str]:
    if title is None:
        return None
    return title.strip() or None


def _clean_tags(tags: List[str]) -> List[str]:
    seen: List[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# PUBLIC_INTERFACE
class ConversationService:
    """Owner-scoped operations on conversations stored in one database session."""

    def __init__(self, db: Session, default_page_size: int = 20, max_page_size: int = 100):
        self.db = db
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # --------------------------
    # Internal helpers
    # --------------------------
    def _load(self, owner_id: str, conversation_id: Any) -> ConversationModel:
        conversation = repo.get_conversation(self.db, parse_conversation_id(conversation_id), owner_id)
        if conversation is None:
            raise NotFound("Conversation not found")
        return conversation

    def _commit(self) -> None:
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning("Stale conversation write rejected")
            raise Conflict("Conversation was modified by another request. Please retry.")

    def _append(
        self,
        conversation: ConversationModel,
        role: str,
        content: str,
        model: Optional[str],
        tokens: Optional[int],
    ) -> None:
        model = model or DEFAULT_MODEL
        tokens = tokens or 0
        repo.add_message(conversation, role, content.strip(), model, tokens)
        conversation.model = model
        conversation.total_tokens = (conversation.total_tokens or 0) + tokens
        conversation.updated_at = utcnow()

    def _apply_title_rule(self, conversation: ConversationModel) -> None:
        if conversation.title is not None:
            return
        first_user = next((m for m in conversation.messages if m.role == "user"), None)
        if first_user is not None:
            conversation.title = derive_title(first_user.content)

    def _page(self, owner_id: str, page: int, limit: Optional[int], **filters: Any) -> Dict[str, Any]:
        if limit is None:
            limit = self.default_page_size
        ensure_valid(validate_pagination(page, limit))
        limit = min(limit, self.max_page_size)
        total = repo.count_conversations(self.db, owner_id, **filters)
        items = repo.find_conversations(self.db, owner_id, offset=(page - 1) * limit, limit=limit, **filters)
        return {
            "conversations": [to_summary(c) for c in items],
            "total_pages": math.ceil(total / limit),
            "current_page": page,
            "total": total,
        }

    # --------------------------
    # Public operations
    # --------------------------
    def find(self, owner_id: str, conversation_id: Any) -> Optional[ConversationModel]:
        """Return the conversation, or None when it is missing, malformed or not owned."""
        try:
            return self._load(owner_id, conversation_id)
        except NotFound:
            return None

    def create(
        self,
        owner_id: str,
        title: Optional[str] = None,
        initial_message: Optional[str] = None,
    ) -> ConversationSummary:
        errors = validate_title(title)
        if initial_message:
            errors += validate_message("user", initial_message)
        ensure_valid(errors)

        conversation = repo.insert_conversation(self.db, owner_id, title=_clean_title(title))
        if initial_message:
            self._append(conversation, "user", initial_message, None, None)
            self._apply_title_rule(conversation)
        self._commit()
        logger.info(f"Conversation created id={conversation.id}")
        return to_summary(conversation)

    def list(
        self,
        owner_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        archived: bool = False,
        search: Optional[str] = None,
    ) -> ConversationPage:
        search = (search or "").strip() or None
        return ConversationPage(**self._page(owner_id, page, limit, archived=archived, search=search))

    def get(self, owner_id: str, conversation_id: Any) -> ConversationDetail:
        return to_detail(self._load(owner_id, conversation_id))

    def update(self, owner_id: str, conversation_id: Any, changes: Dict[str, Any]) -> ConversationSummary:
        """Merge the provided fields: title, tags, is_archived, is_pinned, settings.

        Settings are shallow-merged into the existing settings.
        """
        errors = (
            validate_title(changes.get("title"))
            + validate_tags(changes.get("tags"))
            + validate_flag("isArchived", changes.get("is_archived"))
            + validate_flag("isPinned", changes.get("is_pinned"))
            + validate_settings(changes.get("settings"))
        )
        ensure_valid(errors)

        conversation = self._load(owner_id, conversation_id)
        if "title" in changes:
            conversation.title = _clean_title(changes["title"])
        if changes.get("tags") is not None:
            conversation.replace_tags(_clean_tags(changes["tags"]))
        if changes.get("is_archived") is not None:
            conversation.is_archived = changes["is_archived"]
        if changes.get("is_pinned") is not None:
            conversation.is_pinned = changes["is_pinned"]
        if changes.get("settings") is not None:
            conversation.settings = {**(conversation.settings or {}), **changes["settings"]}
        conversation.updated_at = utcnow()
        self._commit()
        return to_summary(conversation)

    def append_message(
        self,
        owner_id: str,
        conversation_id: Any,
        role: Any,
        content: Any,
        model: Optional[str] = None,
        tokens: Optional[int] = None,
    ) -> ConversationSummary:
        ensure_valid(validate_message(role, content, tokens))
        conversation = self._load(owner_id, conversation_id)
        self._append(conversation, role, content, model, tokens)
        if len(conversation.messages) == 1:
            self._apply_title_rule(conversation)
        self._commit()
        return to_summary(conversation)

    def delete(self, owner_id: str, conversation_id: Any) -> None:
        if not repo.delete_conversation(self.db, parse_conversation_id(conversation_id), owner_id):
            raise NotFound("Conversation not found")
        logger.info(f"Conversation deleted id={conversation_id}")

    def search(
        self,
        owner_id: str,
        query: Optional[str],
        page: int = 1,
        limit: Optional[int] = None,
    ) -> SearchPage:
        if not query or not query.strip():
            raise ValidationFailure(["Search query is required"])
        query = query.strip()
        return SearchPage(query=query, **self._page(owner_id, page, limit, search=query, match_tags=True))
