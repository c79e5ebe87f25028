"""Conversation endpoints.

Provides:
- GET    /conversations                 - List the caller's conversations
- POST   /conversations                 - Create a conversation
- GET    /conversations/search          - Search title, messages and tags
- GET    /conversations/{id}            - Full conversation with messages
- PUT    /conversations/{id}            - Update title, tags, flags or settings
- DELETE /conversations/{id}            - Delete a conversation
- POST   /conversations/{id}/messages   - Append a message
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from src.db.models import UserModel
from src.services.conversation_service import ConversationService
from src.services.schemas import ConversationPage, SearchPage

from ..deps import get_conversation_service, get_current_user
from ..schemas import (
    ERROR_RESPONSES,
    ConversationCreate,
    ConversationDetailEnvelope,
    ConversationEnvelope,
    ConversationUpdate,
    MessageCreate,
    MessageResponse,
)

router = APIRouter(prefix="/conversations", tags=["conversations"], responses=ERROR_RESPONSES)


@router.get("", summary="List Conversations", description="Page through the caller's conversations, most recently updated first", response_model=ConversationPage)
def list_conversations(
    page: int = Query(1, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size (capped by MAX_PAGE_SIZE)"),
    archived: bool = Query(False, description="Return archived instead of active conversations"),
    search: Optional[str] = Query(None, description="Case-insensitive text to find in titles or messages"),
    user: UserModel = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.list(user.id, page=page, limit=limit, archived=archived, search=search)


@router.post("", summary="Create Conversation", description="Create a conversation, optionally seeded with a user message", response_model=ConversationEnvelope, status_code=status.HTTP_201_CREATED)
def create_conversation(
    payload: ConversationCreate = Body(default_factory=ConversationCreate),
    user: UserModel = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    summary = service.create(user.id, title=payload.title, initial_message=payload.initial_message)
    return ConversationEnvelope(message="Conversation created successfully", conversation=summary)


@router.get("/search", summary="Search Conversations", description="Search titles, message content and tags", response_model=SearchPage)
def search_conversations(
    q: Optional[str] = Query(None, description="Search text (required)"),
    page: int = Query(1, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size (capped by MAX_PAGE_SIZE)"),
    user: UserModel = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.search(user.id, q, page=page, limit=limit)


@router.get("/{conversation_id}", summary="Get Conversation", description="Get a conversation with all of its messages", response_model=ConversationDetailEnvelope)
def get_conversation(
    conversation_id: str = Path(..., description="Conversation ID"),
    user: UserModel = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return ConversationDetailEnvelope(conversation=service.get(user.id, conversation_id))


@router.put("/{conversation_id}", summary="Update Conversation", description="Update title, tags, archive/pin flags or settings", response_model=ConversationEnvelope)
def update_conversation(
    payload: ConversationUpdate,
    conversation_id: str = Path(..., description="Conversation ID"),
    user: UserModel = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    summary = service.update(user.id, conversation_id, payload.model_dump(exclude_unset=True))
    return ConversationEnvelope(message="Conversation updated successfully", conversation=summary)


@router.delete("/{conversation_id}", summary="Delete Conversation", description="Delete a conversation and its messages", response_model=MessageResponse)
def delete_conversation(
    conversation_id: str = Path(..., description="Conversation ID"),
    user: UserModel = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    service.delete(user.id, conversation_id)
    return MessageResponse(message="Conversation deleted successfully")


@router.post("/{conversation_id}/messages", summary="Add Message", description="Append a user or assistant message", response_model=ConversationEnvelope)
def add_message(
    payload: MessageCreate,
    conversation_id: str = Path(..., description="Conversation ID"),
    user: UserModel = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    summary = service.append_message(
        user.id, conversation_id, payload.role, payload.content, model=payload.model, tokens=payload.tokens,
    )
    return ConversationEnvelope(message="Message added successfully", conversation=summary)
