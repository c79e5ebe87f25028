"""
FastAPI dependencies: settings, services and the authenticated user.

Process-scoped objects (settings, session factory, provider client) live on
`app.state`; they are created by the lifespan hook and only read here.
"""

from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from src.db.database import get_db
from src.db.models import UserModel
from src.services.chat_relay import ChatRelay
from src.services.conversation_service import ConversationService
from src.services.openai_client import OpenAIChatClient
from src.services.user_service import UserService
from src.settings import Settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


# PUBLIC_INTERFACE
def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# PUBLIC_INTERFACE
def get_provider(request: Request) -> OpenAIChatClient:
    return request.app.state.provider


# PUBLIC_INTERFACE
def get_user_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> UserService:
    return UserService(db, settings.SECRET_KEY, timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


# PUBLIC_INTERFACE
def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    users: UserService = Depends(get_user_service),
) -> UserModel:
    """Resolve the current user from a JWT access token (AuthFailure when missing or invalid)."""
    return users.authenticate(token)


# PUBLIC_INTERFACE
def get_conversation_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ConversationService:
    return ConversationService(db, default_page_size=settings.DEFAULT_PAGE_SIZE, max_page_size=settings.MAX_PAGE_SIZE)


# PUBLIC_INTERFACE
def get_chat_relay(
    conversations: ConversationService = Depends(get_conversation_service),
    provider: OpenAIChatClient = Depends(get_provider),
    settings: Settings = Depends(get_app_settings),
) -> ChatRelay:
    return ChatRelay(
        conversations,
        provider,
        model=settings.OPENAI_MODEL,
        max_tokens=settings.CHAT_MAX_TOKENS,
        temperature=settings.CHAT_TEMPERATURE,
        context_size=settings.CHAT_CONTEXT_MESSAGES,
    )
