"""
Pydantic request and response envelopes for the HTTP API.

Request bodies accept camelCase (and snake_case) keys; field types are kept
loose where the service layer runs its own validation so that every violated
field can be reported together.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import EmailStr, Field

from src.services.schemas import CamelModel, ConversationDetail, ConversationSummary, PublicUser


class HealthResponse(CamelModel):
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Server time")
    uptime: float = Field(..., description="Seconds since startup")
    database: str = Field(..., description="connected | disconnected")


class RegisterRequest(CamelModel):
    username: Optional[str] = Field(None, description="Unique username")
    email: Optional[EmailStr] = Field(None, description="User email")
    password: Optional[str] = Field(None, description="Password (min 6 chars)")


class LoginRequest(CamelModel):
    email: Optional[str] = Field(None, description="User email")
    password: Optional[str] = Field(None, description="Password")


class Preferences(CamelModel):
    theme: Optional[str] = None
    language: Optional[str] = None


class ProfileUpdate(CamelModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    preferences: Optional[Preferences] = None


class AuthResponse(CamelModel):
    message: str
    token: str
    user: PublicUser


class UserResponse(CamelModel):
    user: PublicUser


class MessageResponse(CamelModel):
    message: str


class UserEnvelope(MessageResponse):
    user: PublicUser


class ConversationCreate(CamelModel):
    title: Optional[Any] = Field(None, description="Optional conversation title")
    initial_message: Optional[str] = Field(None, description="Optional first user message")


class ConversationUpdate(CamelModel):
    title: Optional[Any] = None
    tags: Optional[Any] = None
    is_archived: Optional[Any] = None
    is_pinned: Optional[Any] = None
    settings: Optional[Dict[str, Any]] = None


class MessageCreate(CamelModel):
    role: Optional[Any] = Field(None, description="'user' or 'assistant'")
    content: Optional[Any] = Field(None, description="Message text")
    model: Optional[str] = Field(None, description="Model that produced the message")
    tokens: Optional[Any] = Field(None, description="Token count for the message")


class ConversationEnvelope(MessageResponse):
    conversation: ConversationSummary


class ConversationDetailEnvelope(CamelModel):
    conversation: ConversationDetail


class ChatRequest(CamelModel):
    message: Optional[Any] = Field(None, description="User message")
    conversation_id: Optional[str] = Field(None, description="Conversation to continue")
    # Accepted for compatibility with older clients; ownership always comes from the token.
    user_id: Optional[str] = Field(None, description="Ignored")


class ApiInfo(CamelModel):
    message: str
    version: str
    endpoints: Dict[str, str]


class ErrorResponse(CamelModel):
    error: str



# Error bodies documented on every router; all failures share this shape.
ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    code: {"model": ErrorResponse, "description": description}
    for code, description in (
        (400, "Invalid input"),
        (401, "Missing or invalid credentials"),
        (404, "Not found"),
        (500, "Internal server error"),
    )
}
