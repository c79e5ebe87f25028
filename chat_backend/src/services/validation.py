"""
Explicit validation run before any write.

Each validator returns the list of violations it found; `ensure_valid`
raises a single ValidationFailure listing all of them.
"""

import uuid
from typing import Any, Dict, List, Optional

from .errors import InvalidIdentifier, ValidationFailure

MESSAGE_ROLES = ("user", "assistant")
TITLE_MAX_LENGTH = 100
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6
THEMES = ("light", "dark", "system")
SETTINGS_KEYS = ("temperature", "maxTokens")


def ensure_valid(errors: List[str]) -> None:
    if errors:
        raise ValidationFailure(errors)


# PUBLIC_INTERFACE
def parse_conversation_id(value: Any) -> str:
    """Normalize a conversation id, raising InvalidIdentifier when malformed."""
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError):
        raise InvalidIdentifier() from None


def validate_title(title: Any) -> List[str]:
    if title is None:
        return []
    if not isinstance(title, str):
        return ["Title must be a string"]
    if len(title.strip()) > TITLE_MAX_LENGTH:
        return [f"Title cannot exceed {TITLE_MAX_LENGTH} characters"]
    return []


def validate_tags(tags: Any) -> List[str]:
    if tags is None:
        return []
    if not isinstance(tags, list):
        return ["Tags must be a list of strings"]
    if any(not isinstance(t, str) for t in tags):
        return ["Every tag must be a string"]
    return []


def validate_settings(settings: Any) -> List[str]:
    if settings is None:
        return []
    if not isinstance(settings, dict):
        return ["Settings must be an object"]
    errors: List[str] = [f"Unknown setting: {key}" for key in settings if key not in SETTINGS_KEYS]
    errors += [f"{key} cannot be null" for key in SETTINGS_KEYS if key in settings and settings[key] is None]
    temperature = settings.get("temperature")
    if temperature is not None:
        if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
            errors.append("Temperature must be a number")
        elif not 0 <= temperature <= 2:
            errors.append("Temperature must be between 0 and 2")
    max_tokens = settings.get("maxTokens")
    if max_tokens is not None:
        if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or max_tokens < 1:
            errors.append("maxTokens must be a positive integer")
    return errors


def validate_flag(name: str, value: Any) -> List[str]:
    if value is None or isinstance(value, bool):
        return []
    return [f"{name} must be a boolean"]


# PUBLIC_INTERFACE
def validate_message(role: Any, content: Any, tokens: Any = None) -> List[str]:
    """Check a message before it is appended to a conversation."""
    errors: List[str] = []
    if not role:
        errors.append("Role is required")
    elif role not in MESSAGE_ROLES:
        errors.append('Role must be either "user" or "assistant"')
    if not isinstance(content, str) or not content.strip():
        errors.append("Content is required")
    if tokens is not None and (isinstance(tokens, bool) or not isinstance(tokens, int) or tokens < 0):
        errors.append("Tokens must be a non-negative integer")
    return errors


def validate_pagination(page: int, limit: int) -> List[str]:
    errors: List[str] = []
    if page < 1:
        errors.append("Page must be at least 1")
    if limit < 1:
        errors.append("Limit must be at least 1")
    return errors


def validate_username(username: Optional[str]) -> List[str]:
    if username is None:
        return []
    name = username.strip()
    if not USERNAME_MIN_LENGTH <= len(name) <= USERNAME_MAX_LENGTH:
        return [f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"]
    return []


def validate_password(password: Optional[str]) -> List[str]:
    if password is not None and len(password) < PASSWORD_MIN_LENGTH:
        return [f"Password must be at least {PASSWORD_MIN_LENGTH} characters"]
    return []


def validate_preferences(preferences: Optional[Dict[str, Any]]) -> List[str]:
    if not preferences:
        return []
    theme = preferences.get("theme")
    if theme is not None and theme not in THEMES:
        return [f"Theme must be one of: {', '.join(THEMES)}"]
    return []
