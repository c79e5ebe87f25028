"""
Identity store operations: registration, login, profile updates and
resolving an access token to an active user.
"""

import logging
import re
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.api.auth_utils import create_jwt_token, hash_password, token_subject, verify_password
from src.db import repositories as repo
from src.db.models import UserModel, utcnow

from .errors import AuthFailure, Conflict, ValidationFailure
from .schemas import PublicUser, to_public_user
from .validation import ensure_valid, validate_password, validate_preferences, validate_username

logger = logging.getLogger("uvicorn.error")


# PUBLIC_INTERFACE
def derive_initials(username: str) -> str:
    """Up to two upper-case letters: word initials, or the first two characters of a single word."""
    words = [w for w in re.split(r"[\s._-]+", username.strip()) if w]
    if len(words) >= 2:
        return (words[0][0] + words[1][0]).upper()
    return username.strip()[:2].upper()


def _conflict_for(existing: UserModel, email: Optional[str]) -> Conflict:
    if email and existing.email.lower() == email.lower():
        return Conflict("Email already registered")
    return Conflict("Username already taken")


# PUBLIC_INTERFACE
class UserService:
    def __init__(self, db: Session, secret_key: str, token_ttl: timedelta):
        self.db = db
        self.secret_key = secret_key
        self.token_ttl = token_ttl

    def _issue_token(self, user: UserModel) -> str:
        return create_jwt_token(subject=user.id, secret=self.secret_key, expires_delta=self.token_ttl)["access_token"]

    def _touch_login(self, user: UserModel) -> None:
        user.last_login = utcnow()
        self.db.commit()

    def register(self, username: Optional[str], email: Optional[str], password: Optional[str]) -> Tuple[str, PublicUser]:
        if not username or not email or not password:
            raise ValidationFailure(message="Please provide username, email, and password")
        username = username.strip()
        ensure_valid(validate_username(username) + validate_password(password))

        existing = repo.find_conflicting_user(self.db, email=email, username=username)
        if existing is not None:
            raise _conflict_for(existing, email)
        try:
            user = repo.create_user(
                self.db,
                username=username,
                email=email,
                password_hash=hash_password(password, self.secret_key),
                initials=derive_initials(username),
            )
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Email or username already registered")

        self._touch_login(user)
        logger.info(f"User registered id={user.id}")
        return self._issue_token(user), to_public_user(user)

    def login(self, email: Optional[str], password: Optional[str]) -> Tuple[str, PublicUser]:
        if not email or not password:
            raise ValidationFailure(message="Please provide email and password")
        user = repo.get_user_by_email(self.db, email)
        if user is None:
            raise AuthFailure("Invalid credentials")
        if not user.is_active:
            raise AuthFailure("Account is deactivated")
        if not verify_password(password, user.password_hash, self.secret_key):
            raise AuthFailure("Invalid credentials")

        self._touch_login(user)
        return self._issue_token(user), to_public_user(user)

    def authenticate(self, token: Optional[str]) -> UserModel:
        """Resolve a bearer token to an active user."""
        user_id = token_subject(token, self.secret_key)
        if not user_id:
            raise AuthFailure("Invalid token")
        user = repo.get_user_by_id(self.db, user_id)
        if user is None:
            raise AuthFailure("Invalid token")
        if not user.is_active:
            raise AuthFailure("Account is deactivated")
        return user

    def update_profile(
        self,
        user: UserModel,
        username: Optional[str] = None,
        email: Optional[str] = None,
        preferences: Optional[Dict[str, Any]] = None,
    ) -> PublicUser:
        """Update the given fields; preferences are shallow-merged into the existing ones."""
        username = username.strip() if username else None
        ensure_valid(validate_username(username) + validate_preferences(preferences))

        if username or email:
            existing = repo.find_conflicting_user(self.db, email=email, username=username, exclude_id=user.id)
            if existing is not None:
                raise _conflict_for(existing, email)

        if username:
            user.username = username
            user.initials = derive_initials(username)
        if email:
            user.email = email.lower()
        if preferences:
            merged = {k: v for k, v in preferences.items() if v is not None}
            user.preferences = {**(user.preferences or {}), **merged}
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Email or username already registered")
        return to_public_user(user)
