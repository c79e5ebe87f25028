import hmac
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import jwt  # PyJWT

ALGORITHM = "HS256"


def _ensure_secret(secret: str):
    if not secret or len(secret) < 16:
        raise RuntimeError("SECRET_KEY is missing or too short. Set a strong key in the environment.")


# PUBLIC_INTERFACE
def hash_password(password: str, secret: str) -> str:
    """Hash a password using HMAC-SHA256 with SECRET_KEY as salt."""
    _ensure_secret(secret)
    return hmac.new(secret.encode("utf-8"), password.encode("utf-8"), hashlib.sha256).hexdigest()


# PUBLIC_INTERFACE
def verify_password(password: str, hashed: str, secret: str) -> bool:
    """Verify password by recomputing the HMAC hash."""
    return hmac.compare_digest(hash_password(password, secret), hashed)


# PUBLIC_INTERFACE
def create_jwt_token(subject: str, secret: str, expires_delta: timedelta) -> Dict[str, Any]:
    """Create a signed JWT access token for the given subject (user id)."""
    _ensure_secret(secret)
    now = datetime.now(timezone.utc)
    exp = now + expires_delta
    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "type": "access",
    }
    token = jwt.encode(payload, secret, algorithm=ALGORITHM)
    return {"access_token": token, "expires_at": exp}


# PUBLIC_INTERFACE
def decode_jwt_token(token: str, secret: str) -> Dict[str, Any]:
    """Decode and verify a JWT token.

    Raises:
        jwt.InvalidTokenError: If the signature is wrong, the token is expired or malformed.
    """
    return jwt.decode(token, secret, algorithms=[ALGORITHM])


# PUBLIC_INTERFACE
def token_subject(token: Optional[str], secret: str) -> Optional[str]:
    """Return the user id carried by an access token, or None when the token is unusable."""
    if not token:
        return None
    try:
        payload = decode_jwt_token(token, secret)
    except jwt.InvalidTokenError:
        return None
    if payload.get("type") != "access":
        return None
    return payload.get("sub")
