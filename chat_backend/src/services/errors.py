"""
Typed failures raised by the service layer.

Every failure carries the HTTP status the API maps it to and a single
human-readable message; the API layer never inspects anything else.
"""

from typing import List, Optional


class ServiceError(Exception):
    """Base class for failures that cross the service boundary."""
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailure(ServiceError):
    """Missing or malformed input. Collects every violated field."""
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: Optional[List[str]] = None, message: Optional[str] = None):
        self.errors = list(errors or [])
        super().__init__(message or (", ".join(self.errors) if self.errors else None))


class AuthFailure(ServiceError):
    status_code = 401
    default_message = "Invalid credentials"


class ProviderAuthFailure(AuthFailure):
    default_message = "Invalid OpenAI API key"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class InvalidIdentifier(NotFound):
    """A malformed id. Callers treat it as NotFound; HTTP reports it as 400."""
    status_code = 400
    default_message = "Invalid conversation ID"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Conflict"


class RateLimited(ServiceError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class ProviderError(ServiceError):
    status_code = 500
    default_message = "Something went wrong with the AI service"


class ProviderTimeout(ProviderError):
    status_code = 504
    default_message = "The AI service did not respond in time"


class InternalError(ServiceError):
    status_code = 500
