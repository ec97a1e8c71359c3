from app.core.exceptions import (
    ModularHealthException,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    AutoLogServiceError,
    AuthenticationError,
    AuthorizationError,
    RateLimitError,
)

__all__ = [
    "ModularHealthException",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "AutoLogServiceError",
    "AuthenticationError",
    "AuthorizationError",
    "RateLimitError",
]
