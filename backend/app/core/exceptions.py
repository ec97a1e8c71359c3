"""Custom exception classes for the Modular Health backend."""

from typing import Any, Optional


class ModularHealthException(Exception):
    """Base exception for the application."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(ModularHealthException):
    """Resource not found error."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "identifier": str(identifier)},
        )


class ValidationError(ModularHealthException):
    """Input validation error."""

    def __init__(self, field: str, message: str):
        super().__init__(
            message=f"Validation error on {field}: {message}",
            code="VALIDATION_ERROR",
            status_code=422,
            details={"field": field},
        )


class ExternalServiceError(ModularHealthException):
    """Base class for external service errors."""

    def __init__(self, service: str, message: str):
        super().__init__(
            message=f"External service error ({service}): {message}",
            code="EXTERNAL_SERVICE_ERROR",
            status_code=502,
            details={"service": service},
        )


class AutoLogServiceError(ExternalServiceError):
    """The auto-log creation endpoint failed or returned a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(service="auto-log", message=message)
        self.code = "AUTO_LOG_SERVICE_ERROR"
        if status is not None:
            self.details["status"] = status


class AuthenticationError(ModularHealthException):
    """Authentication required or failed."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            code="AUTHENTICATION_ERROR",
            status_code=401,
        )


class AuthorizationError(ModularHealthException):
    """Permission denied error."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            message=message,
            code="AUTHORIZATION_ERROR",
            status_code=403,
        )


class RateLimitError(ModularHealthException):
    """Rate limit exceeded error."""

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(
            message=message,
            code="RATE_LIMIT_ERROR",
            status_code=429,
        )
