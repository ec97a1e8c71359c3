"""Rate limiting configuration using SlowAPI."""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address


def get_request_identifier(request: Request) -> str:
    """Get identifier for rate limiting.

    Batch logging and manual auto-log triggers are keyed by client IP.
    """
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_request_identifier,
    default_limits=["100/minute"],
)


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Custom handler for rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMIT_ERROR",
                "message": f"Rate limit exceeded: {exc.detail}",
                "details": {
                    "retry_after": getattr(exc, "retry_after", None),
                },
            }
        },
    )
