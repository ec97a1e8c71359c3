"""Authentication endpoints."""

from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel

from app.api.deps import get_current_user, TokenData
from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger
from app.core.rate_limit import limiter
from app.core.security import (
    authenticate_user,
    create_access_token,
    Token,
)

router = APIRouter()
logger = get_logger(__name__)


class LoginRequest(BaseModel):
    """Login request body for JSON-based login."""
    username: str
    password: str


def _issue_token(username: str, password: str) -> Token:
    if not authenticate_user(username, password):
        logger.warning("login_failed", username=username, reason="invalid_credentials")
        raise AuthenticationError("Invalid username or password")

    logger.info("login_success", username=username)
    return Token(access_token=create_access_token(data={"sub": username}))


@router.post("/login", response_model=Token)
@limiter.limit("10/minute")
async def login(request: Request, form_data: OAuth2PasswordRequestForm = Depends()) -> Token:
    """
    Authenticate and return a JWT whose subject is the user id.

    Uses OAuth2 password flow (form data with username/password).
    """
    return _issue_token(form_data.username, form_data.password)


@router.post("/login/json", response_model=Token)
@limiter.limit("10/minute")
async def login_json(request: Request, body: LoginRequest) -> Token:
    """Authenticate via JSON body; alternative to form login for API clients."""
    return _issue_token(body.username, body.password)


@router.get("/me")
async def get_me(current_user: TokenData = Depends(get_current_user)):
    """Current authenticated user."""
    return {
        "user_id": current_user.user_id,
        "authenticated": True,
    }


@router.post("/verify")
async def verify_token(current_user: TokenData = Depends(get_current_user)):
    """Verify that the current token is valid."""
    return {
        "valid": True,
        "user_id": current_user.user_id,
    }
