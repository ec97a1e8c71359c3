"""API dependencies for dependency injection."""

from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from app.core.exceptions import AuthenticationError
from app.core.security import decode_token, TokenData

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/auth/login",
    auto_error=False,  # raised as AuthenticationError below
)


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
) -> TokenData:
    """Get the current authenticated user from the JWT token.

    Raises:
        AuthenticationError: If not authenticated or token invalid.
    """
    if not token:
        raise AuthenticationError("Not authenticated")

    return decode_token(token)


async def get_current_user_id(
    current_user: TokenData = Depends(get_current_user),
) -> str:
    """Shortcut dependency for routes that only need the user id."""
    return current_user.user_id
