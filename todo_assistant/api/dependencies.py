"""
FastAPI dependencies for authentication and service access.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from todo_assistant.core.config import config
from todo_assistant.core.exceptions import AuthenticationRequired, ConfigurationError
from todo_assistant.persistence.models import User
from todo_assistant.services.container import ServiceContainer

logger = logging.getLogger(__name__)

# OAuth2 scheme for JWT tokens
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


class TokenData(BaseModel):
    """JWT token payload data."""

    user_id: str
    username: str
    exp: datetime


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token for a user.

    Args:
        user: User to create token for
        expires_delta: Token lifetime, defaults to the configured one

    Returns:
        Encoded JWT token
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=config.auth.access_token_expire_minutes)
    )

    payload = {
        "sub": user.id,
        "username": user.username,
        "exp": expire,
    }

    return jwt.encode(
        payload,
        config.auth.secret_key,
        algorithm=config.auth.algorithm,
    )


def decode_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate JWT token.

    Expired tokens fail validation in ``jwt.decode``.

    Returns:
        TokenData if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            config.auth.secret_key,
            algorithms=[config.auth.algorithm],
        )

        return TokenData(
            user_id=payload.get("sub"),
            username=payload.get("username"),
            exp=datetime.fromtimestamp(payload.get("exp"), tz=timezone.utc),
        )
    except (JWTError, TypeError, ValueError) as e:
        logger.debug(f"Token decode error: {e}")
        return None


def get_services(request: Request) -> ServiceContainer:
    """Service container built during application startup."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ConfigurationError("Services are not initialized")
    return services


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    services: ServiceContainer = Depends(get_services),
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises AuthenticationRequired if not authenticated.
    """
    if not token:
        raise AuthenticationRequired("Not authenticated")

    token_data = decode_token(token)
    if not token_data:
        logger.info("Rejected invalid or expired token")
        raise AuthenticationRequired("Invalid or expired token")

    user = await services.users.get_user_by_id(token_data.user_id)
    if not user:
        logger.info(f"Token for unknown user {token_data.user_id}")
        raise AuthenticationRequired("Invalid authentication credentials")

    return user
