# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides the two auth gates used by the page routes:
# - get_current_user: rejects requests without a valid login (protect)
# - get_current_user_optional: attaches the user if logged in, never rejects
#
# Login tokens are HS256 JWTs carrying the user id in the `id` claim.
# They arrive in the `jwt` cookie or as a Bearer token.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/me")
#   async def account(user: AuthUser = Depends(get_current_user)):
#       ...
# =============================================================================

import logging
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from app.auth.models import AuthUser
from app.config import settings
from app.dependencies import get_user_service
from app.exceptions import AuthenticationError
from core.services.user_service import UserService
from lib.utils import to_object_id

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

# Bearer extractor that leaves missing headers to the cookie fallback
security_optional = HTTPBearer(auto_error=False)


def _token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    allow_header: bool = True,
) -> str | None:
    """Bearer header first, then the login cookie."""
    if allow_header and credentials is not None:
        return credentials.credentials
    token = request.cookies.get(settings.JWT_COOKIE_NAME)
    # Logging out overwrites the cookie with this placeholder
    if not token or token == "loggedout":
        return None
    return token


async def _resolve_user(token: str, users: UserService) -> AuthUser:
    """
    Verify a token and load its user.

    Raises:
        AuthenticationError: If the token is invalid/expired or the user is gone
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise AuthenticationError("Your token has expired! Please log in again.")
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise AuthenticationError("Invalid token. Please log in again!")

    user_id = to_object_id(payload.get("id", ""))
    if user_id is None:
        logger.warning("JWT token missing a valid 'id' claim")
        raise AuthenticationError("Invalid token. Please log in again!")

    doc = await users.get_active_user(user_id)
    if not doc:
        raise AuthenticationError("The user belonging to this token no longer exists.")

    return AuthUser.model_validate(doc)


async def get_current_user(
    request: Request,
    users: Annotated[UserService, Depends(get_user_service)],
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
) -> AuthUser:
    """
    Require a logged-in user.

    This dependency:
    1. Takes the token from the Authorization header or the `jwt` cookie
    2. Verifies the JWT signature and expiry
    3. Loads the user (projected) and exposes it to templates

    Raises:
        AuthenticationError: 401 if no valid login is present
    """
    token = _token_from_request(request, credentials)
    if not token:
        raise AuthenticationError()

    user = await _resolve_user(token, users)
    request.state.user = user
    logger.debug(f"Authenticated user: {user.id}")
    return user


async def get_current_user_optional(
    request: Request,
    users: Annotated[UserService, Depends(get_user_service)],
) -> Optional[AuthUser]:
    """
    Attach the logged-in user if there is one.

    Only the cookie is consulted. An invalid or expired token is treated as
    no login rather than an error.

    Returns:
        AuthUser if a valid login cookie is present, None otherwise
    """
    token = _token_from_request(request, None, allow_header=False)
    if token is None:
        return None

    try:
        user = await _resolve_user(token, users)
    except AuthenticationError:
        return None

    request.state.user = user
    return user
