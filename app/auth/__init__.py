# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Provides the JWT-based auth gates for the page routes.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/my-tours")
#   async def my_tours(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

from app.auth.dependencies import get_current_user, get_current_user_optional
from app.auth.models import AuthUser

__all__ = [
    "get_current_user",
    "get_current_user_optional",
    "AuthUser",
]
