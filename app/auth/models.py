# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================

from pydantic import ConfigDict

from core.models.user import UserPublic


class AuthUser(UserPublic):
    """
    The logged-in user, as loaded by the auth gate.

    Immutable for the lifetime of the request.
    """

    model_config = ConfigDict(frozen=True)
