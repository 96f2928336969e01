"""Session management models."""

from typing import Literal, NewType
from uuid import UUID

from pydantic import BaseModel

from sessiongate.core.modules.user.models import User

AuthToken = NewType("AuthToken", str)

SESSION_TOKEN_COOKIE_KEY = "x-session-token"
USER_ID_COOKIE_KEY = "x-user-id"


class ValidSession(BaseModel):
    """Outcome of validating a live session token.

    `user` is None when the profile was deleted while the session stayed alive.
    """

    valid: Literal[True] = True
    user_id: UUID
    user: User | None
    token: AuthToken


class InvalidSession(BaseModel):
    """Outcome of validating a missing, revoked or expired session token."""

    valid: Literal[False] = False


SessionValidation = ValidSession | InvalidSession
