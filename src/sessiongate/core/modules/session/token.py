import hashlib
import secrets
import time
from uuid import UUID

from sessiongate.core.modules.session.models import AuthToken


def generate_session_token(user_id: UUID | str) -> AuthToken:
    """Mint an opaque session token for a user.

    The user id, a nanosecond timestamp and 256 random bits are hashed with
    SHA-256, so the token reveals none of its inputs.
    """
    raw = f"{user_id}-{time.time_ns()}-{secrets.token_hex(32)}"
    return AuthToken(hashlib.sha256(raw.encode("utf-8")).hexdigest())
