from urllib.parse import quote, unquote
from uuid import UUID

import structlog

from sessiongate.core.core import Service
from sessiongate.core.modules.identity.provider import IdentityProvider
from sessiongate.core.modules.session.carrier import SessionCarrier
from sessiongate.core.modules.session.models import (
    SESSION_TOKEN_COOKIE_KEY,
    USER_ID_COOKIE_KEY,
    AuthToken,
    InvalidSession,
    SessionValidation,
    ValidSession,
)
from sessiongate.core.modules.session.registry import SessionRegistry
from sessiongate.core.modules.session.token import generate_session_token
from sessiongate.core.modules.user.models import User, UserCreate, UserUpdate
from sessiongate.core.modules.user.service import UserStore
from sessiongate.errors import AuthenticationError, IdentityVerificationError, InternalError, SessionGateError

logger = structlog.get_logger(__name__)

DEFAULT_SESSION_TTL = 60 * 60 * 24 * 5  # 5 days


class SessionService(Service):
    """Login, logout and session validation on top of the session registry."""

    def __init__(
        self,
        users: UserStore,
        registry: SessionRegistry,
        identity: IdentityProvider,
        *,
        session_ttl: int = DEFAULT_SESSION_TTL,
    ) -> None:
        super().__init__()
        self._users = users
        self._registry = registry
        self._identity = identity
        self._session_ttl = session_ttl

    async def login(self, id_token: str, carrier: SessionCarrier) -> User:
        """Verify an ID token, upsert the profile and open a new session.

        Raises:
            AuthenticationError: The token is rejected or carries no email.
            InternalError: The profile or session store failed.
        """
        try:
            claims = await self._identity.verify(id_token)
            if claims.email is None:
                raise AuthenticationError("The access token is invalid")

            user = await self._users.upsert_user(
                on_create=UserCreate(email=claims.email, name=claims.name, image_url=claims.picture),
                on_update=UserUpdate(name=claims.name, image_url=claims.picture),
            )
            if user is None:
                raise InternalError("Failed to login")

            session_token = generate_session_token(user.id)
            await self._registry.add(user.id, session_token, self._session_ttl)

            carrier.set_session_carrier(SESSION_TOKEN_COOKIE_KEY, quote(session_token, safe=""), self._session_ttl)
            carrier.set_session_carrier(USER_ID_COOKIE_KEY, str(user.id), self._session_ttl)
        except SessionGateError as e:
            logger.info("login_failed", kind=e.kind, reason=str(e))
            raise
        except IdentityVerificationError as e:
            logger.info("login_failed", kind="unauthorized", reason=str(e))
            raise AuthenticationError(str(e)) from e
        except Exception as e:
            logger.exception("login_error")
            raise InternalError("Failed to login") from e

        logger.info("login_succeeded", user_id=str(user.id))
        return user

    async def logout(self, user_id: UUID, session_token: str, carrier: SessionCarrier) -> None:
        """Revoke a session and clear its carriers. Safe to call repeatedly.

        The carriers are cleared even when the session store is down; the
        token then stays registered until it expires.
        """
        try:
            await self._registry.remove(user_id, session_token)
        except InternalError:
            logger.exception("logout_revoke_failed", user_id=str(user_id))
        else:
            logger.info("logout", user_id=str(user_id))
        finally:
            carrier.clear_session_carrier(SESSION_TOKEN_COOKIE_KEY)
            carrier.clear_session_carrier(USER_ID_COOKIE_KEY)

    async def validate_session_token(self, encoded_session_token: str, user_id: UUID) -> SessionValidation:
        """Check a transport-encoded session token for the given user.

        Returns InvalidSession for tokens that are unknown, revoked or expired;
        only store failures raise.
        """
        session_token = unquote(encoded_session_token)
        if not await self._registry.check_valid(user_id, session_token):
            return InvalidSession()

        try:
            user = await self._users.get_user_by_id(user_id)
        except Exception as e:
            logger.exception("profile_lookup_error", user_id=str(user_id))
            raise InternalError("Failed to load user profile") from e
        return ValidSession(user_id=user_id, user=user, token=AuthToken(session_token))
