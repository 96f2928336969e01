from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from urllib.parse import unquote
from uuid import UUID

from sessiongate.config import Config
from sessiongate.core.core import Core
from sessiongate.core.modules.session.carrier import SessionCarrier
from sessiongate.core.modules.session.models import SESSION_TOKEN_COOKIE_KEY, USER_ID_COOKIE_KEY, ValidSession
from sessiongate.core.modules.user.models import UserView
from sessiongate.errors import AuthenticationError, NotFoundError


class App:
    """Facade for all application operations, resolves transport values before delegating to Core."""

    def __init__(self, config: Config, core: Core | None = None) -> None:
        self._core = core or Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def login(self, id_token: str, carrier: SessionCarrier) -> UserView:
        """Verify an identity token and open a session."""
        user = await self._core.services.session.login(id_token, carrier)
        return UserView.from_domain(user)

    async def logout(self, session_token: str | None, user_id: str | None, carrier: SessionCarrier) -> None:
        """Revoke the session if the carriers identify one, and always clear them."""
        parsed_user_id = _parse_user_id(user_id)
        if session_token and parsed_user_id is not None:
            await self._core.services.session.logout(parsed_user_id, unquote(session_token), carrier)
            return
        carrier.clear_session_carrier(SESSION_TOKEN_COOKIE_KEY)
        carrier.clear_session_carrier(USER_ID_COOKIE_KEY)

    async def validate_session(self, session_token: str | None, user_id: str | None) -> ValidSession:
        """Resolve session carriers to a live session. Raises AuthenticationError otherwise."""
        parsed_user_id = _parse_user_id(user_id)
        if not session_token or parsed_user_id is None:
            raise AuthenticationError
        result = await self._core.services.session.validate_session_token(session_token, parsed_user_id)
        if not isinstance(result, ValidSession):
            raise AuthenticationError("Invalid or expired session")
        return result

    async def get_current_user(self, session: ValidSession) -> UserView:
        """Get the profile behind a validated session."""
        if session.user is None:
            raise NotFoundError(f"User '{session.user_id}' not found")
        return UserView.from_domain(session.user)


def _parse_user_id(value: str | None) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None
