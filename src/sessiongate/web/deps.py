from typing import Annotated, cast

from fastapi import Depends, Request, Response
from fastapi.security import APIKeyCookie

from sessiongate.app import App
from sessiongate.config import Config
from sessiongate.core.modules.session.models import SESSION_TOKEN_COOKIE_KEY, USER_ID_COOKIE_KEY, ValidSession
from sessiongate.logging import bind_session_user
from sessiongate.web.cookies import ResponseCookieCarrier

# Security schemes
session_token_scheme = APIKeyCookie(name=SESSION_TOKEN_COOKIE_KEY, auto_error=False)
user_id_scheme = APIKeyCookie(name=USER_ID_COOKIE_KEY, auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_cookie_carrier(request: Request, response: Response) -> ResponseCookieCarrier:
    config = cast(Config, request.app.state.config)
    return ResponseCookieCarrier(response, secure=config.cookie_secure)


async def get_session(
    app: Annotated[App, Depends(get_app)],
    session_token: Annotated[str | None, Depends(session_token_scheme)] = None,
    user_id: Annotated[str | None, Depends(user_id_scheme)] = None,
) -> ValidSession:
    """Validate the session cookies, raising AuthenticationError when they do not identify a live session."""
    session = await app.validate_session(session_token, user_id)
    bind_session_user(session.user_id)
    return session


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
CarrierDep = Annotated[ResponseCookieCarrier, Depends(get_cookie_carrier)]
SessionDep = Annotated[ValidSession, Depends(get_session)]
SessionTokenCookie = Annotated[str | None, Depends(session_token_scheme)]
UserIdCookie = Annotated[str | None, Depends(user_id_scheme)]
