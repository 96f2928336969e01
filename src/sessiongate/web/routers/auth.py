from fastapi import APIRouter
from pydantic import BaseModel, Field

from sessiongate.core.modules.user.models import UserView
from sessiongate.web.deps import AppDep, CarrierDep, SessionTokenCookie, UserIdCookie
from sessiongate.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Authentication request."""

    id_token: str = Field(..., min_length=1, description="ID token issued by the identity provider")


@router.post(
    "/auth/login",
    summary="Authenticate user",
    description="Exchange a verified identity-provider token for a session. Session cookies are set on the response.",
    operation_id="login",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid identity token"},
        500: {"model": ErrorResponse, "description": "Profile or session store failure"},
    },
)
async def login(login_data: LoginRequest, app: AppDep, carrier: CarrierDep) -> UserView:
    """Authenticate user and create session."""
    return await app.login(login_data.id_token, carrier)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Revoke the current session and clear session cookies. Succeeds even without a live session.",
    operation_id="logout",
    status_code=204,
    responses={
        204: {"description": "Successfully logged out"},
    },
)
async def logout(
    app: AppDep, carrier: CarrierDep, session_token: SessionTokenCookie = None, user_id: UserIdCookie = None
) -> None:
    await app.logout(session_token, user_id, carrier)
