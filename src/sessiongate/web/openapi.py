from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

from sessiongate.core.modules.session.models import SESSION_TOKEN_COOKIE_KEY, USER_ID_COOKIE_KEY

PUBLIC_ENDPOINTS = {
    ("POST", "/api/v1/auth/login"),
    ("POST", "/api/v1/auth/logout"),
    ("GET", "/health"),
}


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="SessionGate API",
            version="0.1.0",
            summary="Session management on top of an external identity provider",
            routes=app.routes,
        )

        # Both cookies are required together
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "SessionTokenCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": SESSION_TOKEN_COOKIE_KEY,
                "description": "Opaque session token set by /auth/login",
            },
            "UserIdCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": USER_ID_COOKIE_KEY,
                "description": "ID of the user owning the session",
            },
        }
        openapi_schema["security"] = [{"SessionTokenCookie": [], "UserIdCookie": []}]

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in PUBLIC_ENDPOINTS:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Invalid or expired session", "type": "authentication_error"},
                {"message": "User not found", "type": "not_found"},
                {"message": "Internal server error", "type": "internal_error"},
            ]
        }
    }
