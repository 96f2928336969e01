from fastapi import Response


class ResponseCookieCarrier:
    """Session carrier that writes HttpOnly cookies on the outgoing response."""

    def __init__(self, response: Response, *, secure: bool) -> None:
        self._response = response
        self._secure = secure

    def set_session_carrier(self, name: str, value: str, ttl_seconds: int) -> None:
        self._response.set_cookie(
            key=name,
            value=value,
            max_age=ttl_seconds,
            path="/",
            secure=self._secure,
            httponly=True,
            samesite="lax",
        )

    def clear_session_carrier(self, name: str) -> None:
        self._response.delete_cookie(key=name, path="/", secure=self._secure, httponly=True, samesite="lax")
