from typing import Any, Protocol

import httpx
import structlog
from pydantic import BaseModel

from sessiongate.errors import IdentityVerificationError

logger = structlog.get_logger(__name__)

GOOGLE_ISSUERS = frozenset({"accounts.google.com", "https://accounts.google.com"})


class IdentityClaims(BaseModel):
    """Claims extracted from a verified ID token."""

    email: str | None = None
    name: str | None = None
    picture: str | None = None


class IdentityProvider(Protocol):
    async def verify(self, id_token: str) -> IdentityClaims:
        """Verify an ID token, raising IdentityVerificationError when it is rejected."""
        ...

    async def close(self) -> None: ...


class GoogleIdentityProvider:
    """Verifies Google-issued ID tokens with the tokeninfo endpoint."""

    def __init__(
        self,
        tokeninfo_url: str,
        client_ids: list[str],
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not client_ids:
            raise ValueError("At least one Google client id must be configured to verify ID tokens")
        self._tokeninfo_url = tokeninfo_url
        self._client_ids = frozenset(client_ids)
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=False)

    async def verify(self, id_token: str) -> IdentityClaims:
        if not id_token:
            raise IdentityVerificationError("The access token is missing")

        try:
            response = await self._client.get(self._tokeninfo_url, params={"id_token": id_token})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.info("id_token_rejected", status_code=e.response.status_code)
            raise IdentityVerificationError("The access token is invalid") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("id_token_verification_error", error=str(e))
            raise IdentityVerificationError("Could not verify the access token") from e

        if not isinstance(payload, dict):
            raise IdentityVerificationError("The access token is invalid")
        self._check_audience(payload)
        return self._parse_claims(payload)

    def _check_audience(self, payload: dict[str, Any]) -> None:
        if payload.get("iss") not in GOOGLE_ISSUERS:
            raise IdentityVerificationError("The access token was issued by an unknown party")
        if payload.get("aud") not in self._client_ids:
            raise IdentityVerificationError("The access token was issued for another client")

    @staticmethod
    def _parse_claims(payload: dict[str, Any]) -> IdentityClaims:
        # tokeninfo returns booleans as strings
        email = payload.get("email")
        if str(payload.get("email_verified", "false")).lower() != "true":
            email = None
        name = payload.get("name")
        picture = payload.get("picture")
        return IdentityClaims(
            email=email if isinstance(email, str) else None,
            name=name if isinstance(name, str) else None,
            picture=picture if isinstance(picture, str) else None,
        )

    async def close(self) -> None:
        await self._client.aclose()
