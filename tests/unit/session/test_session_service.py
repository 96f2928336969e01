"""Tests for login, logout and session validation."""

from urllib.parse import quote
from uuid import UUID

import pytest

from sessiongate.core.modules.session.models import (
    SESSION_TOKEN_COOKIE_KEY,
    USER_ID_COOKIE_KEY,
    InvalidSession,
    ValidSession,
)
from sessiongate.core.modules.session.registry import SessionRegistry
from sessiongate.core.modules.session.service import SessionService
from sessiongate.errors import AuthenticationError, CacheError, ErrorKind, InternalError

SESSION_TTL = 432000


def session_token_from(carrier):
    value, _ = carrier.values[SESSION_TOKEN_COOKIE_KEY]
    return value


class TestLogin:
    async def test_login_returns_profile_and_sets_carriers(self, session_service, carrier):
        user = await session_service.login("alice-token", carrier)

        assert user.email == "alice@example.com"
        assert user.name == "Alice"
        assert user.image_url == "https://img.example.com/a.png"
        assert carrier.values[USER_ID_COOKIE_KEY] == (str(user.id), SESSION_TTL)
        token, ttl = carrier.values[SESSION_TOKEN_COOKIE_KEY]
        assert ttl == SESSION_TTL
        assert len(token) == 64

    async def test_login_then_validate_returns_same_user(self, session_service, carrier):
        user = await session_service.login("alice-token", carrier)

        result = await session_service.validate_session_token(session_token_from(carrier), user.id)

        assert isinstance(result, ValidSession)
        assert result.valid is True
        assert result.user is not None
        assert result.user.id == user.id
        assert result.token == session_token_from(carrier)

    async def test_repeat_login_refreshes_profile_and_keeps_identity(self, session_service, carrier):
        first = await session_service.login("alice-token", carrier)
        second = await session_service.login("alice-renamed-token", carrier)

        assert second.id == first.id
        assert second.email == first.email
        assert second.name == "Alice Smith"
        assert second.image_url is None

    async def test_each_login_opens_separate_session(self, session_service, registry, carrier, clock):
        user = await session_service.login("alice-token", carrier)
        first_token = session_token_from(carrier)
        clock.advance(10)
        await session_service.login("alice-token", carrier)

        assert session_token_from(carrier) != first_token
        assert await registry.count(user.id) == 2
        assert await registry.check_valid(user.id, first_token)

    async def test_nine_logins_leave_eight_sessions(self, session_service, registry, carrier, clock):
        tokens = []
        for _ in range(9):
            user = await session_service.login("bob-token", carrier)
            tokens.append(session_token_from(carrier))
            clock.advance(1)

        assert await registry.count(user.id) == 8
        first = await session_service.validate_session_token(tokens[0], user.id)
        assert isinstance(first, InvalidSession)
        for token in tokens[1:]:
            assert isinstance(await session_service.validate_session_token(token, user.id), ValidSession)

    async def test_rejected_token_is_unauthorized(self, session_service, carrier):
        with pytest.raises(AuthenticationError, match="invalid") as exc_info:
            await session_service.login("forged-token", carrier)
        assert exc_info.value.kind == ErrorKind.UNAUTHORIZED
        assert carrier.values == {}

    async def test_token_without_email_is_unauthorized(self, session_service, carrier):
        with pytest.raises(AuthenticationError):
            await session_service.login("no-email-token", carrier)
        assert carrier.values == {}

    async def test_missing_profile_is_internal_error(self, registry, identity, carrier):
        class EmptyUserStore:
            async def upsert_user(self, on_create, on_update):
                return None

            async def get_user_by_id(self, user_id):
                return None

        service = SessionService(EmptyUserStore(), registry, identity, session_ttl=SESSION_TTL)
        with pytest.raises(InternalError, match="Failed to login") as exc_info:
            await service.login("alice-token", carrier)
        assert exc_info.value.kind == ErrorKind.INTERNAL

    async def test_profile_store_failure_is_internal_error(self, registry, identity, carrier):
        class BrokenUserStore:
            async def upsert_user(self, on_create, on_update):
                raise ConnectionError("mongo down")

            async def get_user_by_id(self, user_id):
                raise ConnectionError("mongo down")

        service = SessionService(BrokenUserStore(), registry, identity, session_ttl=SESSION_TTL)
        with pytest.raises(InternalError):
            await service.login("alice-token", carrier)

    async def test_registry_failure_is_internal_error(self, users, identity, carrier, clock):
        class DownCache:
            async def execute_atomic(self, ops):
                raise CacheError("connection refused")

        service = SessionService(users, SessionRegistry(DownCache(), clock=clock), identity, session_ttl=SESSION_TTL)
        with pytest.raises(InternalError):
            await service.login("alice-token", carrier)
        assert carrier.values == {}


class TestLogout:
    async def test_logout_revokes_session_and_clears_carriers(self, session_service, carrier):
        user = await session_service.login("alice-token", carrier)
        token = session_token_from(carrier)

        await session_service.logout(user.id, token, carrier)

        assert carrier.values == {}
        assert carrier.cleared == [SESSION_TOKEN_COOKIE_KEY, USER_ID_COOKIE_KEY]
        result = await session_service.validate_session_token(token, user.id)
        assert isinstance(result, InvalidSession)
        assert result.valid is False

    async def test_logout_is_idempotent(self, session_service, carrier):
        user = await session_service.login("alice-token", carrier)
        token = session_token_from(carrier)

        await session_service.logout(user.id, token, carrier)
        await session_service.logout(user.id, token, carrier)
        await session_service.logout(UUID("12345678-1234-5678-1234-567812345678"), "unknown", carrier)

    async def test_logout_clears_carriers_when_store_is_down(self, users, identity, carrier, clock):
        class DownCache:
            async def execute_atomic(self, ops):
                raise CacheError("connection refused")

        service = SessionService(users, SessionRegistry(DownCache(), clock=clock), identity, session_ttl=SESSION_TTL)
        carrier.set_session_carrier(SESSION_TOKEN_COOKIE_KEY, "token", SESSION_TTL)
        carrier.set_session_carrier(USER_ID_COOKIE_KEY, "12345678-1234-5678-1234-567812345678", SESSION_TTL)

        await service.logout(UUID("12345678-1234-5678-1234-567812345678"), "token", carrier)

        assert carrier.values == {}
        assert carrier.cleared == [SESSION_TOKEN_COOKIE_KEY, USER_ID_COOKIE_KEY]

    async def test_logout_keeps_other_sessions(self, session_service, carrier):
        user = await session_service.login("alice-token", carrier)
        first_token = session_token_from(carrier)
        await session_service.login("alice-token", carrier)
        second_token = session_token_from(carrier)

        await session_service.logout(user.id, first_token, carrier)

        assert isinstance(await session_service.validate_session_token(second_token, user.id), ValidSession)


class TestValidate:
    async def test_encoded_token_is_decoded(self, session_service, registry):
        user_id = UUID("87654321-4321-8765-4321-876543218765")
        await registry.add(user_id, "a token/with+symbols", SESSION_TTL)

        result = await session_service.validate_session_token(quote("a token/with+symbols", safe=""), user_id)

        assert isinstance(result, ValidSession)
        assert result.token == "a token/with+symbols"

    async def test_token_of_another_user_is_invalid(self, session_service, carrier):
        await session_service.login("alice-token", carrier)
        token = session_token_from(carrier)
        bob = await session_service.login("bob-token", carrier)

        assert isinstance(await session_service.validate_session_token(token, bob.id), InvalidSession)

    async def test_expired_session_is_invalid(self, session_service, carrier, clock):
        user = await session_service.login("alice-token", carrier)
        token = session_token_from(carrier)

        clock.advance(SESSION_TTL)

        assert isinstance(await session_service.validate_session_token(token, user.id), InvalidSession)

    async def test_live_session_without_profile(self, session_service, registry):
        user_id = UUID("12345678-1234-5678-1234-567812345678")
        await registry.add(user_id, "orphan", SESSION_TTL)

        result = await session_service.validate_session_token("orphan", user_id)

        assert isinstance(result, ValidSession)
        assert result.user is None
        assert result.user_id == user_id

    async def test_profile_lookup_failure_is_internal_error(self, registry, identity):
        class BrokenUserStore:
            async def upsert_user(self, on_create, on_update):
                raise ConnectionError("mongo down")

            async def get_user_by_id(self, user_id):
                raise ConnectionError("mongo down")

        user_id = UUID("12345678-1234-5678-1234-567812345678")
        await registry.add(user_id, "token", SESSION_TTL)
        service = SessionService(BrokenUserStore(), registry, identity, session_ttl=SESSION_TTL)

        with pytest.raises(InternalError):
            await service.validate_session_token("token", user_id)
