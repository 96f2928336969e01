"""Shared pytest fixtures."""

import asyncio
import inspect

import pytest

from sessiongate.core.cache import MemorySortedSetCache
from sessiongate.core.modules.identity.provider import IdentityClaims
from sessiongate.core.modules.session.registry import SessionRegistry
from sessiongate.core.modules.session.service import SessionService
from sessiongate.core.modules.user.memory import MemoryUserService
from sessiongate.errors import IdentityVerificationError

SESSION_TTL = 432000


def pytest_pyfunc_call(pyfuncitem):
    """Run coroutine tests on a fresh event loop."""
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        self.value = start

    def __call__(self) -> int:
        return self.value

    def advance(self, seconds: int) -> None:
        self.value += seconds


class FakeIdentityProvider:
    """Accepts the ID tokens it was configured with."""

    def __init__(self, tokens: dict[str, IdentityClaims]) -> None:
        self.tokens = tokens
        self.closed = False

    async def verify(self, id_token: str) -> IdentityClaims:
        if id_token not in self.tokens:
            raise IdentityVerificationError("The access token is invalid")
        return self.tokens[id_token]

    async def close(self) -> None:
        self.closed = True


class RecordingCarrier:
    """Session carrier that records what would be sent to the client."""

    def __init__(self) -> None:
        self.values: dict[str, tuple[str, int]] = {}
        self.cleared: list[str] = []

    def set_session_carrier(self, name: str, value: str, ttl_seconds: int) -> None:
        self.values[name] = (value, ttl_seconds)

    def clear_session_carrier(self, name: str) -> None:
        self.values.pop(name, None)
        self.cleared.append(name)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemorySortedSetCache(clock)


@pytest.fixture
def registry(cache, clock):
    return SessionRegistry(cache, max_sessions=8, clock=clock)


@pytest.fixture
def users():
    return MemoryUserService()


@pytest.fixture
def identity():
    return FakeIdentityProvider(
        {
            "alice-token": IdentityClaims(email="alice@example.com", name="Alice", picture="https://img.example.com/a.png"),
            "alice-renamed-token": IdentityClaims(email="alice@example.com", name="Alice Smith", picture=None),
            "bob-token": IdentityClaims(email="bob@example.com"),
            "no-email-token": IdentityClaims(name="Nobody"),
        }
    )


@pytest.fixture
def session_service(users, registry, identity):
    return SessionService(users, registry, identity, session_ttl=SESSION_TTL)


@pytest.fixture
def carrier():
    return RecordingCarrier()
