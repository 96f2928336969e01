from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from sessiongate.config import Config
from sessiongate.core.cache import MemorySortedSetCache, RedisSortedSetCache, SortedSetCache
from sessiongate.utils import Clock, epoch_seconds

if TYPE_CHECKING:
    from sessiongate.core.modules.identity.provider import IdentityProvider
    from sessiongate.core.modules.session.service import SessionService
    from sessiongate.core.modules.user.service import UserStore

logger = structlog.get_logger(__name__)


class Service:
    """Base class for services with startup and shutdown hooks."""

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""


class Services:
    """Service registry wired from explicitly constructed dependencies."""

    user: UserStore
    session: SessionService

    def __init__(self, user: UserStore, session: SessionService) -> None:
        self.user = user
        self.session = session
        # Order matters for startup - users before sessions
        self._services: list[Any] = [user, session]

    async def start_all(self) -> None:
        """Start all services that have startup logic."""
        for service in self._services:
            if hasattr(service, "on_start"):
                await service.on_start()

    async def stop_all(self) -> None:
        """Stop all services that have cleanup logic."""
        for service in reversed(self._services):
            if hasattr(service, "on_stop"):
                await service.on_stop()


class Core:
    """Container providing config, backing stores, and all service instances.

    Stores and the identity provider are built from config unless passed in,
    which lets tests run the full stack against in-process doubles.
    """

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]] | None
    cache: SortedSetCache
    services: Services

    def __init__(
        self,
        config: Config,
        *,
        users: UserStore | None = None,
        cache: SortedSetCache | None = None,
        identity: IdentityProvider | None = None,
        clock: Clock = epoch_seconds,
    ) -> None:
        """Initialize core with config, backing stores, and services."""
        from sessiongate.core.modules.identity.provider import GoogleIdentityProvider  # noqa: PLC0415
        from sessiongate.core.modules.session.registry import SessionRegistry  # noqa: PLC0415
        from sessiongate.core.modules.session.service import SessionService  # noqa: PLC0415
        from sessiongate.core.modules.user.memory import MemoryUserService  # noqa: PLC0415
        from sessiongate.core.modules.user.service import UserService  # noqa: PLC0415

        self.config = config
        self.mongo_client = None

        if users is None:
            if config.use_memory_store:
                users = MemoryUserService()
            else:
                self.mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard")
                database: AsyncDatabase[dict[str, Any]] = self.mongo_client.get_database(
                    urlparse(config.database_url).path[1:]
                )
                users = UserService(database)

        if cache is None:
            cache = MemorySortedSetCache(clock) if config.use_memory_store else RedisSortedSetCache(config.redis_url)
        self.cache = cache

        if identity is None:
            identity = GoogleIdentityProvider(
                config.google_tokeninfo_url, config.google_client_ids, timeout=config.identity_timeout
            )
        self.identity = identity

        registry = SessionRegistry(cache, max_sessions=config.max_sessions_per_user, clock=clock)
        session = SessionService(users, registry, identity, session_ttl=config.session_ttl_seconds)
        self.services = Services(users, session)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Verify the cache and start all services on application startup."""
        await self.cache.verify_connection()
        await self.services.start_all()
        logger.info("core_started", memory_store=self.config.use_memory_store)

    async def on_stop(self) -> None:
        """Stop services and close client connections on shutdown.

        Every client is closed even when an earlier step fails.
        """
        async with AsyncExitStack() as stack:
            if self.mongo_client is not None:
                stack.push_async_callback(self.mongo_client.aclose)
            stack.push_async_callback(self.cache.close)
            stack.push_async_callback(self.identity.close)
            await self.services.stop_all()
