from collections.abc import Sequence
from typing import Any
from uuid import UUID

import structlog

from sessiongate.core.cache import CacheOp, Expire, SortedSetCache, ZAdd, ZCard, ZRem, ZRemRangeByRank, ZScore
from sessiongate.errors import CacheError, InternalError
from sessiongate.utils import Clock, epoch_seconds

logger = structlog.get_logger(__name__)

SESSION_TOKENS_PREFIX = "session-tokens:"
DEFAULT_MAX_SESSIONS = 8


def get_session_tokens_key(user_id: UUID | str) -> str:
    return f"{SESSION_TOKENS_PREFIX}{user_id}"


class SessionRegistry:
    """Per-user sorted set of live session tokens scored by expiry time.

    Each user's set keeps at most `max_sessions` tokens after a login and
    carries the TTL of the newest session, so abandoned sets expire on their own.
    """

    def __init__(
        self, cache: SortedSetCache, *, max_sessions: int = DEFAULT_MAX_SESSIONS, clock: Clock = epoch_seconds
    ) -> None:
        self._cache = cache
        self._max_sessions = max_sessions
        self._clock = clock

    async def add(self, user_id: UUID, token: str, ttl_seconds: int) -> None:
        """Register a session and evict the earliest-expiring ones beyond the cap.

        Eviction runs as a second batch, so two concurrent logins may briefly
        leave one session over the cap until the next add.
        """
        key = get_session_tokens_key(user_id)
        score = self._clock() + ttl_seconds

        results = await self._execute([ZAdd(key, token, score), ZCard(key), Expire(key, ttl_seconds)])
        count = results[1]
        if any(isinstance(result, Exception) for result in results) or not isinstance(count, int):
            logger.error("session_add_failed", user_id=str(user_id), results=[repr(r) for r in results])
            raise InternalError("Failed to add user session")

        if count > self._max_sessions:
            excess = count - self._max_sessions
            evicted = await self._execute([ZRemRangeByRank(key, 0, excess - 1)])
            if isinstance(evicted[0], Exception):
                logger.error("session_eviction_failed", user_id=str(user_id), error=repr(evicted[0]))
                raise InternalError("Failed to add user session")
            logger.info("session_evicted", user_id=str(user_id), evicted=evicted[0])

        logger.debug(
            "session_created", user_id=str(user_id), expires_at=score, session_count=min(count, self._max_sessions)
        )

    async def remove(self, user_id: UUID, token: str) -> None:
        """Drop a session token. Removing an unknown token is a no-op."""
        results = await self._execute([ZRem(get_session_tokens_key(user_id), token)])
        _raise_on_error(results, "Failed to remove user session")

    async def check_valid(self, user_id: UUID, token: str) -> bool:
        """Check whether a token is registered and not yet expired.

        Expired tokens are removed on the spot.
        """
        key = get_session_tokens_key(user_id)
        (score,) = await self._execute([ZScore(key, token)])
        if isinstance(score, Exception):
            raise InternalError("Failed to check user session")

        if score is None:
            return False
        if int(score) > self._clock():
            return True

        results = await self._execute([ZRem(key, token)])
        _raise_on_error(results, "Failed to remove user session")
        logger.debug("session_expired", user_id=str(user_id))
        return False

    async def count(self, user_id: UUID) -> int:
        """Number of tokens currently stored for the user, expired ones included."""
        (count,) = await self._execute([ZCard(get_session_tokens_key(user_id))])
        if not isinstance(count, int):
            raise InternalError("Failed to count user sessions")
        return count

    async def _execute(self, ops: Sequence[CacheOp]) -> list[Any]:
        try:
            results = await self._cache.execute_atomic(ops)
        except CacheError as e:
            raise InternalError("Session store unavailable") from e
        if not isinstance(results, list) or len(results) != len(ops):
            raise InternalError("Unexpected session store response")
        return results


def _raise_on_error(results: list[Any], message: str) -> None:
    if any(isinstance(result, Exception) for result in results):
        raise InternalError(message)
