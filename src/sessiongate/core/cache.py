"""Expiring sorted-set cache used by the session registry.

Every interaction is expressed as a batch of operations executed atomically,
so the registry does not depend on a concrete backing store.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from sessiongate.errors import CacheError
from sessiongate.utils import Clock, epoch_seconds

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ZAdd:
    key: str
    member: str
    score: float


@dataclass(frozen=True, slots=True)
class ZCard:
    key: str


@dataclass(frozen=True, slots=True)
class ZScore:
    key: str
    member: str


@dataclass(frozen=True, slots=True)
class ZRem:
    key: str
    member: str


@dataclass(frozen=True, slots=True)
class ZRemRangeByRank:
    key: str
    start: int
    stop: int


@dataclass(frozen=True, slots=True)
class Expire:
    key: str
    seconds: int


CacheOp = ZAdd | ZCard | ZScore | ZRem | ZRemRangeByRank | Expire


class SortedSetCache(Protocol):
    async def execute_atomic(self, ops: Sequence[CacheOp]) -> list[Any]:
        """Apply ops as one unit and return one result per op.

        A failed op yields an exception instance in its slot. Raises CacheError
        when the batch as a whole cannot be executed.
        """
        ...

    async def verify_connection(self) -> None: ...

    async def close(self) -> None: ...


class RedisSortedSetCache:
    """Redis-backed cache, each batch runs inside MULTI/EXEC."""

    def __init__(self, redis_url: str, *, socket_timeout: float = 5.0) -> None:
        self.redis_url = redis_url
        self.client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    async def execute_atomic(self, ops: Sequence[CacheOp]) -> list[Any]:
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                for op in ops:
                    self._queue(pipe, op)
                return list(await pipe.execute(raise_on_error=False))
        except RedisError as e:
            logger.warning("cache_batch_failed", ops=len(ops), error=str(e))
            raise CacheError(str(e)) from e

    @staticmethod
    def _queue(pipe: Any, op: CacheOp) -> None:
        match op:
            case ZAdd():
                pipe.zadd(op.key, {op.member: op.score})
            case ZCard():
                pipe.zcard(op.key)
            case ZScore():
                pipe.zscore(op.key, op.member)
            case ZRem():
                pipe.zrem(op.key, op.member)
            case ZRemRangeByRank():
                pipe.zremrangebyrank(op.key, op.start, op.stop)
            case Expire():
                pipe.expire(op.key, op.seconds)
            case _:
                raise TypeError(f"Unsupported cache operation: {op!r}")

    async def verify_connection(self) -> None:
        try:
            await self.client.ping()
        except RedisError as e:
            raise CacheError(f"Redis is not reachable at {self.redis_url}") from e

    async def close(self) -> None:
        await self.client.aclose()


class MemorySortedSetCache:
    """In-process cache with Redis semantics for development and tests.

    Batches contain no awaits, so they cannot interleave on the event loop.
    """

    def __init__(self, clock: Clock = epoch_seconds) -> None:
        self._clock = clock
        self._sets: dict[str, dict[str, float]] = {}
        self._deadlines: dict[str, int] = {}

    async def execute_atomic(self, ops: Sequence[CacheOp]) -> list[Any]:
        results: list[Any] = []
        for op in ops:
            try:
                results.append(self._apply(op))
            except Exception as e:  # noqa: BLE001
                results.append(e)
        return results

    async def verify_connection(self) -> None:
        """Nothing to verify for the in-process cache."""

    async def close(self) -> None:
        self._sets.clear()
        self._deadlines.clear()

    def _members(self, key: str) -> dict[str, float] | None:
        deadline = self._deadlines.get(key)
        if deadline is not None and deadline <= self._clock():
            self._delete(key)
        return self._sets.get(key)

    def _delete(self, key: str) -> None:
        self._sets.pop(key, None)
        self._deadlines.pop(key, None)

    def _drop_if_empty(self, key: str) -> None:
        if not self._sets.get(key):
            self._delete(key)

    def _apply(self, op: CacheOp) -> Any:
        match op:
            case ZAdd():
                members = self._members(op.key)
                if members is None:
                    members = self._sets[op.key] = {}
                added = 0 if op.member in members else 1
                members[op.member] = float(op.score)
                return added
            case ZCard():
                return len(self._members(op.key) or {})
            case ZScore():
                return (self._members(op.key) or {}).get(op.member)
            case ZRem():
                members = self._members(op.key)
                if members is None or op.member not in members:
                    return 0
                del members[op.member]
                self._drop_if_empty(op.key)
                return 1
            case ZRemRangeByRank():
                members = self._members(op.key)
                if not members:
                    return 0
                ranked = sorted(members.items(), key=lambda item: (item[1], item[0]))
                start, stop = _normalize_range(op.start, op.stop, len(ranked))
                removed = ranked[start : stop + 1]
                for member, _ in removed:
                    del members[member]
                self._drop_if_empty(op.key)
                return len(removed)
            case Expire():
                if self._members(op.key) is None:
                    return False
                if op.seconds <= 0:
                    self._delete(op.key)
                else:
                    self._deadlines[op.key] = self._clock() + op.seconds
                return True
            case _:
                raise TypeError(f"Unsupported cache operation: {op!r}")


def _normalize_range(start: int, stop: int, length: int) -> tuple[int, int]:
    """Resolve Redis-style inclusive rank bounds, negative values count from the end."""
    if start < 0:
        start += length
    if stop < 0:
        stop += length
    start = max(start, 0)
    stop = min(stop, length - 1)
    return start, stop
