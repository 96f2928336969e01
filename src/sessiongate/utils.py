import time
from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], int]


def now() -> datetime:
    return datetime.now(UTC)


def epoch_seconds() -> int:
    """Current time as whole seconds since the epoch."""
    return int(time.time())
