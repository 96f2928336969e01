from typing import Protocol


class SessionCarrier(Protocol):
    """Transport that hands session state back to the client, e.g. response cookies."""

    def set_session_carrier(self, name: str, value: str, ttl_seconds: int) -> None: ...

    def clear_session_carrier(self, name: str) -> None: ...
