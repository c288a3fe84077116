"""Client-side errors. None of these are raised from response handling: the
middleware logs those and rolls back instead."""

from typing import Optional


class ApiError(Exception):
    """Failed RPC: non-2xx response, transport failure or timeout (status None)."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message if status is None else f"[{status}] {message}")

    @property
    def retryable(self) -> bool:
        # 4xx: terminal, 5xx / réseau: retry possible
        return self.status is None or self.status >= 500


class NoTaskError(KeyError):
    """Task key is unknown or stale."""


class NoViewError(KeyError):
    """View key is unknown or stale."""


class PropertyTypeError(TypeError):
    def __init__(self, name: str, expected: str, got: str):
        self.name = name
        self.expected = expected
        self.got = got
        super().__init__(f"property {name} has wrong type (expecting {expected}, got {got})")


class NotSyncedError(Exception):
    """Referenced task has no server id yet."""
