"""
Wall-clock time and opaque state token generation.
Injected into the session store and broker so tests can control both.
"""
import secrets
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float: ...


class SystemClock:
    """Seconds since the epoch, from time.time()."""

    def now(self) -> float:
        return time.time()


def generate_state() -> str:
    """Opaque, unguessable value for CSRF protection; returned in the provider callback."""
    return secrets.token_urlsafe(32)
