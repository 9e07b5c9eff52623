"""
Short-lived keyed state for the authorization flow.

Entries are single use (`pop`) and expiry is enforced on every read, so a
stale entry is rejected even if no sweep has removed it yet.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, Protocol, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PendingAuthorization:
    """An /authorize request waiting for the identity provider callback."""

    client_id: str
    redirect_uri: str
    state: str
    code_challenge: Optional[str]
    code_challenge_method: str


@dataclass(frozen=True)
class IssuedCode:
    """An authorization code bound to a verified user."""

    client_id: str
    user_id: str
    email: Optional[str]
    redirect_uri: str
    code_challenge: Optional[str]
    code_challenge_method: str


class FlowStore(Protocol[T]):
    """Keyed store with atomic insert and delete-on-read."""

    def put(self, key: str, value: T, ttl_seconds: float) -> None:
        ...

    def pop(self, key: str) -> Optional[T]:
        ...


class ExpiringStore(Generic[T]):
    """
    In-process FlowStore backed by a dict.

    Keys are high-entropy random values, so plain dict operations are enough
    without locking. Expired entries are purged opportunistically on insert.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, T]] = {}

    def put(self, key: str, value: T, ttl_seconds: float) -> None:
        self.purge_expired()
        self._entries[key] = (self._clock() + ttl_seconds, value)

    def pop(self, key: str) -> Optional[T]:
        entry = self._entries.pop(key, None)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            return None
        return value

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in stale:
            self._entries.pop(key, None)
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
