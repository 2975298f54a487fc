"""
Active-session cache.

Remembers which account was last used on a device so passcode-only login can
find it. Supports an in-memory fallback for tests/local runs and a
Redis-backed implementation for production.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions


class SessionCache(Protocol):
    """Minimal interface for the per-device active session."""

    def set_active(self, device_id: str, email: str) -> None:
        ...

    def get_active(self, device_id: str) -> Optional[str]:
        ...

    def clear(self, device_id: str) -> None:
        ...


@dataclass
class InMemorySessionCache:
    """Simple dict-backed cache for testing/dev."""

    sessions: dict[str, str] = field(default_factory=dict)

    def set_active(self, device_id: str, email: str) -> None:
        self.sessions[device_id] = email

    def get_active(self, device_id: str) -> Optional[str]:
        return self.sessions.get(device_id)

    def clear(self, device_id: str) -> None:
        self.sessions.pop(device_id, None)


@dataclass
class RedisSessionCache:
    """Redis-backed cache using plain string keys."""

    url: str
    key_prefix: str = "planner:session:"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, device_id: str) -> str:
        return f"{self.key_prefix}{device_id}"

    def set_active(self, device_id: str, email: str) -> None:
        self.client.set(self._key(device_id), email)

    def get_active(self, device_id: str) -> Optional[str]:
        try:
            value = self.client.get(self._key(device_id))
        except redis_exceptions.ConnectionError:
            # Connection resets can happen on managed Redis. Treat as no
            # session; the user can still log in with email + passcode.
            self.client = redis.Redis.from_url(self.url)
            return None
        if value is None:
            return None
        return value.decode("utf-8")

    def clear(self, device_id: str) -> None:
        self.client.delete(self._key(device_id))
