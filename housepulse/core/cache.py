from typing import Any
import redis
from cachetools import TTLCache
from .config import settings

class Cache:
    """
    Thin abstraction over Redis/in-memory so swapping is one flag away.
    Holds short-lived values (rate-limit buckets), so everything expires.
    """
    def __init__(self, use_redis: bool = settings.USE_REDIS, ttl_seconds: int = settings.CACHE_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self.backend = None
        self._local = TTLCache(maxsize=4096, ttl=ttl_seconds)
        if use_redis:
            self.backend = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

    def get(self, key: str) -> Any | None:
        if self.backend:
            return self.backend.get(key)
        return self._local.get(key)

    def set(self, key: str, value: str) -> None:
        if self.backend:
            self.backend.setex(key, self.ttl_seconds, value)
        else:
            self._local[key] = value

    def clear(self) -> None:
        self._local.clear()


class PermanentCache:
    """
    Process-lifetime cache with no expiry and no eviction.
    Used for successful demographics lookups: once a postcode resolves it is
    never fetched again until the process restarts (or clear() is called).
    """
    def __init__(self):
        self._entries: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

cache = Cache()
