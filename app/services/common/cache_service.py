"""
Read-through cache for inventory aggregates.

Cache keys:
    product_inventory:{product_id}
    location_inventory:{location_id}

Values are JSON-ready dicts so a shared backend can be dropped in later.
Every committed mutation invalidates the keys it touched; the TTL only
bounds staleness for writers outside this process.
"""
from typing import Any, Optional, Dict
from datetime import datetime, timedelta, timezone
from abc import ABC, abstractmethod
import asyncio
import logging

from app.core.config import INVENTORY_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Abstract cache backend interface."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    async def clear_pattern(self, pattern: str) -> int:
        pass


class InMemoryCache(CacheBackend):
    """Process-local cache; not shared across workers."""

    def __init__(self):
        self._cache: Dict[str, tuple[Any, datetime]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            if key in self._cache:
                value, expires_at = self._cache[key]
                if expires_at > datetime.now(timezone.utc):
                    return value
                del self._cache[key]
            return None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        async with self._lock:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
            self._cache[key] = (value, expires_at)
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    async def clear_pattern(self, pattern: str) -> int:
        """Clear keys matching pattern (simple prefix match)."""
        async with self._lock:
            prefix = pattern.rstrip("*")
            keys_to_delete = [k for k in self._cache if k.startswith(prefix)]
            for key in keys_to_delete:
                del self._cache[key]
            return len(keys_to_delete)

    async def cleanup_expired(self) -> int:
        async with self._lock:
            now = datetime.now(timezone.utc)
            expired_keys = [
                k for k, (_, expires_at) in self._cache.items()
                if expires_at <= now
            ]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)


class InventoryCache:
    def __init__(self, backend: CacheBackend, ttl: int = INVENTORY_CACHE_TTL_SECONDS):
        self._backend = backend
        self._ttl = ttl

    @staticmethod
    def product_key(product_id: int) -> str:
        return f"product_inventory:{product_id}"

    @staticmethod
    def location_key(location_id: int) -> str:
        return f"location_inventory:{location_id}"

    async def get_product(self, product_id: int) -> Optional[dict]:
        return await self._backend.get(self.product_key(product_id))

    async def set_product(self, product_id: int, data: dict) -> bool:
        return await self._backend.set(self.product_key(product_id), data, self._ttl)

    async def get_location(self, location_id: int) -> Optional[dict]:
        return await self._backend.get(self.location_key(location_id))

    async def set_location(self, location_id: int, data: dict) -> bool:
        return await self._backend.set(self.location_key(location_id), data, self._ttl)

    async def invalidate(
        self,
        product_ids: set[int] | None = None,
        location_ids: set[int] | None = None,
    ) -> None:
        """
        Drop cached aggregates after a commit. Failures are logged and
        swallowed: the write has already happened and the TTL caps staleness.
        """
        keys = [self.product_key(p) for p in product_ids or ()]
        keys += [self.location_key(l) for l in location_ids or ()]

        for key in keys:
            try:
                await self._backend.delete(key)
            except Exception:
                logger.exception("Cache invalidation failed", extra={"key": key})

    async def clear(self) -> int:
        cleared = await self._backend.clear_pattern("product_inventory:*")
        cleared += await self._backend.clear_pattern("location_inventory:*")
        return cleared
