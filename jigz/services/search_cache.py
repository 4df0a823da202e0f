# jigz/services/search_cache.py
import hashlib
import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from jigz.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "search:jobs:"


def make_cache_key(params: dict) -> str:
    # stable JSON stringify of the full filter + sort + page tuple
    s = json.dumps(params, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    return KEY_PREFIX + hashlib.sha256(s.encode("utf-8")).hexdigest()


class SearchCache:
    """Short-lived memo of search results in Redis.

    A cache that cannot be reached is a miss, never an error: searches
    keep working against the database while Redis is down.
    """

    def __init__(self, url: Optional[str] = None, ttl: Optional[int] = None, enabled: Optional[bool] = None):
        self._url = url or settings.REDIS_URL
        self.ttl = ttl if ttl is not None else settings.SEARCH_CACHE_TTL_SEC
        self.enabled = settings.SEARCH_CACHE_ENABLED if enabled is None else enabled
        self._client = None

    async def _get_client(self):
        if self._client is None:
            self._client = aioredis.from_url(self._url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            client = await self._get_client()
            val = await client.get(key)
        except (RedisError, OSError) as exc:
            logger.warning("Search cache read failed: %s", exc)
            return None
        if val is None:
            return None
        return json.loads(val)

    async def set(self, key: str, value: Any):
        if not self.enabled:
            return
        try:
            client = await self._get_client()
            await client.set(key, json.dumps(value, ensure_ascii=False, default=str), ex=self.ttl)
        except (RedisError, OSError) as exc:
            logger.warning("Search cache write failed: %s", exc)


search_cache = SearchCache()
