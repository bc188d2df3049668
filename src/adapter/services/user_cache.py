import logging
from typing import Dict
from uuid import UUID

from redis.asyncio import Redis

from src.app.services.user_cache import IUserCache, user_key

logger = logging.getLogger(__name__)


class RedisUserCache(IUserCache):
    def __init__(self, client: Redis):
        self.client = client

    async def invalidate(self, user_id: UUID) -> None:
        await self.client.delete(user_key(user_id))

    async def invalidate_all(self, user_id: UUID) -> None:
        keys = [user_key(user_id)]
        async for key in self.client.scan_iter(match=f"{user_key(user_id)}:*"):
            keys.append(key)
        await self.client.delete(*keys)
        logger.debug(f"Invalidated {len(keys)} cache keys for user {user_id}")


class InMemoryUserCache(IUserCache):
    """Dict-backed cache; `entries` is exposed so tests can seed and inspect it"""

    def __init__(self):
        self.entries: Dict[str, str] = {}

    async def invalidate(self, user_id: UUID) -> None:
        self.entries.pop(user_key(user_id), None)

    async def invalidate_all(self, user_id: UUID) -> None:
        prefix = f"{user_key(user_id)}:"
        for key in list(self.entries):
            if key == user_key(user_id) or key.startswith(prefix):
                del self.entries[key]
