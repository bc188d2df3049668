import logging
import time
from datetime import timedelta
from typing import Callable, Dict

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.app.services.access_revocation import IAccessRevocationRegistry
from src.domain.exceptions import RevocationRegistryUnavailable

logger = logging.getLogger(__name__)


def blacklist_key(token_id: str) -> str:
    return f"blacklist:{token_id}"


class RedisAccessRevocationRegistry(IAccessRevocationRegistry):
    """Blacklist entries live exactly as long as the token they block"""

    def __init__(self, client: Redis):
        self.client = client

    async def blacklist(self, token_id: str, remaining_ttl: timedelta) -> None:
        seconds = int(remaining_ttl.total_seconds())
        if seconds <= 0:
            return
        try:
            await self.client.set(blacklist_key(token_id), "1", ex=seconds)
        except RedisError as exc:
            logger.error(f"Failed to blacklist token {token_id}: {exc}")
            raise RevocationRegistryUnavailable("Revocation store unavailable") from exc

    async def is_blacklisted(self, token_id: str) -> bool:
        try:
            return bool(await self.client.exists(blacklist_key(token_id)))
        except RedisError as exc:
            logger.error(f"Revocation check failed for token {token_id}: {exc}")
            raise RevocationRegistryUnavailable("Revocation store unavailable") from exc


class InMemoryAccessRevocationRegistry(IAccessRevocationRegistry):
    """Single-process registry for development and tests"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, float] = {}

    async def blacklist(self, token_id: str, remaining_ttl: timedelta) -> None:
        seconds = remaining_ttl.total_seconds()
        if seconds <= 0:
            return
        now = self._clock()
        # Sweep on write; lookups only evict jtis that are presented again
        self._entries = {
            key: deadline for key, deadline in self._entries.items() if deadline > now
        }
        self._entries[blacklist_key(token_id)] = now + seconds

    async def is_blacklisted(self, token_id: str) -> bool:
        key = blacklist_key(token_id)
        deadline = self._entries.get(key)
        if deadline is None:
            return False
        if deadline <= self._clock():
            del self._entries[key]
            return False
        return True
