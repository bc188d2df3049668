from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.adapter.services.access_revocation import (
    InMemoryAccessRevocationRegistry,
    RedisAccessRevocationRegistry,
)
from src.domain.exceptions import RevocationRegistryUnavailable


@pytest.mark.asyncio
async def test_in_memory_blacklist(revocations):
    await revocations.blacklist("jti-1", timedelta(minutes=10))

    assert await revocations.is_blacklisted("jti-1") is True
    assert await revocations.is_blacklisted("jti-2") is False


@pytest.mark.asyncio
async def test_in_memory_skips_expired_tokens():
    registry = InMemoryAccessRevocationRegistry()

    await registry.blacklist("jti-1", timedelta(seconds=0))
    await registry.blacklist("jti-2", timedelta(seconds=-30))

    assert await registry.is_blacklisted("jti-1") is False
    assert await registry.is_blacklisted("jti-2") is False


@pytest.mark.asyncio
async def test_in_memory_drops_entries_that_expired_unseen():
    now = [1000.0]
    registry = InMemoryAccessRevocationRegistry(clock=lambda: now[0])

    await registry.blacklist("jti-1", timedelta(seconds=60))
    await registry.blacklist("jti-2", timedelta(minutes=10))
    now[0] += 120
    await registry.blacklist("jti-3", timedelta(minutes=10))

    assert set(registry._entries) == {"blacklist:jti-2", "blacklist:jti-3"}
    assert await registry.is_blacklisted("jti-2") is True
    assert await registry.is_blacklisted("jti-1") is False


@pytest.mark.asyncio
async def test_redis_blacklist_sets_ttl():
    client = AsyncMock()
    registry = RedisAccessRevocationRegistry(client)

    await registry.blacklist("jti-1", timedelta(minutes=10))

    client.set.assert_awaited_once_with("blacklist:jti-1", "1", ex=600)


@pytest.mark.asyncio
async def test_redis_blacklist_skips_non_positive_ttl():
    client = AsyncMock()
    registry = RedisAccessRevocationRegistry(client)

    await registry.blacklist("jti-1", timedelta(seconds=-1))

    client.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_is_blacklisted():
    client = AsyncMock()
    client.exists.return_value = 1
    registry = RedisAccessRevocationRegistry(client)

    assert await registry.is_blacklisted("jti-1") is True
    client.exists.assert_awaited_once_with("blacklist:jti-1")


@pytest.mark.asyncio
async def test_redis_outage_fails_loudly():
    client = AsyncMock()
    client.exists.side_effect = RedisConnectionError("down")
    client.set.side_effect = RedisConnectionError("down")
    registry = RedisAccessRevocationRegistry(client)

    with pytest.raises(RevocationRegistryUnavailable):
        await registry.is_blacklisted("jti-1")
    with pytest.raises(RevocationRegistryUnavailable):
        await registry.blacklist("jti-1", timedelta(minutes=1))
