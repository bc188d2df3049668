from abc import ABC, abstractmethod
from uuid import UUID


def user_key(user_id: UUID) -> str:
    return f"user:{user_id}"


class IUserCache(ABC):
    """Invalidation hook for the cached user projection"""

    @abstractmethod
    async def invalidate(self, user_id: UUID) -> None:
        """Drop the primary cache key of a user"""
        pass

    @abstractmethod
    async def invalidate_all(self, user_id: UUID) -> None:
        """Drop the primary key and every derived user:{id}:* key"""
        pass
