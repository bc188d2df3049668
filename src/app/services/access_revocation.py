from abc import ABC, abstractmethod
from datetime import timedelta


class IAccessRevocationRegistry(ABC):
    """Access credentials revoked before their natural expiry (blacklist)"""

    @abstractmethod
    async def blacklist(self, token_id: str, remaining_ttl: timedelta) -> None:
        """
        Record token_id until it would have expired anyway.

        Raises RevocationRegistryUnavailable when the store cannot be written.
        """
        pass

    @abstractmethod
    async def is_blacklisted(self, token_id: str) -> bool:
        """Raises RevocationRegistryUnavailable when the store cannot be read"""
        pass
