from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.domain.entities import User


class IUserRepository(ABC):
    """
    Credential record access.

    Accounts are created elsewhere; the auth engine only reads them and
    writes back login, second-factor and single-use token fields.
    """

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        pass

    @abstractmethod
    async def update(self, user: User) -> User:
        """Flush changed fields of a loaded record; raises StorageError"""
        pass

    @abstractmethod
    async def save_second_factor(self, user: User, expected_version: int) -> bool:
        """
        Write the second-factor fields of a loaded record only if nobody has
        written them since expected_version was read.

        Returns False when another writer got there first; the in-memory
        record is then reloaded and holds the winner's values.
        """
        pass
