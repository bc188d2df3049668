from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.storage import storage_errors
from src.app.repositories.user_repository import IUserRepository
from src.domain.entities import User


class UserRepository(IUserRepository):
    """Credential record access using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[User]:
        async with storage_errors("user lookup"):
            result = await self.session.exec(select(User).where(User.email == email))
            return result.one_or_none()

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        async with storage_errors("user lookup"):
            return await self.session.get(User, user_id)

    async def update(self, user: User) -> User:
        async with storage_errors("user update"):
            self.session.add(user)
            await self.session.flush()
        return user

    async def save_second_factor(self, user: User, expected_version: int) -> bool:
        stmt = (
            update(User)
            .where(User.id == user.id, User.second_factor_version == expected_version)
            .values(
                two_factor_enabled=user.two_factor_enabled,
                two_factor_secret=user.two_factor_secret,
                backup_code_hashes=list(user.backup_code_hashes or []),
                backup_codes_used=list(user.backup_codes_used or []),
                second_factor_version=expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        # The pending in-memory changes must not be flushed ahead of the guarded write
        async with storage_errors("second factor update"):
            with self.session.no_autoflush:
                result = await self.session.execute(stmt)
                if result.rowcount == 0:
                    await self.session.refresh(user)
                    return False
        user.second_factor_version = expected_version + 1
        return True
