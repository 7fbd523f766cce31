"""Repository Protocol: dependency inversion for testability.

Unit tests inject a double that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.us_user.domain.models import User


class UserRepositoryProtocol(Protocol):
    async def get_user_by_id(
        self, db: AsyncSession, user_id: str
    ) -> User | None: ...

    async def get_user_by_email(
        self, db: AsyncSession, email: str
    ) -> User | None: ...

    async def list_users_by_ids(
        self, db: AsyncSession, user_ids: list[str]
    ) -> list[User]: ...

    async def exists_by_email(self, db: AsyncSession, email: str) -> bool: ...

    async def insert_user(self, db: AsyncSession, user: User) -> User: ...

    async def update_user(self, db: AsyncSession, user: User) -> User: ...

    async def delete_user(self, db: AsyncSession, user_id: str) -> bool: ...
