"""Repository Protocol: dependency inversion for testability.

Unit tests inject a double that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import date
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.us_card.domain.models import Card


class CardRepositoryProtocol(Protocol):
    async def get_card_by_id(
        self, db: AsyncSession, card_id: int
    ) -> Card | None: ...

    async def list_cards_by_ids(
        self, db: AsyncSession, card_ids: list[int]
    ) -> list[Card]: ...

    async def list_cards_by_user_ids(
        self, db: AsyncSession, user_ids: list[str]
    ) -> list[Card]: ...

    async def exists_by_number(self, db: AsyncSession, number: str) -> bool: ...

    async def insert_card(
        self,
        db: AsyncSession,
        number: str,
        holder: str,
        expiration_date: date,
        user_id: str,
    ) -> Card: ...

    async def update_card(self, db: AsyncSession, card: Card) -> Card: ...

    async def delete_card(self, db: AsyncSession, card_id: int) -> bool: ...

    async def delete_cards_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> list[int]: ...
