"""CardApplicationService: ownership gate + cache coherence for cards.

Authorization always resolves card → owner → check: the caller must be the
card's OWNER, the card id itself is never compared with the caller.

A cached UserResponse embeds its cards, so every card write also evicts the
owner's cached user views (by id and by email). Cache steps run after commit:
    create  → evict users[id:owner_id], users[email:owner_email]
    update  → put cards[id]; evict users[id:owner_id], users[email:owner_email]
    delete  → evict cards[id], users[id:owner_id], users[email:owner_email]
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.us_card.application.schemas import (
    CardCreateRequest,
    CardResponse,
    CardUpdateRequest,
)
from src.us_card.domain.models import Card
from src.us_card.domain.repository import CardRepositoryProtocol
from src.us_card.infrastructure.persistence import CardRepository
from src.us_common.cache import (
    CacheNamespace,
    RecordCache,
    user_email_key,
    user_id_key,
)
from src.us_common.database import transaction
from src.us_common.errors import (
    CardNotFoundError,
    UserNotFoundError,
    ValueAlreadyExistsError,
)
from src.us_gateway.auth.access import ensure_owner, filter_owned, require_caller
from src.us_user.domain.repository import UserRepositoryProtocol
from src.us_user.infrastructure.persistence import UserRepository

logger = logging.getLogger(__name__)


class CardApplicationService:
    def __init__(
        self,
        card_repo: CardRepositoryProtocol | None = None,
        user_repo: UserRepositoryProtocol | None = None,
        cache: RecordCache | None = None,
    ) -> None:
        self._cards: CardRepositoryProtocol = card_repo or CardRepository()
        self._users: UserRepositoryProtocol = user_repo or UserRepository()
        self._cache = cache or RecordCache()

    async def _get_owned_card(
        self, db: AsyncSession, caller_id: str | None, card_id: int
    ) -> Card:
        card = await self._cards.get_card_by_id(db, card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        ensure_owner(caller_id, card.user_id)
        return card

    async def _owner_keys(self, db: AsyncSession, owner_id: str) -> list[str]:
        """Both cache keys under which the owner's user view may be stored."""
        owner = await self._users.get_user_by_id(db, owner_id)
        if owner is None:
            # FK makes this unreachable while the card exists; the id key still goes
            logger.warning("Card owner missing from store: user_id=%s", owner_id)
            return [user_id_key(owner_id)]
        return [user_id_key(owner_id), user_email_key(owner.email)]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self, db: AsyncSession, caller_id: str | None, body: CardCreateRequest
    ) -> CardResponse:
        ensure_owner(caller_id, body.user_id)
        async with transaction(db):
            if await self._cards.exists_by_number(db, body.number):
                raise ValueAlreadyExistsError("number", body.number)
            owner = await self._users.get_user_by_id(db, body.user_id)
            if owner is None:
                raise UserNotFoundError(body.user_id)
            card = await self._cards.insert_card(
                db, body.number, body.holder, body.expiration_date, owner.id
            )

        await self._cache.evict(
            CacheNamespace.USERS, user_id_key(owner.id), user_email_key(owner.email)
        )
        logger.info("Card created: id=%s user_id=%s", card.id, owner.id)
        return CardResponse.from_domain(card)

    async def update(
        self,
        db: AsyncSession,
        caller_id: str | None,
        card_id: int,
        body: CardUpdateRequest,
    ) -> CardResponse:
        require_caller(caller_id)
        async with transaction(db):
            card = await self._get_owned_card(db, caller_id, card_id)

            # Same value as the card's own number is not a collision
            if body.number is not None and body.number != card.number:
                if await self._cards.exists_by_number(db, body.number):
                    raise ValueAlreadyExistsError("number", body.number)
                card.number = body.number
            if body.holder is not None:
                card.holder = body.holder
            if body.expiration_date is not None:
                card.expiration_date = body.expiration_date

            card = await self._cards.update_card(db, card)
            owner_keys = await self._owner_keys(db, card.user_id)

        view = CardResponse.from_domain(card)
        await self._cache.put(CacheNamespace.CARDS, card_id, view)
        await self._cache.evict(CacheNamespace.USERS, *owner_keys)
        return view

    async def delete(self, db: AsyncSession, caller_id: str | None, card_id: int) -> None:
        require_caller(caller_id)
        async with transaction(db):
            card = await self._get_owned_card(db, caller_id, card_id)
            owner_keys = await self._owner_keys(db, card.user_id)
            await self._cards.delete_card(db, card_id)

        await self._cache.evict(CacheNamespace.CARDS, card_id)
        await self._cache.evict(CacheNamespace.USERS, *owner_keys)
        logger.info("Card deleted: id=%s user_id=%s", card_id, card.user_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_by_id(
        self, db: AsyncSession, caller_id: str | None, card_id: int
    ) -> CardResponse:
        require_caller(caller_id)
        cached = await self._cache.get(CacheNamespace.CARDS, card_id, CardResponse)
        if cached is not None:
            ensure_owner(caller_id, cached.user_id)
            return cached

        async with transaction(db):
            card = await self._get_owned_card(db, caller_id, card_id)

        view = CardResponse.from_domain(card)
        await self._cache.put(CacheNamespace.CARDS, card_id, view)
        return view

    async def find_by_ids(
        self, db: AsyncSession, caller_id: str | None, card_ids: list[int]
    ) -> list[CardResponse]:
        """Batch lookup: bypasses the cache, drops cards the caller does not own."""
        require_caller(caller_id)
        if not card_ids:
            return []

        async with transaction(db):
            cards = await self._cards.list_cards_by_ids(db, card_ids)

        owned = filter_owned(caller_id, cards, lambda c: c.user_id)
        return [CardResponse.from_domain(c) for c in owned]
