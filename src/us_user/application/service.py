"""UserApplicationService: ownership gate + cache coherence for users.

Every method takes the verified caller id explicitly (None = unauthenticated).

Ordering rule for writes: the DB transaction commits first, cache steps run
afterwards. If `transaction(db)` raises, the method exits before touching the
cache, so a failed write can never leave a cache entry ahead of the store.

Cache steps per operation:
    create  → none (first read populates)
    update  → evict users[email:old_email]; put users[id:id]
    delete  → evict users[id:id], users[email:email], cards[c] for every owned card
"""

import logging
from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession

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
    UserAlreadyExistsError,
    UserNotFoundError,
    ValueAlreadyExistsError,
)
from src.us_gateway.auth.access import ensure_owner, filter_owned, require_caller
from src.us_user.application.schemas import (
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from src.us_user.domain.models import User
from src.us_user.domain.repository import UserRepositoryProtocol
from src.us_user.infrastructure.persistence import UserRepository

logger = logging.getLogger(__name__)


class UserApplicationService:
    def __init__(
        self,
        user_repo: UserRepositoryProtocol | None = None,
        card_repo: CardRepositoryProtocol | None = None,
        cache: RecordCache | None = None,
    ) -> None:
        self._users: UserRepositoryProtocol = user_repo or UserRepository()
        self._cards: CardRepositoryProtocol = card_repo or CardRepository()
        self._cache = cache or RecordCache()

    async def _load_view(self, db: AsyncSession, user: User) -> UserResponse:
        cards = await self._cards.list_cards_by_user_ids(db, [user.id])
        return UserResponse.from_domain(user, cards)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self, db: AsyncSession, caller_id: str | None, body: UserCreateRequest
    ) -> UserResponse:
        """Insert the caller's own user record. The id comes from the token."""
        user_id = require_caller(caller_id)
        async with transaction(db):
            if await self._users.get_user_by_id(db, user_id) is not None:
                raise UserAlreadyExistsError(user_id)
            if await self._users.exists_by_email(db, body.email):
                raise ValueAlreadyExistsError("email", body.email)
            user = await self._users.insert_user(
                db,
                User(
                    id=user_id,
                    name=body.name,
                    surname=body.surname,
                    birth_date=body.birth_date,
                    email=body.email,
                ),
            )
        logger.info("User created: id=%s", user.id)
        return UserResponse.from_domain(user, [])

    async def update(
        self,
        db: AsyncSession,
        caller_id: str | None,
        user_id: str,
        body: UserUpdateRequest,
    ) -> UserResponse:
        ensure_owner(caller_id, user_id)
        async with transaction(db):
            user = await self._users.get_user_by_id(db, user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            old_email = user.email

            # Same value as the record's own email is not a collision
            if body.email is not None and body.email != user.email:
                if await self._users.exists_by_email(db, body.email):
                    raise ValueAlreadyExistsError("email", body.email)
                user.email = body.email
            if body.name is not None:
                user.name = body.name
            if body.surname is not None:
                user.surname = body.surname
            if body.birth_date is not None:
                user.birth_date = body.birth_date

            user = await self._users.update_user(db, user)
            view = await self._load_view(db, user)

        await self._cache.evict(CacheNamespace.USERS, user_email_key(old_email))
        await self._cache.put(CacheNamespace.USERS, user_id_key(user_id), view)
        return view

    async def delete(self, db: AsyncSession, caller_id: str | None, user_id: str) -> None:
        """Delete the user and every card it owns, then evict all N+2 cache keys."""
        ensure_owner(caller_id, user_id)
        async with transaction(db):
            user = await self._users.get_user_by_id(db, user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            card_ids = await self._cards.delete_cards_by_user_id(db, user_id)
            await self._users.delete_user(db, user_id)

        await self._cache.evict(
            CacheNamespace.USERS, user_id_key(user_id), user_email_key(user.email)
        )
        await self._cache.evict(CacheNamespace.CARDS, *card_ids)
        logger.info("User deleted: id=%s cards=%d", user_id, len(card_ids))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_by_id(
        self, db: AsyncSession, caller_id: str | None, user_id: str
    ) -> UserResponse:
        ensure_owner(caller_id, user_id)
        cached = await self._cache.get(
            CacheNamespace.USERS, user_id_key(user_id), UserResponse
        )
        # A snapshot for any other user is treated as a miss
        if cached is not None and cached.id == user_id:
            return cached

        async with transaction(db):
            user = await self._users.get_user_by_id(db, user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            view = await self._load_view(db, user)

        await self._cache.put(CacheNamespace.USERS, user_id_key(user_id), view)
        return view

    async def find_by_email(
        self, db: AsyncSession, caller_id: str | None, email: str
    ) -> UserResponse:
        """Owner check runs against the resolved user id, on hit and on miss."""
        require_caller(caller_id)
        cached = await self._cache.get(
            CacheNamespace.USERS, user_email_key(email), UserResponse
        )
        if cached is not None and cached.email == email:
            ensure_owner(caller_id, cached.id)
            return cached

        async with transaction(db):
            user = await self._users.get_user_by_email(db, email)
            if user is None:
                raise UserNotFoundError(email)
            ensure_owner(caller_id, user.id)
            view = await self._load_view(db, user)

        await self._cache.put(CacheNamespace.USERS, user_email_key(email), view)
        return view

    async def find_by_ids(
        self, db: AsyncSession, caller_id: str | None, user_ids: list[str]
    ) -> list[UserResponse]:
        """Batch lookup: bypasses the cache, drops records the caller does not own."""
        require_caller(caller_id)
        if not user_ids:
            return []

        async with transaction(db):
            users = await self._users.list_users_by_ids(db, user_ids)
            users = filter_owned(caller_id, users, lambda u: u.id)
            cards = await self._cards.list_cards_by_user_ids(db, [u.id for u in users])

        by_owner: dict[str, list[Card]] = defaultdict(list)
        for card in cards:
            by_owner[card.user_id].append(card)
        return [UserResponse.from_domain(u, by_owner[u.id]) for u in users]
