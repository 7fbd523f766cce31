"""Shared test fixtures.

An RSA key pair is generated once per session and its public half is exported
as JWT_PUBLIC_KEY *before* config.settings is imported, so the app under test
verifies tokens signed by `make_token`.
"""

import os
from collections.abc import AsyncGenerator, Callable
from dataclasses import replace
from datetime import UTC, date, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt
from redis.exceptions import ConnectionError as RedisConnectionError

_PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
PRIVATE_PEM = _PRIVATE_KEY.private_bytes(
    serialization.Encoding.PEM,
    serialization.PrivateFormat.PKCS8,
    serialization.NoEncryption(),
).decode()
PUBLIC_PEM = _PRIVATE_KEY.public_key().public_bytes(
    serialization.Encoding.PEM,
    serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()

os.environ["JWT_PUBLIC_KEY"] = PUBLIC_PEM

from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.us_card.application.service import CardApplicationService  # noqa: E402
from src.us_card.domain.models import Card  # noqa: E402
from src.us_common.cache import RecordCache  # noqa: E402
from src.us_user.application.service import UserApplicationService  # noqa: E402
from src.us_user.domain.models import User  # noqa: E402

FAR_FUTURE = date.today() + timedelta(days=3 * 365)


def sign_token(claims: dict[str, object], key: str = PRIVATE_PEM, algorithm: str = "RS256") -> str:
    return str(jwt.encode(claims, key, algorithm=algorithm))


@pytest.fixture
def sign() -> Callable[..., str]:
    """Raw signer for crafting odd tokens (custom claims, keys, algorithms)."""
    return sign_token


@pytest.fixture
def public_pem() -> str:
    return PUBLIC_PEM


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Issue a token the way the identity service does (userId claim, RS256)."""

    def _make(user_id: str, expires_in: timedelta = timedelta(minutes=30)) -> str:
        now = datetime.now(UTC)
        return sign_token({"userId": user_id, "iat": now, "exp": now + expires_in})

    return _make


# ---------------------------------------------------------------------------
# In-memory doubles
# ---------------------------------------------------------------------------


class FakeRedis:
    """Just enough of redis.asyncio.Redis for RecordCache, plus an op log."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.writes: list[tuple[str, tuple[str, ...]]] = []
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("redis is down")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check()
        self.data[key] = value
        self.ttls[key] = ex
        self.writes.append(("set", (key,)))
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        self.writes.append(("delete", keys))
        return sum(1 for k in keys if self.data.pop(k, None) is not None)

    async def ping(self) -> bool:
        self._check()
        return True


class InMemoryStore:
    """Authoritative state shared by both repository doubles."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.cards: dict[int, Card] = {}
        self.next_card_id = 1
        self.calls = 0


class InMemoryUserRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get_user_by_id(self, db, user_id):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        user = self.store.users.get(user_id)
        return replace(user) if user else None

    async def get_user_by_email(self, db, email):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        for user in self.store.users.values():
            if user.email == email:
                return replace(user)
        return None

    async def list_users_by_ids(self, db, user_ids):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        return [replace(self.store.users[i]) for i in sorted(set(user_ids)) if i in self.store.users]

    async def exists_by_email(self, db, email):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        return any(u.email == email for u in self.store.users.values())

    async def insert_user(self, db, user):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        self.store.users[user.id] = replace(user)
        return replace(user)

    async def update_user(self, db, user):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        self.store.users[user.id] = replace(user)
        return replace(user)

    async def delete_user(self, db, user_id):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        return self.store.users.pop(user_id, None) is not None


class InMemoryCardRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get_card_by_id(self, db, card_id):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        card = self.store.cards.get(card_id)
        return replace(card) if card else None

    async def list_cards_by_ids(self, db, card_ids):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        return [replace(self.store.cards[i]) for i in sorted(set(card_ids)) if i in self.store.cards]

    async def list_cards_by_user_ids(self, db, user_ids):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        return [replace(c) for c in self.store.cards.values() if c.user_id in user_ids]

    async def exists_by_number(self, db, number):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        return any(c.number == number for c in self.store.cards.values())

    async def insert_card(self, db, number, holder, expiration_date, user_id):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        assert user_id in self.store.users, "FK violation"
        card = Card(
            id=self.store.next_card_id,
            number=number,
            holder=holder,
            expiration_date=expiration_date,
            user_id=user_id,
        )
        self.store.next_card_id += 1
        self.store.cards[card.id] = card
        return replace(card)

    async def update_card(self, db, card):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        stored = self.store.cards[card.id]
        self.store.cards[card.id] = replace(card, user_id=stored.user_id)
        return replace(self.store.cards[card.id])

    async def delete_card(self, db, card_id):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        return self.store.cards.pop(card_id, None) is not None

    async def delete_cards_by_user_id(self, db, user_id):  # type: ignore[no-untyped-def]
        self.store.calls += 1
        ids = [c.id for c in self.store.cards.values() if c.user_id == user_id]
        for card_id in ids:
            del self.store.cards[card_id]
        return ids


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis: FakeRedis) -> RecordCache:
    return RecordCache(client=fake_redis, ttl_seconds=3600)  # type: ignore[arg-type]


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def user_service(store: InMemoryStore, cache: RecordCache) -> UserApplicationService:
    return UserApplicationService(
        user_repo=InMemoryUserRepository(store),
        card_repo=InMemoryCardRepository(store),
        cache=cache,
    )


@pytest.fixture
def card_service(store: InMemoryStore, cache: RecordCache) -> CardApplicationService:
    return CardApplicationService(
        card_repo=InMemoryCardRepository(store),
        user_repo=InMemoryUserRepository(store),
        cache=cache,
    )


@pytest.fixture
def seed_user(store: InMemoryStore) -> Callable[..., User]:
    def _seed(user_id: str = "u1", email: str = "a@x.com") -> User:
        user = User(
            id=user_id,
            name="Alice",
            surname="Smith",
            birth_date=date(1990, 1, 1),
            email=email,
        )
        store.users[user_id] = user
        return user

    return _seed


@pytest.fixture
def seed_card(store: InMemoryStore) -> Callable[..., Card]:
    def _seed(user_id: str = "u1", number: str = "1111") -> Card:
        card = Card(
            id=store.next_card_id,
            number=number,
            holder="ALICE SMITH",
            expiration_date=FAR_FUTURE,
            user_id=user_id,
        )
        store.next_card_id += 1
        store.cards[card.id] = card
        return card

    return _seed


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints (lifespan not run)."""
    from src.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
