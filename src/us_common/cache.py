"""Record cache: namespaced read-through / write-through front for Redis.

Two namespaces, one per record kind:
  - users: keyed by user id AND by email, value = UserResponse (cards embedded).
    The two indexes live under disjoint keys ("id:{id}", "email:{email}"), so
    a user id that looks like an email never resolves to another user.
    Always build them with user_id_key() / user_email_key().
  - cards: keyed by card id,               value = CardResponse

Redis key layout: "{namespace}::{key}", every entry written with the same TTL.

Coherence contract with the application services:
  - Write-through: DB commit first, then cache put/evict. Never the reverse.
  - Read: cache-aside (check cache → DB on miss → populate canonical key).
  - Redis is advisory. Any RedisError is logged and swallowed here:
    get() degrades to a miss, put()/evict() to a no-op. Callers never see it.
"""

import logging
from enum import Enum
from typing import TypeVar

import redis.asyncio as aioredis
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from config.settings import settings
from src.us_common.redis_client import get_redis

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class CacheNamespace(str, Enum):
    USERS = "users"
    CARDS = "cards"


def cache_key(namespace: CacheNamespace, key: object) -> str:
    return f"{namespace.value}::{key}"


def user_id_key(user_id: str) -> str:
    return f"id:{user_id}"


def user_email_key(email: str) -> str:
    return f"email:{email}"


class RecordCache:
    """Stateless apart from the client handle: instantiate once, reuse across requests."""

    def __init__(
        self,
        client: aioredis.Redis | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        self._client = client
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.CACHE_TTL_SECONDS

    async def _redis(self) -> aioredis.Redis:
        if self._client is not None:
            return self._client
        return await get_redis()

    async def get(
        self, namespace: CacheNamespace, key: object, schema: type[ModelT]
    ) -> ModelT | None:
        """Return the cached snapshot, or None on miss / backend failure."""
        full_key = cache_key(namespace, key)
        try:
            raw = await (await self._redis()).get(full_key)
        except RedisError as exc:
            logger.warning("Cache get failed, falling back to store: key=%s err=%s", full_key, exc)
            return None
        if raw is None:
            return None
        try:
            return schema.model_validate_json(raw)
        except ValidationError:
            # Snapshot from an older schema: drop it and let the store repopulate
            logger.warning("Discarding undecodable cache entry: key=%s", full_key)
            await self.evict(namespace, key)
            return None

    async def put(self, namespace: CacheNamespace, key: object, value: BaseModel) -> None:
        """Overwrite unconditionally with the namespace TTL."""
        full_key = cache_key(namespace, key)
        try:
            await (await self._redis()).set(full_key, value.model_dump_json(), ex=self._ttl)
        except RedisError as exc:
            logger.warning("Cache put failed: key=%s err=%s", full_key, exc)
            return
        logger.debug("Cache put: key=%s", full_key)

    async def evict(self, namespace: CacheNamespace, *keys: object) -> None:
        """Delete the given keys; absent keys are ignored."""
        if not keys:
            return
        full_keys = [cache_key(namespace, k) for k in keys]
        try:
            await (await self._redis()).delete(*full_keys)
        except RedisError as exc:
            logger.warning("Cache evict failed: keys=%s err=%s", full_keys, exc)
            return
        logger.debug("Cache evict: keys=%s", full_keys)

    async def ping(self) -> bool:
        try:
            return bool(await (await self._redis()).ping())
        except RedisError as exc:
            logger.warning("Cache backend unreachable, running store-only: %s", exc)
            return False
