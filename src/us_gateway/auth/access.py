"""Ownership gate: strict self-ownership, no roles, no delegation.

The caller id is passed explicitly from the boundary layer; there is no
ambient security context. Card operations must be checked against the
card's OWNER id, never the card id.
"""

from collections.abc import Callable, Iterable
from typing import TypeVar

from src.us_common.errors import ForbiddenError, UnauthorizedError

T = TypeVar("T")


def authorize(caller_id: str | None, owner_id: str | None) -> bool:
    """Allow iff a caller is present and is the owner."""
    return caller_id is not None and owner_id is not None and caller_id == owner_id


def require_caller(caller_id: str | None) -> str:
    if caller_id is None:
        raise UnauthorizedError()
    return caller_id


def ensure_owner(caller_id: str | None, owner_id: str) -> None:
    """Raise UnauthorizedError (no identity) or ForbiddenError (not the owner)."""
    require_caller(caller_id)
    if not authorize(caller_id, owner_id):
        raise ForbiddenError()


def filter_owned(
    caller_id: str | None, items: Iterable[T], owner_of: Callable[[T], str]
) -> list[T]:
    """Batch policy: silently drop items the caller does not own."""
    return [item for item in items if authorize(caller_id, owner_of(item))]
