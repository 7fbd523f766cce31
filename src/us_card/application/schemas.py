"""Pydantic request/response schemas for us_card.

CardResponse is also the cached snapshot in the "cards" namespace and is
embedded in UserResponse.cards.
"""

from datetime import date
from typing import Annotated

from pydantic import BaseModel, Field, FutureDate

from src.us_card.domain.models import Card

CARD_ID_MAX = 2**63 - 1

CardId = Annotated[int, Field(ge=1, le=CARD_ID_MAX)]


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CardCreateRequest(BaseModel):
    number: str = Field(..., min_length=1, max_length=32, pattern=r"\S")
    holder: str = Field(..., min_length=1, max_length=32, pattern=r"\S")
    expiration_date: FutureDate
    user_id: str = Field(..., min_length=1, max_length=64)


class CardUpdateRequest(BaseModel):
    """Partial update. The owner is not a field: cards cannot change hands."""

    number: str | None = Field(None, min_length=1, max_length=32, pattern=r"\S")
    holder: str | None = Field(None, min_length=1, max_length=32, pattern=r"\S")
    expiration_date: FutureDate | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CardResponse(BaseModel):
    id: int
    number: str
    holder: str
    expiration_date: date
    user_id: str

    @classmethod
    def from_domain(cls, card: Card) -> "CardResponse":
        return cls(
            id=card.id,
            number=card.number,
            holder=card.holder,
            expiration_date=card.expiration_date,
            user_id=card.user_id,
        )
