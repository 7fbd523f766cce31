"""Pydantic request/response schemas for us_user.

UserResponse is the snapshot cached in the "users" namespace (under both the
user id and the email). It embeds the user's cards, which is why every card
mutation has to evict the owner's cached views.
"""

from datetime import date

from pydantic import BaseModel, EmailStr, Field, PastDate, field_validator

from src.us_card.application.schemas import CardResponse
from src.us_card.domain.models import Card
from src.us_user.domain.models import User

_EMAIL_MAX_LEN = 64


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class UserCreateRequest(BaseModel):
    """The user id is not in the body: it is the caller's verified identity."""

    name: str = Field(..., min_length=2, max_length=32)
    surname: str = Field(..., min_length=2, max_length=64)
    birth_date: PastDate
    email: EmailStr

    @field_validator("email")
    @classmethod
    def email_length(cls, v: str | None) -> str | None:
        if v is not None and len(v) > _EMAIL_MAX_LEN:
            raise ValueError(f"Email should be less than {_EMAIL_MAX_LEN} characters")
        return v


class UserUpdateRequest(BaseModel):
    """Partial update: None means "leave unchanged"."""

    name: str | None = Field(None, min_length=2, max_length=32)
    surname: str | None = Field(None, min_length=2, max_length=64)
    birth_date: PastDate | None = None
    email: EmailStr | None = None

    @field_validator("email")
    @classmethod
    def email_length(cls, v: str | None) -> str | None:
        if v is not None and len(v) > _EMAIL_MAX_LEN:
            raise ValueError(f"Email should be less than {_EMAIL_MAX_LEN} characters")
        return v


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    id: str
    name: str
    surname: str
    birth_date: date
    email: str
    cards: list[CardResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, user: User, cards: list[Card]) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            surname=user.surname,
            birth_date=user.birth_date,
            email=user.email,
            cards=[CardResponse.from_domain(c) for c in cards],
        )
