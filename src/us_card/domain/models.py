"""Domain models for us_card: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class Card:
    id: int                          # BIGSERIAL, assigned by the store
    number: str                      # UNIQUE across cards
    holder: str
    expiration_date: date
    user_id: str                     # owner; immutable after insert
    created_at: datetime | None = None
    updated_at: datetime | None = None
