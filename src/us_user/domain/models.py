"""Domain models for us_user: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class User:
    id: str                          # assigned by the identity service, not generated here
    name: str
    surname: str
    birth_date: date
    email: str                       # UNIQUE across users
    created_at: datetime | None = None
    updated_at: datetime | None = None
