"""SQLAlchemy ORM model for the cards table.

Table is created by Alembic migration: alembic/versions/002_create_cards.py
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import date, datetime

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.us_common.database import Base


class CardORM(Base):
    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    holder: Mapped[str] = mapped_column(String(32), nullable=False)
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Owner never changes after insert; ON DELETE CASCADE is the schema backstop
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
