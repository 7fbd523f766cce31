"""SQLAlchemy ORM model for the users table.

Table is created by Alembic migration: alembic/versions/001_create_users.py
No new migration needed: this file is a pure Python mapping.
"""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, String, text
from sqlalchemy.orm import Mapped, mapped_column

from src.us_common.database import Base


class UserORM(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(32), nullable=False)
    surname: Mapped[str] = mapped_column(String(64), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    email: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
