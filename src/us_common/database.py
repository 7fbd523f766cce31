import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DataError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings
from src.us_common.errors import (
    AppError,
    InternalError,
    InvalidValueError,
    StoreUnavailableError,
    UserNotFoundError,
    ValueAlreadyExistsError,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models across modules."""

    pass


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


# Named in alembic/versions/001_create_users.py and 002_create_cards.py
_UNIQUE_FIELDS = {
    "users_pkey": "id",
    "uq_users_email": "email",
    "uq_cards_number": "number",
}
_OWNER_FK = "fk_cards_user_id"


def _constraint_name(exc: IntegrityError) -> str | None:
    """Violated constraint as reported by asyncpg (wrapped by the DBAPI adapter)."""
    for err in (exc.orig, getattr(exc.orig, "__cause__", None)):
        name = getattr(err, "constraint_name", None)
        if name:
            return str(name)
    return None


def _translate_integrity_error(exc: IntegrityError) -> AppError:
    constraint = _constraint_name(exc)
    if constraint in _UNIQUE_FIELDS:
        return ValueAlreadyExistsError(_UNIQUE_FIELDS[constraint])
    if constraint == _OWNER_FK:
        return UserNotFoundError("card owner")
    logger.error("Unmapped integrity violation: constraint=%s err=%s", constraint, exc.orig)
    return InternalError()


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Commit on success, roll back on error.

    Driver-level connection failures become StoreUnavailableError (the session
    is discarded by get_db_session, so no rollback is attempted on a dead
    connection). A constraint violation that slipped past the explicit checks
    is mapped by constraint name: unique → ValueAlreadyExistsError, card owner
    FK → UserNotFoundError. A value the column type cannot hold becomes
    InvalidValueError. Driver messages never reach the client.

    Cache steps belong AFTER this block: if it raises, nothing was committed.
    """
    try:
        yield db
        await db.commit()
    except (OperationalError, InterfaceError) as exc:
        raise StoreUnavailableError() from exc
    except IntegrityError as exc:
        await db.rollback()
        raise _translate_integrity_error(exc) from exc
    except DataError as exc:
        await db.rollback()
        logger.warning("Store rejected a value: %s", exc.orig)
        raise InvalidValueError() from exc
    except Exception:
        await db.rollback()
        raise
