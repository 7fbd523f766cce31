"""UserRepository: concrete implementation of UserRepositoryProtocol.

All queries use raw text() SQL; db_models.UserORM documents the mapping.
Batch lookups use an expanding bind parameter (IN :user_ids).

Transaction ownership: the CALLER (application service) wraps calls in
`async with transaction(db)`; nothing here commits.
"""

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_common.errors import InternalError
from src.us_user.domain.models import User

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_USER_COLUMNS = "id, name, surname, birth_date, email, created_at, updated_at"

_GET_USER_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE id = :user_id
""")

_GET_USER_BY_EMAIL_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE email = :email
""")

_LIST_USERS_BY_IDS_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE id IN :user_ids
    ORDER BY id
""").bindparams(bindparam("user_ids", expanding=True))

_EXISTS_BY_EMAIL_SQL = text("""
    SELECT EXISTS (SELECT 1 FROM users WHERE email = :email)
""")

_INSERT_USER_SQL = text(f"""
    INSERT INTO users (id, name, surname, birth_date, email)
    VALUES (:id, :name, :surname, :birth_date, :email)
    RETURNING {_USER_COLUMNS}
""")

_UPDATE_USER_SQL = text(f"""
    UPDATE users
    SET name = :name,
        surname = :surname,
        birth_date = :birth_date,
        email = :email
    WHERE id = :id
    RETURNING {_USER_COLUMNS}
""")

_DELETE_USER_SQL = text("""
    DELETE FROM users
    WHERE id = :user_id
    RETURNING id
""")


def _row_to_user(row: object) -> User:
    return User(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        surname=row.surname,  # type: ignore[attr-defined]
        birth_date=row.birth_date,  # type: ignore[attr-defined]
        email=row.email,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _user_params(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "name": user.name,
        "surname": user.surname,
        "birth_date": user.birth_date,
        "email": user.email,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class UserRepository:
    """Concrete repository: one statement per call, caller owns the transaction."""

    async def get_user_by_id(self, db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(_GET_USER_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def get_user_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(_GET_USER_BY_EMAIL_SQL, {"email": email})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def list_users_by_ids(
        self, db: AsyncSession, user_ids: list[str]
    ) -> list[User]:
        if not user_ids:
            return []
        result = await db.execute(_LIST_USERS_BY_IDS_SQL, {"user_ids": list(user_ids)})
        return [_row_to_user(row) for row in result.fetchall()]

    async def exists_by_email(self, db: AsyncSession, email: str) -> bool:
        result = await db.execute(_EXISTS_BY_EMAIL_SQL, {"email": email})
        return bool(result.scalar())

    async def insert_user(self, db: AsyncSession, user: User) -> User:
        result = await db.execute(_INSERT_USER_SQL, _user_params(user))
        row = result.fetchone()
        if row is None:
            raise InternalError("User insert returned no rows")
        return _row_to_user(row)

    async def update_user(self, db: AsyncSession, user: User) -> User:
        result = await db.execute(_UPDATE_USER_SQL, _user_params(user))
        row = result.fetchone()
        if row is None:
            raise InternalError(f"User update matched no rows: {user.id}")
        return _row_to_user(row)

    async def delete_user(self, db: AsyncSession, user_id: str) -> bool:
        result = await db.execute(_DELETE_USER_SQL, {"user_id": user_id})
        return result.fetchone() is not None
