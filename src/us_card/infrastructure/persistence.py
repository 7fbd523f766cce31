"""CardRepository: concrete implementation of CardRepositoryProtocol.

Raw text() SQL. user_id is written once by INSERT and never appears in the
UPDATE statement: a card cannot be moved to another owner.

Transaction ownership: the CALLER wraps calls in `async with transaction(db)`.
"""

from datetime import date

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.us_card.domain.models import Card
from src.us_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_CARD_COLUMNS = "id, number, holder, expiration_date, user_id, created_at, updated_at"

_GET_CARD_SQL = text(f"""
    SELECT {_CARD_COLUMNS}
    FROM cards
    WHERE id = :card_id
""")

_LIST_CARDS_BY_IDS_SQL = text(f"""
    SELECT {_CARD_COLUMNS}
    FROM cards
    WHERE id IN :card_ids
    ORDER BY id
""").bindparams(bindparam("card_ids", expanding=True))

_LIST_CARDS_BY_USER_IDS_SQL = text(f"""
    SELECT {_CARD_COLUMNS}
    FROM cards
    WHERE user_id IN :user_ids
    ORDER BY id
""").bindparams(bindparam("user_ids", expanding=True))

_EXISTS_BY_NUMBER_SQL = text("""
    SELECT EXISTS (SELECT 1 FROM cards WHERE number = :number)
""")

_INSERT_CARD_SQL = text(f"""
    INSERT INTO cards (number, holder, expiration_date, user_id)
    VALUES (:number, :holder, :expiration_date, :user_id)
    RETURNING {_CARD_COLUMNS}
""")

_UPDATE_CARD_SQL = text(f"""
    UPDATE cards
    SET number = :number,
        holder = :holder,
        expiration_date = :expiration_date
    WHERE id = :id
    RETURNING {_CARD_COLUMNS}
""")

_DELETE_CARD_SQL = text("""
    DELETE FROM cards
    WHERE id = :card_id
    RETURNING id
""")

_DELETE_CARDS_BY_USER_SQL = text("""
    DELETE FROM cards
    WHERE user_id = :user_id
    RETURNING id
""")


def _row_to_card(row: object) -> Card:
    return Card(
        id=row.id,  # type: ignore[attr-defined]
        number=row.number,  # type: ignore[attr-defined]
        holder=row.holder,  # type: ignore[attr-defined]
        expiration_date=row.expiration_date,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class CardRepository:
    """Concrete repository: one statement per call, caller owns the transaction."""

    async def get_card_by_id(self, db: AsyncSession, card_id: int) -> Card | None:
        result = await db.execute(_GET_CARD_SQL, {"card_id": card_id})
        row = result.fetchone()
        return _row_to_card(row) if row else None

    async def list_cards_by_ids(
        self, db: AsyncSession, card_ids: list[int]
    ) -> list[Card]:
        if not card_ids:
            return []
        result = await db.execute(_LIST_CARDS_BY_IDS_SQL, {"card_ids": list(card_ids)})
        return [_row_to_card(row) for row in result.fetchall()]

    async def list_cards_by_user_ids(
        self, db: AsyncSession, user_ids: list[str]
    ) -> list[Card]:
        if not user_ids:
            return []
        result = await db.execute(
            _LIST_CARDS_BY_USER_IDS_SQL, {"user_ids": list(user_ids)}
        )
        return [_row_to_card(row) for row in result.fetchall()]

    async def exists_by_number(self, db: AsyncSession, number: str) -> bool:
        result = await db.execute(_EXISTS_BY_NUMBER_SQL, {"number": number})
        return bool(result.scalar())

    async def insert_card(
        self,
        db: AsyncSession,
        number: str,
        holder: str,
        expiration_date: date,
        user_id: str,
    ) -> Card:
        result = await db.execute(
            _INSERT_CARD_SQL,
            {
                "number": number,
                "holder": holder,
                "expiration_date": expiration_date,
                "user_id": user_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Card insert returned no rows")
        return _row_to_card(row)

    async def update_card(self, db: AsyncSession, card: Card) -> Card:
        result = await db.execute(
            _UPDATE_CARD_SQL,
            {
                "id": card.id,
                "number": card.number,
                "holder": card.holder,
                "expiration_date": card.expiration_date,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Card update matched no rows: {card.id}")
        return _row_to_card(row)

    async def delete_card(self, db: AsyncSession, card_id: int) -> bool:
        result = await db.execute(_DELETE_CARD_SQL, {"card_id": card_id})
        return result.fetchone() is not None

    async def delete_cards_by_user_id(
        self, db: AsyncSession, user_id: str
    ) -> list[int]:
        """Delete every card owned by user_id; returns the deleted ids."""
        result = await db.execute(_DELETE_CARDS_BY_USER_SQL, {"user_id": user_id})
        return [row.id for row in result.fetchall()]
