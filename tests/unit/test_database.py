"""Tests for us_common.database.transaction (commit / rollback / error mapping)."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import DataError, IntegrityError, InterfaceError, OperationalError

from src.us_common.database import transaction
from src.us_common.errors import (
    InternalError,
    InvalidValueError,
    StoreUnavailableError,
    UserNotFoundError,
    ValueAlreadyExistsError,
)


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


async def test_commits_on_success(db: AsyncMock) -> None:
    async with transaction(db) as session:
        assert session is db
    db.commit.assert_awaited_once()
    db.rollback.assert_not_awaited()


async def test_app_error_rolls_back_and_propagates(db: AsyncMock) -> None:
    with pytest.raises(UserNotFoundError):
        async with transaction(db):
            raise UserNotFoundError("u1")
    db.commit.assert_not_awaited()
    db.rollback.assert_awaited_once()


@pytest.mark.parametrize("exc_type", [OperationalError, InterfaceError])
async def test_connection_failure_is_store_unavailable(db: AsyncMock, exc_type) -> None:
    with pytest.raises(StoreUnavailableError):
        async with transaction(db):
            raise exc_type("SELECT 1", {}, Exception("connection refused"))
    db.rollback.assert_not_awaited()


async def test_failed_commit_is_store_unavailable(db: AsyncMock) -> None:
    db.commit.side_effect = OperationalError("COMMIT", {}, Exception("server closed"))
    with pytest.raises(StoreUnavailableError):
        async with transaction(db):
            pass


class _PgError(Exception):
    """Stand-in for an asyncpg error carrying the violated constraint."""

    def __init__(self, message: str, constraint_name: str | None = None) -> None:
        super().__init__(message)
        self.constraint_name = constraint_name


def _integrity(constraint: str | None) -> IntegrityError:
    return IntegrityError(
        "INSERT", {}, _PgError(f'violates constraint "{constraint}" DETAIL secret', constraint)
    )


class TestIntegrityMapping:
    @pytest.mark.parametrize(
        "constraint,field",
        [("uq_users_email", "email"), ("uq_cards_number", "number"), ("users_pkey", "id")],
    )
    async def test_unique_violation_names_field(
        self, db: AsyncMock, constraint: str, field: str
    ) -> None:
        with pytest.raises(ValueAlreadyExistsError) as exc_info:
            async with transaction(db):
                raise _integrity(constraint)
        assert exc_info.value.message == f"Field '{field}' value already exists"
        assert "secret" not in exc_info.value.message
        db.rollback.assert_awaited_once()

    async def test_owner_fk_violation_is_not_found(self, db: AsyncMock) -> None:
        """Card insert racing the owner's delete."""
        with pytest.raises(UserNotFoundError):
            async with transaction(db):
                raise _integrity("fk_cards_user_id")

    async def test_constraint_read_from_wrapped_driver_error(self, db: AsyncMock) -> None:
        adapted = Exception("adapter error")
        adapted.__cause__ = _PgError("driver error", "uq_cards_number")

        with pytest.raises(ValueAlreadyExistsError) as exc_info:
            async with transaction(db):
                raise IntegrityError("INSERT", {}, adapted)
        assert "'number'" in exc_info.value.message

    async def test_unknown_constraint_is_internal_without_driver_text(self, db: AsyncMock) -> None:
        with pytest.raises(InternalError) as exc_info:
            async with transaction(db):
                raise _integrity(None)
        assert "secret" not in exc_info.value.message


async def test_out_of_range_value_is_client_error(db: AsyncMock) -> None:
    with pytest.raises(InvalidValueError) as exc_info:
        async with transaction(db):
            raise DataError("SELECT", {}, Exception("value out of int64 range"))
    assert exc_info.value.http_status == 422
    assert "int64" not in exc_info.value.message
    db.rollback.assert_awaited_once()
