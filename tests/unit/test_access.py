"""Unit tests for the ownership gate."""

import pytest

from src.us_common.errors import ForbiddenError, UnauthorizedError
from src.us_gateway.auth.access import authorize, ensure_owner, filter_owned, require_caller


class TestAuthorize:
    def test_owner_is_allowed(self) -> None:
        assert authorize("u1", "u1") is True

    def test_other_caller_is_denied(self) -> None:
        assert authorize("u2", "u1") is False

    def test_absent_caller_is_denied(self) -> None:
        assert authorize(None, "u1") is False

    def test_absent_on_both_sides_is_denied(self) -> None:
        assert authorize(None, None) is False


class TestEnsureOwner:
    def test_passes_for_owner(self) -> None:
        ensure_owner("u1", "u1")

    def test_no_identity_is_unauthorized(self) -> None:
        with pytest.raises(UnauthorizedError):
            ensure_owner(None, "u1")

    def test_wrong_identity_is_forbidden(self) -> None:
        with pytest.raises(ForbiddenError):
            ensure_owner("u2", "u1")

    def test_require_caller(self) -> None:
        assert require_caller("u1") == "u1"
        with pytest.raises(UnauthorizedError):
            require_caller(None)


class TestFilterOwned:
    def test_drops_foreign_items(self) -> None:
        items = [("a", "u1"), ("b", "u2"), ("c", "u1")]
        assert filter_owned("u1", items, lambda i: i[1]) == [("a", "u1"), ("c", "u1")]

    def test_no_caller_sees_nothing(self) -> None:
        assert filter_owned(None, [("a", "u1")], lambda i: i[1]) == []
