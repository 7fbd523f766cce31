"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: User
  3xxx: Card
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class UnauthorizedError(AppError):
    """No verified identity on the call."""

    def __init__(self) -> None:
        super().__init__(1001, "Authentication required", 401)


class ForbiddenError(AppError):
    """Verified identity does not own the target record."""

    def __init__(self) -> None:
        super().__init__(1002, "Access denied", 403)


class InvalidPublicKeyError(AppError):
    """JWT public key is missing or unparseable: fatal at startup."""

    def __init__(self, detail: str) -> None:
        super().__init__(1003, f"Invalid JWT public key: {detail}", 500)


# --- 2xxx: User ---

class UserNotFoundError(AppError):
    def __init__(self, key: str) -> None:
        super().__init__(2001, f"User not found: {key}", 404)


class ValueAlreadyExistsError(AppError):
    def __init__(self, field: str, value: str | None = None) -> None:
        if value is None:
            message = f"Field '{field}' value already exists"
        else:
            message = f"Field '{field}' with value '{value}' already exists"
        super().__init__(2002, message, 409)


class UserAlreadyExistsError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2003, f"User already exists: {user_id}", 409)


# --- 3xxx: Card ---

class CardNotFoundError(AppError):
    def __init__(self, card_id: int) -> None:
        super().__init__(3001, f"Card not found: {card_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class StoreUnavailableError(AppError):
    def __init__(self, detail: str = "Database is unavailable") -> None:
        super().__init__(9003, detail, 503)


class InvalidValueError(AppError):
    """A value passed validation but does not fit the column type."""

    def __init__(self, detail: str = "Value out of range for stored field") -> None:
        super().__init__(9004, detail, 422)
