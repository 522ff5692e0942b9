"""
core/errors.py -- Typed failures shared by every layer.

Each error carries the HTTP status it maps to and a stable machine-readable
code. Lower layers (auth/, items/) raise these; api/main.py renders them in
the shared ErrorResponse envelope. Nothing here imports FastAPI, so stores
and the access guard stay testable without an HTTP stack.

Token failures (InvalidTokenError, ExpiredTokenError) are kept distinct for
logging. The access guard collapses both into UnauthorizedError before
anything reaches a client, so a caller cannot tell a forged token from a
stale one.

Layer rule: core/ is the kernel. No imports from api/, auth/, or items/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """One field-level validation failure."""

    field: str
    message: str


class KeeperError(Exception):
    """Base class for every expected failure in Keeper."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(KeeperError):
    """Malformed input. Carries every field-level failure, not just the first."""

    status_code = 400
    code = "validation_error"
    message = "Request validation failed."

    def __init__(self, errors: list[FieldError], message: str | None = None) -> None:
        self.errors = list(errors)
        super().__init__(message)


class InvalidInputError(KeeperError):
    status_code = 400
    code = "invalid_input"
    message = "Invalid input."


class MalformedHashError(KeeperError):
    """A stored password hash is not a structurally valid bcrypt string.

    Indicates corrupted persisted state, not bad user input, hence 500.
    """

    status_code = 500
    code = "internal_error"
    message = "Stored credential is malformed."


class DuplicateEmailError(KeeperError):
    status_code = 409
    code = "conflict"
    message = "An account with that email already exists."


class InvalidCredentialsError(KeeperError):
    """Login failure. One message for unknown email and wrong password alike."""

    status_code = 401
    code = "bad_credentials"
    message = "Invalid email or password."


class InvalidTokenError(KeeperError):
    status_code = 401
    code = "unauthorized"
    message = "Invalid token."


class ExpiredTokenError(KeeperError):
    status_code = 401
    code = "unauthorized"
    message = "Token has expired."


class UnauthorizedError(KeeperError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class ForbiddenError(KeeperError):
    status_code = 403
    code = "forbidden"
    message = "You do not have permission to perform this action."


class NotFoundError(KeeperError):
    status_code = 404
    code = "not_found"
    message = "Resource not found."


class LastAdminError(KeeperError):
    """A role change that would leave no ADMIN account."""

    status_code = 400
    code = "last_admin"
    message = "Cannot demote the last ADMIN account."
