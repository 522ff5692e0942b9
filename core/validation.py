"""
core/validation.py -- Explicit input validation, one function per input shape.

Each validate_* function returns a list of FieldError (empty means valid)
instead of raising on the first problem, so callers can report every bad
field at once. They are plain functions with no HTTP or database coupling:
stores call them before writing, the CLI calls them before prompting again,
and tests call them directly.

raise_for_errors() is the bridge to the error taxonomy -- it turns a
non-empty list into a ValidationError.

Layer rule: core/ is the kernel. No imports from api/, auth/, or items/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.errors import FieldError, ValidationError

# Deliberately loose: one @, no whitespace, a dot in the domain part.
# Deliverability is not checked here.
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

EMAIL_MAX_LENGTH = 255
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000


@dataclass(frozen=True)
class CredentialPolicy:
    """Length bounds for account input. Built from Settings at startup."""

    display_name_min_length: int = 2
    display_name_max_length: int = 100
    password_min_length: int = 6
    password_max_length: int = 72

    @classmethod
    def from_settings(cls, settings) -> CredentialPolicy:
        return cls(
            display_name_min_length=settings.display_name_min_length,
            display_name_max_length=settings.display_name_max_length,
            password_min_length=settings.password_min_length,
            password_max_length=settings.password_max_length,
        )


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup (case-insensitive uniqueness)."""
    return email.strip().lower()


def _check_email(email, errors: list[FieldError]) -> None:
    if not isinstance(email, str) or not email.strip():
        errors.append(FieldError("email", "Email is required."))
    elif len(email.strip()) > EMAIL_MAX_LENGTH:
        errors.append(FieldError("email", f"Email must be at most {EMAIL_MAX_LENGTH} characters."))
    elif not _EMAIL_RE.match(email.strip()):
        errors.append(FieldError("email", "Email is not a valid address."))


def _check_display_name(display_name, policy: CredentialPolicy, errors: list[FieldError]) -> None:
    if not isinstance(display_name, str) or not display_name.strip():
        errors.append(FieldError("display_name", "Display name is required."))
        return
    length = len(display_name.strip())
    if length < policy.display_name_min_length:
        errors.append(
            FieldError("display_name", f"Display name must be at least {policy.display_name_min_length} characters.")
        )
    elif length > policy.display_name_max_length:
        errors.append(
            FieldError("display_name", f"Display name must be at most {policy.display_name_max_length} characters.")
        )


def _check_password(password, policy: CredentialPolicy, errors: list[FieldError]) -> None:
    # Passwords are not stripped: leading/trailing spaces are part of the secret.
    if not isinstance(password, str) or not password:
        errors.append(FieldError("password", "Password is required."))
    elif len(password) < policy.password_min_length:
        errors.append(FieldError("password", f"Password must be at least {policy.password_min_length} characters."))
    elif len(password) > policy.password_max_length:
        errors.append(FieldError("password", f"Password must be at most {policy.password_max_length} characters."))


def validate_registration(
    email: str, display_name: str, password: str, policy: CredentialPolicy | None = None
) -> list[FieldError]:
    """Validate a registration payload. Returns every field error found."""
    policy = policy or CredentialPolicy()
    errors: list[FieldError] = []
    _check_email(email, errors)
    _check_display_name(display_name, policy, errors)
    _check_password(password, policy, errors)
    return errors


def validate_login(email: str, password: str) -> list[FieldError]:
    """Shape-only check for login input.

    Length policy is NOT applied here: a login with a too-short password is
    simply wrong credentials, and must fail the same way as any other.
    """
    errors: list[FieldError] = []
    if not isinstance(email, str) or not email.strip():
        errors.append(FieldError("email", "Email is required."))
    if not isinstance(password, str) or not password:
        errors.append(FieldError("password", "Password is required."))
    return errors


def validate_profile_update(
    display_name: str | None, password: str | None, policy: CredentialPolicy | None = None
) -> list[FieldError]:
    """Validate a self-profile edit. None means "leave unchanged"; at least one field is required."""
    policy = policy or CredentialPolicy()
    errors: list[FieldError] = []
    if display_name is None and password is None:
        errors.append(FieldError("body", "No fields to update."))
        return errors
    if display_name is not None:
        _check_display_name(display_name, policy, errors)
    if password is not None:
        _check_password(password, policy, errors)
    return errors


def validate_item(title: str, description: str | None) -> list[FieldError]:
    """Validate the domain fields of an owned item."""
    errors: list[FieldError] = []
    if not isinstance(title, str) or not title.strip():
        errors.append(FieldError("title", "Title is required."))
    elif len(title.strip()) > TITLE_MAX_LENGTH:
        errors.append(FieldError("title", f"Title must be at most {TITLE_MAX_LENGTH} characters."))
    if description is not None:
        if not isinstance(description, str):
            errors.append(FieldError("description", "Description must be text."))
        elif len(description) > DESCRIPTION_MAX_LENGTH:
            errors.append(
                FieldError("description", f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters.")
            )
    return errors


def raise_for_errors(errors: list[FieldError]) -> None:
    if errors:
        raise ValidationError(errors)
