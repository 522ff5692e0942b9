"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container). Mirrors items/models.py --
dataclasses own domain shape; stores and routes do the work. The one piece
of logic allowed here is the role hierarchy, so that every role comparison
in the codebase goes through role_satisfies() / can_bypass_ownership()
instead of ad-hoc string checks.

Layer rule: no imports from api/ or items/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


def role_satisfies(actual: Role, required: Role) -> bool:
    """Return True if `actual` meets a `required` role.

    ADMIN satisfies a USER requirement; USER never satisfies ADMIN.
    """
    if actual == required:
        return True
    return actual == Role.ADMIN and required == Role.USER


def can_bypass_ownership(role: Role) -> bool:
    """ADMIN may modify resources it does not own. Nobody else may."""
    return role == Role.ADMIN


@dataclass
class Account:
    """A registered identity.

    email is stored lower-cased; uniqueness is case-insensitive.
    password_hash is excluded from repr so an Account can be logged safely.
    id is None before the record is written to the database.
    """

    email: str
    display_name: str
    password_hash: str = field(repr=False)
    role: Role = Role.USER
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request by the access guard.

    Built from verified token claims only -- no store lookup.
    """

    account_id: int
    email: str
    role: Role
