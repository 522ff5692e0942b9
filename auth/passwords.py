"""
auth/passwords.py -- bcrypt password hashing.

Security design decisions:
  bcrypt is the right choice for low-entropy secrets (passwords) because its
  cost factor makes brute-force expensive. The cost is configuration
  (BCRYPT_ROUNDS), so it can be raised as hardware gets faster and lowered
  in tests.

  bcrypt is used directly rather than through passlib. passlib's internal
  wrap-bug detection builds a password longer than 72 bytes, which bcrypt
  4.x+ rejects with an explicit error.

  Passwords longer than 72 bytes are truncated before hashing (bcrypt only
  reads the first 72 bytes anyway, and newer releases raise instead of
  truncating silently). The credential policy caps passwords at 72
  characters, but multi-byte characters can still exceed 72 bytes.

Layer rule: no imports from api/ or items/.
"""

from __future__ import annotations

import re

import bcrypt

from core.errors import InvalidInputError, MalformedHashError

_BCRYPT_MAX_BYTES = 72

# $2a$ / $2b$ / $2y$, two-digit cost, 22 chars of salt + 31 chars of digest.
_BCRYPT_HASH_RE = re.compile(r"^\$2[aby]\$(\d{2})\$[./A-Za-z0-9]{53}$")


def _encode(raw_password: str) -> bytes:
    return raw_password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """One-way salted hashing and verification.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("s3cret!")
        hasher.verify("s3cret!", stored)  # True
    """

    def __init__(self, rounds: int = 12) -> None:
        if rounds < 4 or rounds > 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds

    def hash(self, raw_password: str) -> str:
        """Return a bcrypt hash with a fresh random salt.

        Two calls with the same input return different strings.
        Raises InvalidInputError for an empty password.
        """
        if not raw_password:
            raise InvalidInputError("Password must not be empty.")
        return bcrypt.hashpw(_encode(raw_password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, raw_password: str, hashed: str) -> bool:
        """Return True if the password matches the hash, False otherwise.

        Never raises for a wrong password. Raises MalformedHashError only when
        `hashed` is not a structurally valid bcrypt string -- that points at
        corrupted storage, which callers must not mistake for a bad login.
        """
        if not isinstance(hashed, str) or not _BCRYPT_HASH_RE.match(hashed):
            raise MalformedHashError()
        if not raw_password:
            return False
        try:
            return bcrypt.checkpw(_encode(raw_password), hashed.encode("utf-8"))
        except ValueError as exc:
            # Passes the regex but bcrypt still refuses it (e.g. cost "99").
            raise MalformedHashError() from exc

    def needs_rehash(self, hashed: str) -> bool:
        """True when a stored hash was made with a different work factor than the current one."""
        match = _BCRYPT_HASH_RE.match(hashed or "")
        if match is None:
            raise MalformedHashError()
        return int(match.group(1)) != self.rounds
