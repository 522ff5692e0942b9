"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts (the credential store).

Pattern: Repository + Data Mapper (same as items/store.py).
AccountStore is the repository; _row_to_account is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Only bcrypt hashes are persisted. register() and update_profile() take the
  raw password, hash it through the injected PasswordHasher, and drop it.

  Emails are stored lower-cased and looked up lower-cased, so uniqueness is
  case-insensitive. The UNIQUE constraint on email backs up the code-level
  check when two registrations race.

  authenticate() always runs bcrypt, against a dummy hash when the email is
  unknown, and raises the same InvalidCredentialsError in every failure case.
  Neither the error nor the response time tells a caller whether the email
  exists [C1].

Layer rule: no imports from api/ or items/.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Account, Role
from auth.passwords import PasswordHasher
from core.database import create_store_engine, is_row_id, now_iso
from core.errors import DuplicateEmailError, InvalidCredentialsError, NotFoundError
from core.validation import (
    CredentialPolicy,
    normalize_email,
    raise_for_errors,
    validate_profile_update,
    validate_registration,
)

logger = logging.getLogger("keeper.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),  # lower-cased
    Column("display_name", String(100), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("role", String(16), nullable=False, server_default=Role.USER.value),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore("sqlite:///keeper.db", PasswordHasher(rounds=12))
        account_id = store.register("ada@example.com", "Ada", "s3cret!")
        account = store.authenticate("ADA@example.com", "s3cret!")
        store.close()
    """

    def __init__(
        self,
        db_url: str,
        hasher: PasswordHasher,
        policy: CredentialPolicy | None = None,
    ) -> None:
        self.hasher = hasher
        self.policy = policy or CredentialPolicy()
        self.engine: Engine = create_store_engine(db_url)
        _metadata.create_all(self.engine)
        # Timing equalization dummy hash [C1]. Computed once here so the first
        # login attempt is not measurably slower than later ones, and with the
        # same work factor as real hashes so both paths cost the same.
        self._dummy_hash: str = hasher.hash("keeper_timing_dummy")

    # ------------------------------------------------------------------
    # Registration and lookup
    # ------------------------------------------------------------------

    def register(self, email: str, display_name: str, raw_password: str, role: Role = Role.USER) -> int:
        """Create an account and return its id.

        Raises ValidationError if any field violates the credential policy,
        DuplicateEmailError if the email is taken (case-insensitive). On
        failure no row is written.
        """
        raise_for_errors(validate_registration(email, display_name, raw_password, self.policy))
        canonical = normalize_email(email)
        if self.find_by_email(canonical) is not None:
            raise DuplicateEmailError()

        password_hash = self.hasher.hash(raw_password)
        now = now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _accounts.insert().values(
                        email=canonical,
                        display_name=display_name.strip(),
                        password_hash=password_hash,
                        role=Role(role).value,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            # A concurrent registration won the race between our check and insert.
            raise DuplicateEmailError() from exc
        account_id = result.inserted_primary_key[0]
        logger.info("Registered account id=%s role=%s", account_id, Role(role).value)
        return account_id

    def find_by_email(self, email: str) -> Account | None:
        """Case-insensitive lookup. Returns None if not found."""
        canonical = normalize_email(email)
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(func.lower(_accounts.c.email) == canonical)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key. Returns None if not found."""
        if not is_row_id(account_id):
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def has_accounts(self) -> bool:
        with self.engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(_accounts)).scalar()
        return (count or 0) > 0

    def list_accounts(self) -> list[Account]:
        """Return all accounts ordered by id. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_accounts.select().order_by(_accounts.c.id)).fetchall()
        return [_row_to_account(r) for r in rows]

    def count_admins(self) -> int:
        with self.engine.connect() as conn:
            count = conn.execute(
                select(func.count()).select_from(_accounts).where(_accounts.c.role == Role.ADMIN.value)
            ).scalar()
        return count or 0

    # ------------------------------------------------------------------
    # Authentication (constant-time) [C1]
    # ------------------------------------------------------------------

    def authenticate(self, email: str, raw_password: str) -> Account:
        """Return the account whose credentials match, or raise InvalidCredentialsError.

        Unknown email and wrong password raise the identical error. bcrypt
        runs on both paths -- do NOT return early before verifying.
        """
        account = self.find_by_email(email) if isinstance(email, str) else None
        if account is None:
            self.hasher.verify(raw_password or "", self._dummy_hash)
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError()
        if not self.hasher.verify(raw_password or "", account.password_hash):
            logger.info("Login failed: wrong password for account id=%s", account.id)
            raise InvalidCredentialsError()

        if self.hasher.needs_rehash(account.password_hash):
            # Work factor changed since this hash was made; upgrade it while
            # the raw password is at hand.
            self._write(account.id, password_hash=self.hasher.hash(raw_password))
            logger.info("Rehashed password for account id=%s", account.id)
        return account

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_profile(
        self,
        account_id: int,
        display_name: str | None = None,
        raw_password: str | None = None,
    ) -> Account:
        """Apply a self-profile edit and return the updated account.

        Raises ValidationError for bad input, NotFoundError if the account is gone.
        """
        raise_for_errors(validate_profile_update(display_name, raw_password, self.policy))
        fields: dict = {}
        if display_name is not None:
            fields["display_name"] = display_name.strip()
        if raw_password is not None:
            fields["password_hash"] = self.hasher.hash(raw_password)
        if not self._write(account_id, **fields):
            raise NotFoundError("Account not found.")
        return self.get_by_id(account_id)

    def set_role(self, account_id: int, role: Role) -> Account:
        """Administrative role change. Raises NotFoundError if the account is gone."""
        if not self._write(account_id, role=Role(role).value):
            raise NotFoundError("Account not found.")
        logger.info("Account id=%s role set to %s", account_id, Role(role).value)
        return self.get_by_id(account_id)

    def _write(self, account_id: int, **fields) -> bool:
        if not is_row_id(account_id):
            return False
        fields["updated_at"] = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        display_name=row.display_name,
        password_hash=row.password_hash,
        role=Role(row.role),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
