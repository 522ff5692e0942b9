"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  JWT: python-jose with an HMAC algorithm (HS256 by default). Tokens carry
       the account id (as the `sub` claim), email, role, issued-at and expiry.
       They are stateless: nothing is stored server-side, so a token stays
       valid until `exp` passes (no revocation list).

  SigningKey: the secret and algorithm are bundled into one immutable value,
       built once at startup from Settings and injected into both TokenIssuer
       and TokenVerifier. There is no module-level key, so tests can hand each
       component an ephemeral key. Rotating the key invalidates every
       outstanding token.

  Expiry: checked here against an injectable clock rather than by jose, so a
       token is expired at exactly `now >= exp` and tests can time-travel.

  Verification raises typed errors (InvalidTokenError / ExpiredTokenError).
       The access guard collapses both to 401 -- the distinction exists for
       logging only.

Layer rule: no imports from api/ or items/.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from jose import JWTError, jwt

from auth.models import Role
from core.config import SUPPORTED_JWT_ALGORITHMS
from core.errors import ExpiredTokenError, InvalidTokenError

Clock = Callable[[], float]

# header.payload.signature, base64url segments. Anything else is rejected
# before jose touches it.
_JWS_SHAPE_RE = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class SigningKey:
    """Process-wide signing secret shared by issuer and verifier. Read-only."""

    secret: str = field(repr=False)
    algorithm: str = "HS256"

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("Signing secret must not be empty.")
        if self.algorithm not in SUPPORTED_JWT_ALGORITHMS:
            raise ValueError(f"Unsupported signing algorithm: {self.algorithm!r}")


@dataclass(frozen=True)
class IssuedToken:
    token: str
    issued_at: int
    expires_at: int

    @property
    def expires_in(self) -> int:
        return self.expires_at - self.issued_at


@dataclass(frozen=True)
class TokenClaims:
    """Claims extracted from a verified token, unmodified."""

    account_id: int
    email: str
    role: Role
    issued_at: int
    expires_at: int


class TokenIssuer:
    """Creates signed, time-bounded identity tokens.

    Usage:
        issuer = TokenIssuer(SigningKey(settings.secret_key), ttl_seconds=3600)
        issued = issuer.issue(account.id, account.email, account.role)
    """

    def __init__(self, key: SigningKey, ttl_seconds: int = 3600, clock: Clock = time.time) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Token TTL must be positive.")
        self._key = key
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, account_id: int, email: str, role: Role) -> IssuedToken:
        now = int(self._clock())
        expires_at = now + self.ttl_seconds
        # Fixed claim order so the encoded payload is deterministic.
        payload = {
            "sub": str(account_id),
            "email": email,
            "role": Role(role).value,
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._key.secret, algorithm=self._key.algorithm)
        return IssuedToken(token=token, issued_at=now, expires_at=expires_at)


class TokenVerifier:
    """Validates a token's structure, signature and expiry; returns its claims."""

    def __init__(self, key: SigningKey, clock: Clock = time.time) -> None:
        self._key = key
        self._clock = clock

    def verify(self, token: str) -> TokenClaims:
        """Return the claims of a valid token.

        Raises InvalidTokenError for malformed structure, bad signature,
        a disallowed algorithm, or missing/ill-typed claims.
        Raises ExpiredTokenError when the current time is at or past `exp`.
        """
        if not isinstance(token, str) or not _JWS_SHAPE_RE.match(token):
            raise InvalidTokenError("Malformed token.")
        try:
            payload = jwt.decode(
                token,
                self._key.secret,
                algorithms=[self._key.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidTokenError(f"Token rejected: {exc}") from exc

        claims = _claims_from_payload(payload)
        if self._clock() >= claims.expires_at:
            raise ExpiredTokenError()
        return claims


def _claims_from_payload(payload: dict) -> TokenClaims:
    sub = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")
    iat = payload.get("iat")
    exp = payload.get("exp")
    if not isinstance(sub, str) or not sub.isdigit():
        raise InvalidTokenError("Token subject is missing or invalid.")
    if not isinstance(email, str) or not email:
        raise InvalidTokenError("Token email claim is missing.")
    # bool is an int subclass; a boolean timestamp is not a timestamp.
    for name, value in (("iat", iat), ("exp", exp)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidTokenError(f"Token {name} claim is missing or invalid.")
    try:
        parsed_role = Role(role)
    except ValueError as exc:
        raise InvalidTokenError("Token role claim is invalid.") from exc
    return TokenClaims(
        account_id=int(sub),
        email=email,
        role=parsed_role,
        issued_at=iat,
        expires_at=exp,
    )
