"""
auth/guard.py -- The access guard: per-request allow/deny decisions.

Every protected operation declares a RoutePolicy. For each request the guard
walks one small state machine and either reaches AUTHORIZED or stops in
REJECTED with exactly one of three client-visible outcomes (401/403/404):

  UNAUTHENTICATED
    |  public policy ------------------------------------> AUTHORIZED
    |  no / malformed Bearer header ---------------------> REJECTED 401
    |  token invalid or expired -------------------------> REJECTED 401
    v
  AUTHENTICATED  (principal known)
    |  required role not satisfied ----------------------> REJECTED 403
    |  ownership-scoped, resource absent ----------------> REJECTED 404
    |  ownership-scoped, not owner and not ADMIN --------> REJECTED 403
    v
  AUTHORIZED

Order matters: the existence check precedes the ownership check, so a
non-owner learns that a resource exists (403) but a missing id is always 404.

The guard holds no per-request state and never mutates anything, so one
instance is shared by every worker thread. It knows about resources only
through the owner_lookup callable passed per call.

Layer rule: no imports from api/ or items/. FastAPI bindings live in
auth/dependencies.py.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from auth.models import Principal, Role, can_bypass_ownership, role_satisfies
from auth.tokens import TokenVerifier
from core.errors import (
    ExpiredTokenError,
    ForbiddenError,
    InvalidTokenError,
    KeeperError,
    NotFoundError,
    UnauthorizedError,
)

logger = logging.getLogger("keeper.auth")

OwnerLookup = Callable[[int], "int | None"]


class AccessState(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATED = "AUTHENTICATED"
    AUTHORIZED = "AUTHORIZED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class RoutePolicy:
    """What an operation demands of the caller.

    public:           no token needed at all.
    required_role:    minimum role; ADMIN satisfies USER.
    ownership_scoped: the operation mutates one owned resource, identified
                      by the resource_id passed to the guard.
    """

    public: bool = False
    required_role: Role | None = None
    ownership_scoped: bool = False


PUBLIC = RoutePolicy(public=True)
AUTHENTICATED = RoutePolicy()
ADMIN_ONLY = RoutePolicy(required_role=Role.ADMIN)
OWNER_OR_ADMIN = RoutePolicy(required_role=Role.USER, ownership_scoped=True)


@dataclass(frozen=True)
class AccessDecision:
    state: AccessState
    principal: Principal | None = None
    error: KeeperError | None = None

    @property
    def allowed(self) -> bool:
        return self.state == AccessState.AUTHORIZED


def parse_bearer(authorization: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, or None.

    The scheme is case-insensitive. Anything other than exactly two parts
    counts as malformed.
    """
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


class AccessGuard:
    """Decides allow/deny for one request from token, role and ownership.

    Usage:
        guard = AccessGuard(verifier)
        principal = guard.authorize(OWNER_OR_ADMIN, request.headers.get("Authorization"),
                                    resource_id=42, owner_lookup=items.get_owner_id)
    """

    def __init__(self, verifier: TokenVerifier) -> None:
        self._verifier = verifier

    def check(
        self,
        policy: RoutePolicy,
        authorization: str | None,
        resource_id: int | None = None,
        owner_lookup: OwnerLookup | None = None,
    ) -> AccessDecision:
        """Run the state machine and return the decision. Never raises for a denial."""
        if policy.public:
            return AccessDecision(AccessState.AUTHORIZED)

        token = parse_bearer(authorization)
        if token is None:
            logger.info("Access rejected: missing or malformed Authorization header")
            return _reject(UnauthorizedError())

        try:
            claims = self._verifier.verify(token)
        except ExpiredTokenError:
            logger.info("Access rejected: expired token")
            return _reject(UnauthorizedError())
        except InvalidTokenError as exc:
            # The reason stays in the log; clients only ever see a plain 401.
            logger.warning("Access rejected: invalid token (%s)", exc.message)
            return _reject(UnauthorizedError())

        principal = Principal(account_id=claims.account_id, email=claims.email, role=claims.role)

        if policy.required_role is not None and not role_satisfies(principal.role, policy.required_role):
            logger.info(
                "Access rejected: account id=%s role=%s lacks %s",
                principal.account_id,
                principal.role.value,
                policy.required_role.value,
            )
            return _reject(ForbiddenError(), principal)

        if policy.ownership_scoped:
            if resource_id is None or owner_lookup is None:
                raise ValueError("Ownership-scoped policy needs resource_id and owner_lookup.")
            owner_id = owner_lookup(resource_id)
            if owner_id is None:
                return _reject(NotFoundError(), principal)
            if owner_id != principal.account_id and not can_bypass_ownership(principal.role):
                logger.info(
                    "Access rejected: account id=%s does not own resource id=%s",
                    principal.account_id,
                    resource_id,
                )
                return _reject(ForbiddenError(), principal)

        return AccessDecision(AccessState.AUTHORIZED, principal)

    def authorize(
        self,
        policy: RoutePolicy,
        authorization: str | None,
        resource_id: int | None = None,
        owner_lookup: OwnerLookup | None = None,
    ) -> Principal | None:
        """Like check(), but raise the rejection error. Returns None for public policies."""
        decision = self.check(policy, authorization, resource_id, owner_lookup)
        if decision.error is not None:
            raise decision.error
        return decision.principal


def _reject(error: KeeperError, principal: Principal | None = None) -> AccessDecision:
    return AccessDecision(AccessState.REJECTED, principal, error)
