"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Thin bindings over auth/guard.py: each helper reads the Authorization header,
asks the shared AccessGuard (app.state.guard) for a decision under one
RoutePolicy, and either returns the Principal or raises the guard's error.
api/main.py renders those errors (401/403/404) in the shared envelope.

get_current_principal() -- any valid token (USER or ADMIN).
require_admin()         -- ADMIN role; 401 if unauthenticated, 403 otherwise.
require_owner()         -- factory for ownership-scoped mutations; the caller
                           names the app.state store that resolves owners.

Layer rule: no imports from api/ or items/.
  auth/dependencies.py may import from fastapi (for Request/Path) because
  this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.guard import ADMIN_ONLY, AUTHENTICATED, OWNER_OR_ADMIN, AccessGuard
from auth.models import Principal


def _guard(request: Request) -> AccessGuard:
    return request.app.state.guard


def get_current_principal(request: Request) -> Principal:
    """Require authentication. Raises UnauthorizedError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    return _guard(request).authorize(AUTHENTICATED, request.headers.get("Authorization"))


def require_admin(request: Request) -> Principal:
    """Require ADMIN role. 401 if unauthenticated, 403 if authenticated but not ADMIN."""
    return _guard(request).authorize(ADMIN_ONLY, request.headers.get("Authorization"))


def require_owner(store_attr: str, path_param: str) -> Callable[[Request], Principal]:
    """Build a dependency enforcing owner-or-ADMIN access to one resource.

    store_attr names an object on app.state exposing get_owner_id(id) -> int | None;
    path_param names the integer path parameter holding the resource id.

        @router.put("/items/{item_id}")
        def update(principal: Principal = Depends(require_owner("items", "item_id"))): ...
    """

    def dependency(request: Request) -> Principal:
        store = getattr(request.app.state, store_attr)
        raw_id = str(request.path_params.get(path_param, ""))
        # Ids start at 1, so 0 never matches: a non-numeric id is still
        # authenticated first and then reported as 404. isdigit() alone
        # admits Unicode digits such as "²" that int() rejects.
        resource_id = int(raw_id) if raw_id.isascii() and raw_id.isdigit() else 0
        return _guard(request).authorize(
            OWNER_OR_ADMIN,
            request.headers.get("Authorization"),
            resource_id=resource_id,
            owner_lookup=store.get_owner_id,
        )

    return dependency
