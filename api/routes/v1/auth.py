"""
api/routes/v1/auth.py -- Registration, login and account management REST endpoints.

Routes:
  POST  /api/v1/auth/register          -- create account (public); 201 / 409 / 400
  POST  /api/v1/auth/login             -- password login (public); 200 {token} / 401
  GET   /api/v1/auth/me                -- current account (requires auth)
  PATCH /api/v1/auth/me                -- self-profile edit (requires auth)
  GET   /api/v1/auth/accounts          -- list all accounts (admin only)
  PATCH /api/v1/auth/accounts/{id}     -- change role (admin only)

Security:
  [H2] POST /login and /register are rate-limited per IP (LOGIN_RATE_LIMIT,
       REGISTER_RATE_LIMIT).
  [C1] AccountStore.authenticate() provides timing equalization -- use it,
       never inline find_by_email() + verify().
  [M4] PATCH /accounts/{id} refuses to demote the last ADMIN.
  [M5] Cache-Control: no-store on login responses, success and failure alike.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AccountResponse,
    ErrorDetail,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RegisterRequest,
    RoleUpdate,
)
from auth.dependencies import get_current_principal, require_admin
from auth.models import Principal, Role
from auth.store import AccountStore
from core.config import get_settings
from core.errors import InvalidCredentialsError, LastAdminError, NotFoundError, UnauthorizedError
from core.validation import validate_login

_settings = get_settings()

# Auth policy:
# - POST  /api/v1/auth/register:        public
# - POST  /api/v1/auth/login:           public
# - GET   /api/v1/auth/me:              requires auth (get_current_principal)
# - PATCH /api/v1/auth/me:              requires auth; edits only the caller's own account
# - GET   /api/v1/auth/accounts:        requires admin (require_admin)
# - PATCH /api/v1/auth/accounts/{id}:   requires admin (require_admin)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_settings.register_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=AccountResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> AccountResponse:
    """Create a USER account.

    400 with field-level errors when the input violates the credential
    policy; 409 when the email is already registered (case-insensitive).
    """
    accounts: AccountStore = request.app.state.accounts
    account_id = accounts.register(body.email, body.display_name, body.password)
    return AccountResponse.from_account(accounts.get_by_id(account_id))


@limiter.limit(_settings.login_rate_limit)  # [H2] brute-force mitigation
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a bearer token.

    Unknown email, wrong password and empty fields all return the same
    401 "bad_credentials" error to avoid leaking account existence.
    """
    accounts: AccountStore = request.app.state.accounts
    try:
        if validate_login(body.email, body.password):
            raise InvalidCredentialsError()
        account = accounts.authenticate(body.email, body.password)
    except InvalidCredentialsError as exc:
        resp = JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    issued = request.app.state.issuer.issue(account.id, account.email, account.role)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=issued.token,
            token_type="bearer",
            expires_in=issued.expires_in,
            account_id=account.id,
            email=account.email,
            role=account.role,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=AccountResponse)
def me(request: Request, principal: Principal = Depends(get_current_principal)) -> AccountResponse:
    """Return the account behind the presented token.

    A valid token for an account that no longer exists is treated as
    unauthenticated.
    """
    accounts: AccountStore = request.app.state.accounts
    account = accounts.get_by_id(principal.account_id)
    if account is None:
        raise UnauthorizedError()
    return AccountResponse.from_account(account)


@router.patch("/auth/me", response_model=AccountResponse)
def update_me(
    request: Request,
    body: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
) -> AccountResponse:
    """Edit the caller's own display name and/or password.

    Tokens already issued stay valid until they expire, including after a
    password change.
    """
    accounts: AccountStore = request.app.state.accounts
    if accounts.get_by_id(principal.account_id) is None:
        raise UnauthorizedError()
    updated = accounts.update_profile(principal.account_id, display_name=body.display_name, raw_password=body.password)
    return AccountResponse.from_account(updated)


# ---------------------------------------------------------------------------
# Account management (admin only)
# ---------------------------------------------------------------------------


@router.get("/auth/accounts", response_model=list[AccountResponse])
def list_accounts(request: Request, _admin: Principal = Depends(require_admin)) -> list[AccountResponse]:
    """List all accounts. Admin only."""
    accounts: AccountStore = request.app.state.accounts
    return [AccountResponse.from_account(a) for a in accounts.list_accounts()]


@router.patch("/auth/accounts/{account_id}", response_model=AccountResponse)
def update_account_role(
    request: Request,
    account_id: int,
    body: RoleUpdate,
    _admin: Principal = Depends(require_admin),
) -> AccountResponse:
    """Change an account's role. Admin only.

    The role inside tokens issued before the change stays as it was until
    those tokens expire.
    """
    accounts: AccountStore = request.app.state.accounts
    target = accounts.get_by_id(account_id)
    if target is None:
        raise NotFoundError("Account not found.")
    if target.role == Role.ADMIN and body.role != Role.ADMIN and accounts.count_admins() <= 1:  # [M4]
        raise LastAdminError()
    return AccountResponse.from_account(accounts.set_role(account_id, body.role))
