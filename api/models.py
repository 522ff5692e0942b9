"""
API request and response models for Keeper REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
items/models.py, which own the internal domain representation. Route handlers
map between the two via the from_* factory methods below.

Request models only pin down types. Length and format rules live in
core/validation.py so they run identically for HTTP, CLI and direct store
calls, and so a policy violation is a 400 with field-level errors rather
than a schema error.

Separation of concerns: domain models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Account, Role
from core.errors import FieldError
from items.models import Item

# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class FieldErrorDetail(BaseModel):
    field: str
    message: str

    @classmethod
    def from_field_error(cls, error: FieldError) -> "FieldErrorDetail":
        return cls(field=error.field, message=error.message)


class ErrorDetail(BaseModel):
    """Structured error payload. Never carries stack traces, key material, or SQL."""

    code: str
    message: str
    detail: Optional[str] = None
    fields: list[FieldErrorDetail] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: ErrorDetail


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    model_config = ConfigDict(extra="forbid")

    email: str
    display_name: str
    password: str


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: str
    password: str


class ProfileUpdate(BaseModel):
    """Request body for PATCH /api/v1/auth/me. Omitted fields stay unchanged."""

    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = None
    password: Optional[str] = None


class RoleUpdate(BaseModel):
    """Request body for PATCH /api/v1/auth/accounts/{id} (admin only)."""

    model_config = ConfigDict(extra="forbid")

    role: Role


# ---------------------------------------------------------------------------
# Auth response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Public view of an account. The password hash never leaves the server."""

    id: int
    email: str
    display_name: str
    role: Role
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            email=account.email,
            display_name=account.display_name,
            role=account.role,
            created_at=account.created_at,
        )


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    account_id: int
    email: str
    role: Role


# ---------------------------------------------------------------------------
# Item models
# ---------------------------------------------------------------------------


class ItemCreate(BaseModel):
    """Request body for POST /api/v1/items. The owner is always the caller."""

    model_config = ConfigDict(extra="forbid")

    title: str
    description: Optional[str] = None


class ItemUpdate(BaseModel):
    """Request body for PUT /api/v1/items/{id}. owner_id is not accepted."""

    model_config = ConfigDict(extra="forbid")

    title: str
    description: Optional[str] = None


class ItemResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    owner_id: int
    title: str
    description: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_item(cls, item: Item) -> "ItemResponse":
        return cls(
            id=item.id,
            owner_id=item.owner_id,
            title=item.title,
            description=item.description,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
