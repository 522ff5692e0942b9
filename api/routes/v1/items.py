"""
api/routes/v1/items.py -- CRUD routes for owned items.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /items              -- list items, optional ?owner_id= filter (public)
  GET    /items/mine         -- caller's own items (requires auth)
  POST   /items              -- create item owned by the caller (requires auth)
  GET    /items/{item_id}    -- item detail (public)
  PUT    /items/{item_id}    -- replace title/description (owner or ADMIN)
  DELETE /items/{item_id}    -- delete item (owner or ADMIN)

Ownership-scoped routes resolve the caller through
require_owner("items", "item_id"): the guard checks the token, then that the
item exists (404), then that the caller owns it or is ADMIN (403), in that
order. Handlers therefore only run for authorized callers.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import ItemCreate, ItemResponse, ItemUpdate, MessageResponse
from auth.dependencies import get_current_principal, require_owner
from auth.models import Principal
from core.errors import NotFoundError
from items.models import Item
from items.store import ItemStore

router = APIRouter()

_require_item_owner = require_owner("items", "item_id")


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------


@router.get("/items", response_model=list[ItemResponse])
def list_items(request: Request, owner_id: Optional[int] = None) -> list[ItemResponse]:
    """Return all items, or only those owned by owner_id. No authentication required."""
    store: ItemStore = request.app.state.items
    return [ItemResponse.from_item(i) for i in store.list_items(owner_id=owner_id)]


@router.get("/items/mine", response_model=list[ItemResponse])
def list_my_items(request: Request, principal: Principal = Depends(get_current_principal)) -> list[ItemResponse]:
    """Return the caller's own items."""
    store: ItemStore = request.app.state.items
    return [ItemResponse.from_item(i) for i in store.list_items(owner_id=principal.account_id)]


# ---------------------------------------------------------------------------
# POST /items -- create
# ---------------------------------------------------------------------------


@router.post("/items", response_model=ItemResponse, status_code=201)
def create_item(
    request: Request,
    body: ItemCreate,
    principal: Principal = Depends(get_current_principal),
) -> ItemResponse:
    """Create an item owned by the caller. ADMIN creators become the owner too."""
    store: ItemStore = request.app.state.items
    item_id = store.create_item(Item(owner_id=principal.account_id, title=body.title, description=body.description))
    return ItemResponse.from_item(store.get_item(item_id))


@router.get("/items/{item_id}", response_model=ItemResponse)
def get_item(request: Request, item_id: int) -> ItemResponse:
    """Return one item. No authentication required."""
    store: ItemStore = request.app.state.items
    item = store.get_item(item_id)
    if item is None:
        raise NotFoundError("Item not found.")
    return ItemResponse.from_item(item)


# ---------------------------------------------------------------------------
# Ownership-scoped mutations
# ---------------------------------------------------------------------------


@router.put("/items/{item_id}", response_model=ItemResponse)
def update_item(
    request: Request,
    item_id: int,
    body: ItemUpdate,
    principal: Principal = Depends(_require_item_owner),
) -> ItemResponse:
    """Replace an item's title and description. Ownership never changes."""
    store: ItemStore = request.app.state.items
    # The item can vanish between the guard's lookup and this write.
    if not store.update_item(item_id, title=body.title, description=body.description):
        raise NotFoundError("Item not found.")
    return ItemResponse.from_item(store.get_item(item_id))


@router.delete("/items/{item_id}", response_model=MessageResponse)
def delete_item(
    request: Request,
    item_id: int,
    principal: Principal = Depends(_require_item_owner),
) -> MessageResponse:
    """Delete an item. Returns 200 with a confirmation message."""
    store: ItemStore = request.app.state.items
    if not store.delete_item(item_id):
        raise NotFoundError("Item not found.")
    return MessageResponse(message="Item deleted.")
