"""
items/store.py -- SQLAlchemy-backed persistence layer for owned items.

Uses SQLAlchemy Core (not ORM) so the dataclass in items/models.py remains
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. ItemStore is the repository; _row_to_item
is the mapper. Route handlers never touch SQL directly.

Ownership:
  owner_id is required on insert and absent from update_item()'s accepted
  fields, so it cannot change after creation. The store does not decide who
  may write -- the access guard does, via get_owner_id().

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ItemStore()                               # SQLite default
    store = ItemStore("postgresql://user:pw@host/db") # PostgreSQL
    item_id = store.create_item(Item(owner_id=1, title="Dune"))
    store.update_item(item_id, title="Dune Messiah")
    store.delete_item(item_id)
    store.close()
"""

from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, select
from sqlalchemy.engine import Engine

from core.config import get_settings
from core.database import create_store_engine, is_row_id, now_iso
from core.validation import raise_for_errors, validate_item
from items.models import Item

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

# owner_id references accounts.id. The accounts table lives in the auth
# store's metadata, so the link is enforced in code, not by a FOREIGN KEY.
_items = Table(
    "items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("title", String(200), nullable=False),
    Column("description", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


class ItemStore:
    """Repository for Item entities."""

    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = create_store_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    def create_item(self, item: Item) -> int:
        """Insert a new item and return its id.

        Raises ValidationError for bad title/description and ValueError when
        owner_id is missing -- every item has exactly one owner from birth.
        """
        if item.owner_id is None:
            raise ValueError("Item.owner_id is required")
        raise_for_errors(validate_item(item.title, item.description))
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _items.insert().values(
                    owner_id=item.owner_id,
                    title=item.title.strip(),
                    description=item.description,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_item(self, item_id: int) -> Optional[Item]:
        if not is_row_id(item_id):
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_items.select().where(_items.c.id == item_id)).fetchone()
        return _row_to_item(row) if row is not None else None

    def get_owner_id(self, item_id: int) -> Optional[int]:
        """Return the owner of an item, or None if the item does not exist.

        This is the owner lookup handed to the access guard.
        """
        if not is_row_id(item_id):
            return None
        with self.engine.connect() as conn:
            owner_id = conn.execute(select(_items.c.owner_id).where(_items.c.id == item_id)).scalar()
        return owner_id

    def list_items(self, owner_id: Optional[int] = None) -> list[Item]:
        """Return items ordered by id, optionally only those of one owner."""
        query = _items.select().order_by(_items.c.id)
        if owner_id is not None:
            query = query.where(_items.c.owner_id == owner_id)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_item(r) for r in rows]

    def update_item(self, item_id: int, title: str, description: Optional[str] = None) -> bool:
        """Replace the domain fields of an item. Returns False if the item does not exist."""
        raise_for_errors(validate_item(title, description))
        if not is_row_id(item_id):
            return False
        with self.engine.connect() as conn:
            result = conn.execute(
                _items.update()
                .where(_items.c.id == item_id)
                .values(title=title.strip(), description=description, updated_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_item(self, item_id: int) -> bool:
        """Permanently delete an item. Returns True if deleted, False if not found."""
        if not is_row_id(item_id):
            return False
        with self.engine.connect() as conn:
            result = conn.execute(_items.delete().where(_items.c.id == item_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_item(row) -> Item:
    return Item(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
