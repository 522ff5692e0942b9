"""
items/models.py -- Domain dataclass for owned items.

Pure data container with zero logic. Validation lives in core/validation.py
and persistence in items/store.py.

owner_id is set once, at creation, to the creating account (an ADMIN who
creates an item owns it like anyone else) and is never updated afterwards.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Item:
    """An owned resource.

    id is None before the record is written to the database.
    """

    owner_id: int
    title: str
    description: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
