"""Tests for items/store.py -- SQLAlchemy Core persistence for owned items."""

import pytest

from core.errors import ValidationError
from items.models import Item
from items.store import ItemStore


@pytest.fixture
def store(settings):
    s = ItemStore(settings.database_url)
    yield s
    s.close()


class TestCreate:
    def test_create_and_get(self, store: ItemStore) -> None:
        item_id = store.create_item(Item(owner_id=1, title="Dune", description="Spice."))
        item = store.get_item(item_id)
        assert item.id == item_id
        assert item.owner_id == 1
        assert item.title == "Dune"
        assert item.description == "Spice."
        assert item.created_at
        assert item.created_at == item.updated_at

    def test_title_trimmed(self, store: ItemStore) -> None:
        item_id = store.create_item(Item(owner_id=1, title="  Dune  "))
        assert store.get_item(item_id).title == "Dune"

    def test_owner_required(self, store: ItemStore) -> None:
        with pytest.raises(ValueError):
            store.create_item(Item(owner_id=None, title="Dune"))  # type: ignore[arg-type]

    def test_invalid_title_writes_nothing(self, store: ItemStore) -> None:
        with pytest.raises(ValidationError):
            store.create_item(Item(owner_id=1, title=""))
        assert store.list_items() == []


class TestRead:
    def test_get_missing_returns_none(self, store: ItemStore) -> None:
        assert store.get_item(999) is None

    def test_get_owner_id(self, store: ItemStore) -> None:
        item_id = store.create_item(Item(owner_id=42, title="Dune"))
        assert store.get_owner_id(item_id) == 42
        assert store.get_owner_id(999) is None

    def test_ids_outside_row_range_are_absent(self, store: ItemStore) -> None:
        store.create_item(Item(owner_id=1, title="Dune"))
        for item_id in (0, -1, 2**63, 10**23):
            assert store.get_item(item_id) is None
            assert store.get_owner_id(item_id) is None
            assert store.update_item(item_id, title="x") is False
            assert store.delete_item(item_id) is False

    def test_list_filters_by_owner(self, store: ItemStore) -> None:
        a = store.create_item(Item(owner_id=1, title="A"))
        b = store.create_item(Item(owner_id=2, title="B"))
        c = store.create_item(Item(owner_id=1, title="C"))
        assert [i.id for i in store.list_items()] == [a, b, c]
        assert [i.id for i in store.list_items(owner_id=1)] == [a, c]
        assert store.list_items(owner_id=3) == []


class TestUpdateDelete:
    def test_update_replaces_fields(self, store: ItemStore) -> None:
        item_id = store.create_item(Item(owner_id=1, title="Dune", description="Spice."))
        assert store.update_item(item_id, title="Dune Messiah") is True
        item = store.get_item(item_id)
        assert item.title == "Dune Messiah"
        assert item.description is None
        assert item.owner_id == 1

    def test_update_missing_returns_false(self, store: ItemStore) -> None:
        assert store.update_item(999, title="Ghost") is False

    def test_update_validates(self, store: ItemStore) -> None:
        item_id = store.create_item(Item(owner_id=1, title="Dune"))
        with pytest.raises(ValidationError):
            store.update_item(item_id, title="   ")
        assert store.get_item(item_id).title == "Dune"

    def test_delete(self, store: ItemStore) -> None:
        item_id = store.create_item(Item(owner_id=1, title="Dune"))
        assert store.delete_item(item_id) is True
        assert store.get_item(item_id) is None
        assert store.delete_item(item_id) is False
