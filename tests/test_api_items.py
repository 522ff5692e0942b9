"""
tests/test_api_items.py -- Integration tests for the owned-item routes.

The ownership scenario walks one item through every outcome the access guard
can produce: owner A creates it, non-owner B is refused (403), ADMIN C
edits it anyway, a missing id is 404 for everyone, and the owner deletes it.

Fixtures used (from conftest.py):
  - api_client:   TestClient on the real app, wired to per-test services
  - make_account: (email, role) -> (account_id, token)
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth.models import Role


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def people(make_account) -> dict:
    """Two USERs (a, b) and one ADMIN (c): name -> (account_id, token)."""
    return {
        "a": make_account("alice@example.com"),
        "b": make_account("bob@example.com"),
        "c": make_account("carol@example.com", role=Role.ADMIN),
    }


def _create(client: TestClient, token: str, title: str = "Dune", description: str | None = None) -> dict:
    resp = client.post("/api/v1/items", json={"title": title, "description": description}, headers=_auth(token))
    assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
    return resp.json()


class TestOwnershipScenario:
    def test_full_lifecycle(self, api_client: TestClient, people: dict) -> None:
        """Create as A; B is refused; ADMIN C edits; 999 is 404; A deletes; item is gone."""
        a_id, a = people["a"]
        _, b = people["b"]
        _, c = people["c"]

        item = _create(api_client, a, title="Dune")
        item_id = item["id"]
        assert item["owner_id"] == a_id

        resp = api_client.put(f"/api/v1/items/{item_id}", json={"title": "Stolen"}, headers=_auth(b))
        assert resp.status_code == 403, f"Expected 403, got {resp.status_code}: {resp.text}"
        assert api_client.get(f"/api/v1/items/{item_id}").json()["title"] == "Dune"

        resp = api_client.put(f"/api/v1/items/{item_id}", json={"title": "Dune (moderated)"}, headers=_auth(c))
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        assert resp.json()["title"] == "Dune (moderated)"
        # ADMIN edits never transfer ownership.
        assert resp.json()["owner_id"] == a_id

        resp = api_client.delete("/api/v1/items/999", headers=_auth(a))
        assert resp.status_code == 404

        resp = api_client.delete(f"/api/v1/items/{item_id}", headers=_auth(a))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Item deleted."

        assert api_client.get(f"/api/v1/items/{item_id}").status_code == 404


class TestCreate:
    def test_create_requires_token(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/v1/items", json={"title": "Dune"})
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_owner_is_caller(self, api_client: TestClient, people: dict) -> None:
        b_id, b = people["b"]
        assert _create(api_client, b)["owner_id"] == b_id

    def test_admin_creator_becomes_owner(self, api_client: TestClient, people: dict) -> None:
        c_id, c = people["c"]
        assert _create(api_client, c)["owner_id"] == c_id

    def test_owner_id_in_body_rejected(self, api_client: TestClient, people: dict) -> None:
        """Clients cannot choose the owner."""
        b_id, _ = people["b"]
        _, a = people["a"]
        resp = api_client.post("/api/v1/items", json={"title": "Dune", "owner_id": b_id}, headers=_auth(a))
        assert resp.status_code == 400

    def test_invalid_title_returns_400(self, api_client: TestClient, people: dict) -> None:
        _, a = people["a"]
        resp = api_client.post("/api/v1/items", json={"title": "  "}, headers=_auth(a))
        assert resp.status_code == 400
        assert resp.json()["error"]["fields"] == [{"field": "title", "message": "Title is required."}]


class TestPublicReads:
    def test_list_without_token(self, api_client: TestClient, people: dict) -> None:
        _, a = people["a"]
        _create(api_client, a, title="One")
        _create(api_client, a, title="Two")
        resp = api_client.get("/api/v1/items")
        assert resp.status_code == 200
        assert [i["title"] for i in resp.json()] == ["One", "Two"]

    def test_list_filtered_by_owner(self, api_client: TestClient, people: dict) -> None:
        a_id, a = people["a"]
        _, b = people["b"]
        _create(api_client, a, title="Alice's")
        _create(api_client, b, title="Bob's")
        resp = api_client.get("/api/v1/items", params={"owner_id": a_id})
        assert [i["title"] for i in resp.json()] == ["Alice's"]

    def test_detail_without_token(self, api_client: TestClient, people: dict) -> None:
        _, a = people["a"]
        item = _create(api_client, a, description="Spice.")
        resp = api_client.get(f"/api/v1/items/{item['id']}")
        assert resp.status_code == 200
        assert resp.json()["description"] == "Spice."

    def test_detail_missing_returns_404(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/items/999")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_detail_beyond_integer_range_returns_404(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/v1/items/99999999999999999999999")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_mine_lists_only_own_items(self, api_client: TestClient, people: dict) -> None:
        _, a = people["a"]
        _, b = people["b"]
        _create(api_client, a, title="Alice's")
        _create(api_client, b, title="Bob's")
        resp = api_client.get("/api/v1/items/mine", headers=_auth(b))
        assert resp.status_code == 200
        assert [i["title"] for i in resp.json()] == ["Bob's"]

    def test_mine_requires_token(self, api_client: TestClient) -> None:
        assert api_client.get("/api/v1/items/mine").status_code == 401


class TestMutationsGuarded:
    def test_update_without_token_is_401_even_for_missing_item(self, api_client: TestClient) -> None:
        resp = api_client.put("/api/v1/items/999", json={"title": "x"})
        assert resp.status_code == 401

    def test_non_owner_gets_404_for_missing_item(self, api_client: TestClient, people: dict) -> None:
        """Existence is checked before ownership."""
        _, b = people["b"]
        assert api_client.put("/api/v1/items/999", json={"title": "x"}, headers=_auth(b)).status_code == 404
        assert api_client.delete("/api/v1/items/999", headers=_auth(b)).status_code == 404

    def test_non_owner_cannot_delete(self, api_client: TestClient, people: dict) -> None:
        _, a = people["a"]
        _, b = people["b"]
        item = _create(api_client, a)
        assert api_client.delete(f"/api/v1/items/{item['id']}", headers=_auth(b)).status_code == 403
        assert api_client.get(f"/api/v1/items/{item['id']}").status_code == 200

    def test_admin_can_delete_any_item(self, api_client: TestClient, people: dict) -> None:
        _, a = people["a"]
        _, c = people["c"]
        item = _create(api_client, a)
        assert api_client.delete(f"/api/v1/items/{item['id']}", headers=_auth(c)).status_code == 200

    def test_owner_updates_item(self, api_client: TestClient, people: dict) -> None:
        _, a = people["a"]
        item = _create(api_client, a, description="Spice.")
        resp = api_client.put(
            f"/api/v1/items/{item['id']}", json={"title": "Dune Messiah", "description": None}, headers=_auth(a)
        )
        assert resp.status_code == 200
        assert resp.json()["title"] == "Dune Messiah"
        assert resp.json()["description"] is None

    def test_expired_token_cannot_mutate(self, api_client: TestClient, people: dict, clock) -> None:
        _, a = people["a"]
        item = _create(api_client, a)
        clock.advance(3600)
        assert api_client.delete(f"/api/v1/items/{item['id']}", headers=_auth(a)).status_code == 401

    def test_non_numeric_id_with_token(self, api_client: TestClient, people: dict) -> None:
        _, a = people["a"]
        resp = api_client.delete("/api/v1/items/abc", headers=_auth(a))
        assert resp.status_code in (400, 404)

    def test_unicode_digit_id_returns_404(self, api_client: TestClient, people: dict) -> None:
        """A superscript two passes str.isdigit() but is not an integer id."""
        _, a = people["a"]
        assert api_client.delete("/api/v1/items/%C2%B2", headers=_auth(a)).status_code == 404
        assert api_client.put("/api/v1/items/%C2%B2", json={"title": "x"}, headers=_auth(a)).status_code == 404

    def test_id_beyond_integer_range_returns_404(self, api_client: TestClient, people: dict) -> None:
        _, a = people["a"]
        _, c = people["c"]
        huge = "/api/v1/items/99999999999999999999999"
        assert api_client.delete(huge, headers=_auth(a)).status_code == 404
        assert api_client.put(huge, json={"title": "x"}, headers=_auth(c)).status_code == 404
