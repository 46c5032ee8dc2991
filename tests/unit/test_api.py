from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from squad_auction.config import get_server_config
from squad_auction.main import app

ADMIN = ("admin", "s3cret")


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("AUCTION_ADMIN_PASSWORD", ADMIN[1])
    get_server_config.cache_clear()
    with TestClient(app) as test_client:
        yield test_client
    get_server_config.cache_clear()


def test_state_lists_seeded_pool(client):
    response = client.get("/auction/state")
    assert response.status_code == 200
    body = response.json()
    assert len(body["items"]) == 8
    assert {bidder["id"] for bidder in body["bidders"]} == {"falcons", "tigers", "cyclones"}
    assert body["lot"]["active"] is False


def test_full_lot_flow(client):
    response = client.post("/auction/start", json={"item_id": "p001"})
    assert response.status_code == 200
    assert response.json()["lot"]["price"] == 15000

    response = client.post("/auction/bid", json={"bidder_id": "falcons"})
    assert response.status_code == 200
    assert response.json()["lot"]["bidder_ids"] == ["falcons"]

    response = client.post("/auction/bid", json={"bidder_id": "tigers", "amount": 15000})
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "increment_too_small"

    response = client.post("/auction/match", json={"bidder_id": "tigers"})
    assert response.status_code == 200
    assert response.json()["lot"]["bidder_ids"] == ["tigers", "falcons"]

    current = client.get("/auction/lot").json()
    assert current["item"]["id"] == "p001"
    assert [bidder["id"] for bidder in current["bidders"]] == ["tigers", "falcons"]

    assert client.post("/auction/lottery").status_code == 401
    assert client.post("/auction/lottery", auth=("admin", "wrong")).status_code == 401
    response = client.post("/auction/lottery", auth=ADMIN)
    assert response.status_code == 200
    winner = response.json()["winner"]["id"]
    assert winner in {"falcons", "tigers"}

    response = client.post("/auction/close")
    assert response.status_code == 200
    body = response.json()
    assert body["sold"] is True
    assert body["bidder"]["id"] == winner
    assert body["bidder"]["remaining_budget"] == 115000
    assert body["lot"]["active"] is False

    squad = client.get(f"/admin/bidders/{winner}/squad").json()
    assert squad["spent"] == 15000
    assert squad["counts"] == {"A": 1}

    response = client.post("/auction/start", json={"item_id": "p001"})
    assert response.status_code == 409

    response = client.post("/auction/reset-all", auth=ADMIN)
    assert response.status_code == 200
    assert all(bidder["remaining_budget"] == 130000 for bidder in response.json()["bidders"])
    assert all(item["status"] == "available" for item in response.json()["items"])


def test_rejections_map_to_status_codes(client):
    assert client.post("/auction/bid", json={"bidder_id": "falcons"}).status_code == 409
    response = client.post("/auction/start", json={"item_id": "nope"})
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "not_found"
    assert client.post("/auction/start", json={"item": "p001"}).status_code == 422
    assert client.post("/auction/bid", json={"bidder_id": "falcons", "amount": 0}).status_code == 422


def test_unsold_and_force_resolve(client):
    client.post("/auction/start", json={"item_id": "p006"})
    response = client.post("/auction/unsold")
    assert response.status_code == 200
    assert response.json()["item"]["round"] == 2

    client.post("/auction/start", json={"item_id": "p003"})
    payload = {"item_id": "p003", "bidder_id": "cyclones", "amount": 50000}
    assert client.post("/auction/force-resolve", json=payload).status_code == 401
    response = client.post("/auction/force-resolve", json=payload, auth=ADMIN)
    assert response.status_code == 200
    assert response.json()["bidder"]["remaining_budget"] == 80000

    stats = client.get("/admin/stats").json()
    assert stats["total_spend"] == 50000
    assert stats["items_by_status"]["sold"] == 1


def test_reset_discards_lot(client):
    client.post("/auction/start", json={"item_id": "p002"})
    response = client.post("/auction/reset", auth=ADMIN)
    assert response.status_code == 200
    assert response.json()["lot"]["active"] is False
    assert client.get("/admin/health").json()["lot_state"] == "idle"


def test_admin_routes_fail_closed_without_password(monkeypatch):
    monkeypatch.delenv("AUCTION_ADMIN_PASSWORD", raising=False)
    get_server_config.cache_clear()
    with TestClient(app) as test_client:
        response = test_client.post("/auction/reset", auth=ADMIN)
    get_server_config.cache_clear()
    assert response.status_code == 500


def test_integral_float_amount_stored_as_int(client):
    client.post("/auction/start", json={"item_id": "p003"})
    response = client.post("/auction/bid", json={"bidder_id": "falcons", "amount": 9000.0})
    assert response.status_code == 200
    price = response.json()["lot"]["price"]
    assert price == 9000
    assert isinstance(price, int)

    response = client.post("/auction/bid", json={"bidder_id": "tigers"})
    assert isinstance(response.json()["lot"]["price"], int)
    assert response.json()["lot"]["price"] == 9500

    body = client.post("/auction/close").json()
    assert isinstance(body["item"]["sold_price"], int)
    assert isinstance(body["bidder"]["remaining_budget"], int)
    assert body["bidder"]["remaining_budget"] == 120500


def test_fractional_amount_rejected(client):
    client.post("/auction/start", json={"item_id": "p003"})
    response = client.post("/auction/bid", json={"bidder_id": "falcons", "amount": 9000.5})
    assert response.status_code == 422
    assert client.get("/auction/lot").json()["lot"]["bidder_ids"] == []


def test_item_management_routes(client):
    new_item = {
        "id": "p009",
        "name": "Shakib Khan",
        "category": "B",
        "attributes": {"position": "Bowler"},
    }
    assert client.post("/admin/items", json=new_item).status_code == 401
    response = client.post("/admin/items", json=new_item, auth=ADMIN)
    assert response.status_code == 201
    assert response.json()["base_price"] == 8000
    assert client.post("/admin/items", json=new_item, auth=ADMIN).status_code == 409
    bad_tier = {"id": "p010", "name": "Lost Tier", "category": "D"}
    assert client.post("/admin/items", json=bad_tier, auth=ADMIN).status_code == 422

    response = client.put("/admin/items/p009", json={"category": "C"}, auth=ADMIN)
    assert response.status_code == 200
    assert response.json()["base_price"] == 5000

    client.post("/auction/start", json={"item_id": "p009"})
    assert client.delete("/admin/items/p009", auth=ADMIN).status_code == 409
    client.post("/auction/bid", json={"bidder_id": "falcons"})
    client.post("/auction/close")
    assert client.delete("/admin/items/p009", auth=ADMIN).status_code == 409

    assert client.delete("/admin/items/p008", auth=ADMIN).status_code == 200
    assert client.delete("/admin/items/p008", auth=ADMIN).status_code == 404
    ids = {item["id"] for item in client.get("/admin/items").json()}
    assert "p009" in ids
    assert "p008" not in ids
    assert len(ids) == 8


def test_bidder_management_routes(client):
    response = client.post("/admin/bidders", json={"id": "storm", "name": "Storm"}, auth=ADMIN)
    assert response.status_code == 201
    assert response.json()["initial_budget"] == 130000

    response = client.put("/admin/bidders/storm", json={"budget": 140000}, auth=ADMIN)
    assert response.status_code == 200
    assert response.json()["remaining_budget"] == 140000
    assert client.put("/admin/bidders/storm", json={}, auth=ADMIN).status_code == 422

    client.post("/auction/start", json={"item_id": "p006"})
    client.post("/auction/bid", json={"bidder_id": "storm"})
    assert client.put("/admin/bidders/storm", json={"budget": 150000}, auth=ADMIN).status_code == 409
    client.post("/auction/close")
    assert client.delete("/admin/bidders/storm", auth=ADMIN).status_code == 409

    assert client.delete("/admin/bidders/cyclones", auth=ADMIN).status_code == 200
    ids = {bidder["id"] for bidder in client.get("/admin/bidders").json()}
    assert ids == {"falcons", "tigers", "storm"}
