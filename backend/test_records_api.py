"""Read-only records API over the test database."""
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from bizops.api.deps import get_db
from bizops.core.exceptions import RecordStoreError
from bizops.main import app
from bizops.services import records


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def two_orders(db, catalog):
    cart = [
        {"product_id": catalog.apple, "name": "Apple juice", "price": Decimal("2.00"), "qty": 2},
        {"product_id": catalog.biscuits, "name": "Biscuits", "price": Decimal("5.00"), "qty": 1},
    ]
    first = records.create_order(db, client_id=catalog.corner, cart=cart, order_date=date(2025, 3, 7))
    second = records.create_order(db, client_id=catalog.sunrise, cart=cart[:1], order_date=date(2025, 3, 7))
    return first.id, second.id


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_clients_page(client, catalog):
    body = client.get("/records/clients", params={"page_size": 1}).json()
    assert body["total"] == 2
    assert body["last_page"] == 1
    assert [c["name"] for c in body["items"]] == ["Corner Market"]

    body = client.get("/records/clients", params={"page_size": 1, "page": 50}).json()
    assert body["page"] == 1
    assert [c["name"] for c in body["items"]] == ["Sunrise Kiosk"]


def test_clients_search(client, catalog):
    body = client.get("/records/clients", params={"search": "beach"}).json()
    assert [c["id"] for c in body["items"]] == [catalog.sunrise]


def test_products_search(client, catalog):
    body = client.get("/records/products", params={"search": "AJ-1"}).json()
    assert body["total"] == 1
    assert body["items"][0]["name"] == "Apple juice"
    assert Decimal(body["items"][0]["price"]) == Decimal("2.00")


def test_orders_carry_short_codes(client, catalog, two_orders):
    first_id, second_id = two_orders
    body = client.get("/records/orders", params={"date": "2025-03-07"}).json()
    codes = {o["id"]: o["short_code"] for o in body["items"]}
    assert codes == {first_id: "7/3.2025-1", second_id: "7/3.2025-2"}

    body = client.get("/records/orders", params={"client_id": catalog.sunrise}).json()
    assert [o["client_name"] for o in body["items"]] == ["Sunrise Kiosk"]

    body = client.get("/records/orders", params={"date": "2025-03-08"}).json()
    assert body["total"] == 0


def test_order_detail(client, catalog, two_orders):
    first_id, _ = two_orders
    body = client.get(f"/records/orders/{first_id}").json()
    assert body["short_code"] == "7/3.2025-1"
    assert Decimal(body["total"]) == Decimal("9.00")
    assert [(i["product_name"], i["quantity"]) for i in body["items"]] == [("Apple juice", 2), ("Biscuits", 1)]


def test_missing_order_is_404(client, catalog):
    response = client.get("/records/orders/999")
    assert response.status_code == 404
    assert response.json()["detail"] == "Resource not found"


def test_store_failure_is_a_generic_500(client, catalog, monkeypatch):
    def broken(*args, **kwargs):
        raise RecordStoreError("list_products", RuntimeError("disk I/O error"))

    monkeypatch.setattr(records, "list_products", broken)
    response = client.get("/records/products")
    assert response.status_code == 500
    assert "disk" not in response.text


def test_invalid_date_is_rejected(client):
    assert client.get("/records/orders", params={"date": "07/03/2025"}).status_code == 422
