from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from inventory.application.container import ServiceContainer
from inventory.application.stock_service import StockLedgerService
from inventory.infrastructure.repositories import StockRepository
import inventory.main
from inventory.main import create_app

API = "/api/v1"


@pytest.fixture
def seeded(client):
    product = client.post(f"{API}/products/", json={
        "sku": "ABC123", "name": "Widget", "description": "Blue widget", "price": "9.99",
    }).json()
    wh1 = client.post(f"{API}/locations/", json={"name": "WH-01"}).json()
    wh2 = client.post(f"{API}/locations/", json={"name": "WH-02"}).json()
    return product, wh1, wh2


def test_root_and_info(client):
    assert client.get("/").json()["status"] == "running"
    info = client.get("/info").json()
    assert info["endpoints"]["api"] == API
    assert info["endpoints"]["resources"] == ["locations", "movements", "products", "stock"]
    assert info["database"] == "sqlite"


def test_importing_main_builds_no_app():
    assert not hasattr(inventory.main, "app")


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


class TestProducts:
    def test_create_product(self, client):
        response = client.post(f"{API}/products/", json={"sku": "ABC123", "name": "Widget", "price": "9.99"})
        assert response.status_code == 201
        body = response.json()
        assert body["sku"] == "ABC123"
        assert Decimal(str(body["price"])) == Decimal("9.99")
        assert body["id"] > 0

    def test_duplicate_sku_conflicts(self, client, seeded):
        response = client.post(f"{API}/products/", json={"sku": "ABC123", "name": "Other"})
        assert response.status_code == 409
        assert response.json()["error"] == "Resource already exists"

    def test_blank_name_is_bad_request(self, client):
        response = client.post(f"{API}/products/", json={"sku": "X1", "name": "  "})
        assert response.status_code == 400

    def test_oversized_sku_is_bad_request(self, client):
        response = client.post(f"{API}/products/", json={"sku": "S" * 51, "name": "Widget"})
        assert response.status_code == 400
        assert response.json()["details"] == "SKU cannot be longer than 50 characters"

    def test_malformed_payload_is_bad_request(self, client):
        response = client.post(f"{API}/products/", json={"name": "No SKU"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request payload"

    def test_get_by_sku(self, client, seeded):
        response = client.get(f"{API}/products/ABC123")
        assert response.status_code == 200
        assert response.json()["name"] == "Widget"

    def test_unknown_sku(self, client):
        response = client.get(f"{API}/products/NOPE")
        assert response.status_code == 404
        assert response.json() == {"error": "Resource not found", "details": "product with SKU NOPE not found"}

    def test_list_products(self, client, seeded):
        assert [p["sku"] for p in client.get(f"{API}/products/").json()] == ["ABC123"]


class TestLocations:
    def test_create_and_get(self, client):
        assert client.post(f"{API}/locations/", json={"name": "WH-01"}).status_code == 201
        assert client.get(f"{API}/locations/WH-01").json()["name"] == "WH-01"

    def test_duplicate_name(self, client, seeded):
        assert client.post(f"{API}/locations/", json={"name": "WH-01"}).status_code == 409

    def test_unknown_name(self, client):
        assert client.get(f"{API}/locations/WH-99").status_code == 404

    def test_list_locations(self, client, seeded):
        assert [loc["name"] for loc in client.get(f"{API}/locations/").json()] == ["WH-01", "WH-02"]


class TestStock:
    def test_add_remove_move(self, client, seeded):
        product, wh1, wh2 = seeded
        added = client.post(f"{API}/stock/add", json={
            "product_id": product["id"], "location_id": wh1["id"], "quantity": 50,
        })
        assert added.status_code == 200
        assert added.json()["quantity"] == 50

        moved = client.post(f"{API}/stock/move", json={
            "product_id": product["id"], "from_location_id": wh1["id"],
            "to_location_id": wh2["id"], "quantity": 20,
        })
        assert moved.status_code == 200
        assert moved.json()["location_id"] == wh2["id"]
        assert moved.json()["quantity"] == 20

        removed = client.post(f"{API}/stock/remove", json={
            "product_id": product["id"], "location_id": wh2["id"], "quantity": 5,
        })
        assert removed.json()["quantity"] == 15

        levels = {s["location_id"]: s["quantity"] for s in client.get(f"{API}/stock/").json()}
        assert levels == {wh1["id"]: 30, wh2["id"]: 15}

        movements = client.get(f"{API}/movements/", params={"product_id": product["id"]}).json()
        assert [m["movement_type"] for m in movements] == ["REMOVE", "MOVE", "ADD"]

    def test_zero_quantity(self, client, seeded):
        product, wh1, _ = seeded
        response = client.post(f"{API}/stock/add", json={
            "product_id": product["id"], "location_id": wh1["id"], "quantity": 0,
        })
        assert response.status_code == 400
        assert response.json()["details"] == "quantity must be positive"

    def test_unknown_product(self, client, seeded):
        _, wh1, _ = seeded
        response = client.post(f"{API}/stock/add", json={"product_id": 999, "location_id": wh1["id"], "quantity": 1})
        assert response.status_code == 404

    def test_insufficient_stock(self, client, seeded):
        product, wh1, wh2 = seeded
        client.post(f"{API}/stock/add", json={"product_id": product["id"], "location_id": wh1["id"], "quantity": 5})
        response = client.post(f"{API}/stock/move", json={
            "product_id": product["id"], "from_location_id": wh1["id"],
            "to_location_id": wh2["id"], "quantity": 6,
        })
        assert response.status_code == 409
        assert response.json()["error"] == "Insufficient stock"
        assert "only 5 available" in response.json()["details"]

    def test_same_location_move(self, client, seeded):
        product, wh1, _ = seeded
        response = client.post(f"{API}/stock/move", json={
            "product_id": product["id"], "from_location_id": wh1["id"],
            "to_location_id": wh1["id"], "quantity": 1,
        })
        assert response.status_code == 400


class TestLowStock:
    def test_default_threshold(self, client, seeded):
        product, wh1, wh2 = seeded
        client.post(f"{API}/stock/add", json={"product_id": product["id"], "location_id": wh1["id"], "quantity": 9})
        client.post(f"{API}/stock/add", json={"product_id": product["id"], "location_id": wh2["id"], "quantity": 10})
        report = client.get(f"{API}/stock/low-stock").json()
        assert [(s["location_id"], s["quantity"]) for s in report] == [(wh1["id"], 9)]

    def test_explicit_threshold(self, client, seeded):
        product, wh1, _ = seeded
        client.post(f"{API}/stock/add", json={"product_id": product["id"], "location_id": wh1["id"], "quantity": 9})
        assert client.get(f"{API}/stock/low-stock", params={"threshold": 5}).json() == []

    def test_negative_threshold(self, client):
        assert client.get(f"{API}/stock/low-stock", params={"threshold": -1}).status_code == 400

    def test_non_numeric_threshold(self, client):
        assert client.get(f"{API}/stock/low-stock", params={"threshold": "ten"}).status_code == 400


class FailingStockRepository(StockRepository):
    def increment(self, session, product_id, location_id, quantity):
        raise OperationalError("INSERT INTO stock", {}, Exception("password authentication failed"))


def test_internal_errors_are_not_leaked(container, seeded):
    product, wh1, _ = seeded
    failing = ServiceContainer(
        settings=container.settings,
        engine=container.engine,
        session_factory=container.session_factory,
        products=container.products,
        locations=container.locations,
        stock=StockLedgerService(container.session_factory, container.products, container.locations,
                                 stock_repository=FailingStockRepository()),
    )
    with TestClient(create_app(failing, configure_logging=False)) as client:
        response = client.post(f"{API}/stock/add", json={
            "product_id": product["id"], "location_id": wh1["id"], "quantity": 1,
        })
    assert response.status_code == 500
    assert response.json() == {"error": "An internal server error occurred", "details": "Please try again later."}
