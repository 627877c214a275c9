"""Tests for the HTTP surface."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.api import create_app
from storefront.api.deps import get_lock_service, get_notifier, get_payment_scheduler

CUSTOMER = {"X-User-Id": "1"}
OTHER = {"X-User-Id": "2"}
ADMIN = {"X-User-Id": "99", "X-User-Role": "admin"}


@pytest.fixture
def client(database, lock_service, scheduler, notifier):
    app = create_app(database)
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_payment_scheduler] = lambda: scheduler
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as c:
        yield c


@pytest.fixture
def products(make_product):
    a = make_product(name="productA", price="10.00", stock=10, seller_id=5)
    b = make_product(name="productB", price="5.00", stock=4, seller_id=6)
    return a, b


def place_order(client, products):
    a, b = products
    client.post("/cart/items", json={"product_id": a.id, "quantity": 2}, headers=CUSTOMER)
    client.post("/cart/items", json={"product_id": b.id, "quantity": 1}, headers=CUSTOMER)
    response = client.post("/checkout/", json={"shipping_address": "1 Main St"}, headers=CUSTOMER)
    assert response.status_code == 201
    return response.json()


class TestHealthCheck:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuth:
    def test_missing_identity_is_401(self, client):
        response = client.get("/cart/")
        assert response.status_code == 401

    def test_unknown_role_is_401(self, client):
        response = client.get("/cart/", headers={"X-User-Id": "1", "X-User-Role": "root"})
        assert response.status_code == 401


class TestProducts:
    def test_list_by_seller(self, client, products):
        response = client.get("/products/", params={"seller": 5})
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["productA"]

    def test_unknown_product(self, client):
        assert client.get("/products/999").status_code == 404


class TestCart:
    def test_get_creates_empty_cart(self, client):
        response = client.get("/cart/", headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["items"] == []

    def test_add_over_stock_is_conflict(self, client, products):
        a, _ = products
        response = client.post("/cart/items", json={"product_id": a.id, "quantity": 11}, headers=CUSTOMER)

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "insufficient_stock"

    def test_set_quantity_zero_removes_line(self, client, products):
        a, b = products
        client.post("/cart/items", json={"product_id": a.id, "quantity": 1}, headers=CUSTOMER)
        client.post("/cart/items", json={"product_id": b.id, "quantity": 1}, headers=CUSTOMER)

        response = client.put(f"/cart/items/{a.id}", json={"quantity": 0}, headers=CUSTOMER)

        assert response.status_code == 200
        assert [i["product_id"] for i in response.json()["items"]] == [b.id]

    def test_zero_quantity_add_is_422(self, client, products):
        a, _ = products
        response = client.post("/cart/items", json={"product_id": a.id, "quantity": 0}, headers=CUSTOMER)
        assert response.status_code == 422

    def test_delete_line(self, client, products):
        a, _ = products
        client.post("/cart/items", json={"product_id": a.id, "quantity": 1}, headers=CUSTOMER)

        response = client.delete(f"/cart/items/{a.id}", headers=CUSTOMER)

        assert response.json()["items"] == []


class TestCheckout:
    def test_checkout_scenario(self, client, products, stock_of):
        a, b = products

        order = place_order(client, products)

        assert Decimal(order["total"]) == Decimal("25.00")
        assert order["status"] == "pending"
        assert stock_of(a.id) == 8
        assert stock_of(b.id) == 3
        assert client.get("/cart/", headers=CUSTOMER).json()["items"] == []

    def test_empty_cart_is_400(self, client):
        response = client.post("/checkout/", json={"shipping_address": "1 Main St"}, headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["detail"] == {"error": "validation_error", "message": "Cart is empty"}


class TestOrders:
    def test_owner_reads_order(self, client, products):
        order = place_order(client, products)

        response = client.get(f"/orders/{order['id']}", headers=CUSTOMER)

        assert response.status_code == 200
        assert len(response.json()["items"]) == 2

    def test_other_customer_forbidden(self, client, products):
        order = place_order(client, products)
        assert client.get(f"/orders/{order['id']}", headers=OTHER).status_code == 403

    def test_unknown_order_404(self, client):
        assert client.get("/orders/999", headers=CUSTOMER).status_code == 404

    def test_invalid_status_is_400(self, client, products):
        order = place_order(client, products)
        response = client.put(f"/orders/{order['id']}/status", json={"status": "lost"}, headers=ADMIN)

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "validation_error"

    def test_admin_status_update_and_delete(self, client, products):
        order = place_order(client, products)

        response = client.put(f"/orders/{order['id']}/status", json={"status": "shipped"}, headers=ADMIN)
        assert response.json()["status"] == "shipped"

        assert client.delete(f"/orders/{order['id']}", headers=ADMIN).status_code == 204
        assert client.get(f"/orders/{order['id']}", headers=ADMIN).status_code == 404

    def test_admin_updates_shipping_address(self, client, products):
        order = place_order(client, products)

        response = client.put(
            f"/orders/{order['id']}", json={"shipping_address": "22 Harbour Road"}, headers=ADMIN
        )

        assert response.status_code == 200
        assert response.json()["shipping_address"] == "22 Harbour Road"
        assert response.json()["status"] == "pending"

    def test_blank_shipping_address_is_400(self, client, products):
        order = place_order(client, products)

        response = client.put(
            f"/orders/{order['id']}", json={"status": "shipped", "shipping_address": " "}, headers=ADMIN
        )

        assert response.status_code == 400
        assert client.get(f"/orders/{order['id']}", headers=ADMIN).json()["status"] == "pending"

    def test_list_own_orders(self, client, products):
        order = place_order(client, products)

        assert [o["id"] for o in client.get("/orders/", headers=CUSTOMER).json()] == [order["id"]]
        assert client.get("/orders/", headers=OTHER).json() == []


class TestPayments:
    def test_mobile_money_without_phone_is_400(self, client, products):
        order = place_order(client, products)

        response = client.post(
            "/payments/",
            json={"order_id": order["id"], "method": "mobile_money", "provider": "mtn"},
            headers=CUSTOMER,
        )

        assert response.status_code == 400
        assert client.get("/payments/", headers=ADMIN).json() == []

    def test_duplicate_payment_is_409(self, client, products):
        order = place_order(client, products)
        first = client.post("/payments/", json={"order_id": order["id"], "method": "card"}, headers=CUSTOMER)
        assert first.status_code == 201

        second = client.post(
            "/payments/", json={"order_id": order["id"], "method": "cash_on_delivery"}, headers=CUSTOMER
        )

        assert second.status_code == 409
        assert second.json()["detail"]["error"] == "duplicate_payment"

    def test_process_returns_processing_immediately(self, client, products, scheduler):
        order = place_order(client, products)
        payment = client.post(
            "/payments/",
            json={"order_id": order["id"], "method": "mobile_money", "provider": "mtn", "phone_number": "0241234567"},
            headers=CUSTOMER,
        ).json()

        response = client.put(f"/payments/{payment['id']}", json={"action": "process"}, headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["status"] == "processing"
        assert response.json()["amount"] == payment["amount"]
        assert scheduler.scheduled == [payment["id"]]

    def test_cancel_then_process_is_409(self, client, products):
        order = place_order(client, products)
        payment = client.post("/payments/", json={"order_id": order["id"], "method": "card"}, headers=CUSTOMER).json()

        cancelled = client.put(f"/payments/{payment['id']}", json={"action": "cancel"}, headers=CUSTOMER)
        assert cancelled.json()["status"] == "cancelled"

        response = client.put(f"/payments/{payment['id']}", json={"action": "process"}, headers=CUSTOMER)
        assert response.status_code == 409

    def test_invalid_action_is_422(self, client, products):
        order = place_order(client, products)
        payment = client.post("/payments/", json={"order_id": order["id"], "method": "card"}, headers=CUSTOMER).json()

        response = client.put(f"/payments/{payment['id']}", json={"action": "refund"}, headers=CUSTOMER)
        assert response.status_code == 422

    def test_foreign_payment_forbidden(self, client, products):
        order = place_order(client, products)
        payment = client.post("/payments/", json={"order_id": order["id"], "method": "card"}, headers=CUSTOMER).json()

        assert client.get(f"/payments/{payment['id']}", headers=OTHER).status_code == 403
        assert client.get("/payments/404", headers=OTHER).status_code == 404
