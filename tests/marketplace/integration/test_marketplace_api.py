"""Integration tests for the marketplace API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from marketplace import services
from marketplace.api import order_router, partner_router, register_error_handlers, vendor_router, wallet_router
from marketplace.order.order import Order
from marketplace.wallet import ledger
from protean import current_domain


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(vendor_router)
    app.include_router(wallet_router)
    app.include_router(partner_router)
    register_error_handlers(app)
    return TestClient(app)


def _order_payload(payment_method="upi"):
    return {
        "customer_id": "cust-api-001",
        "items": [
            {"product_id": "p1", "title": "Kurta", "unit_price": 200.0, "quantity": 1, "vendor_id": "vendor-1"},
            {"product_id": "p2", "title": "Dupatta", "unit_price": 300.0, "quantity": 1, "vendor_id": "vendor-1"},
            {"product_id": "p3", "title": "Lamp", "unit_price": 500.0, "quantity": 1, "vendor_id": "vendor-2"},
        ],
        "shipping_address": {"name": "Asha", "address": "12 MG Road", "city": "Bengaluru", "pincode": "560001"},
        "payment_method": payment_method,
    }


def _place(client, payment_method="upi"):
    response = client.post("/orders", json=_order_payload(payment_method))
    assert response.status_code == 201
    return response.json()["order_id"]


def _move(client, order_id, status, role, **extra):
    return client.put(
        f"/orders/{order_id}/status",
        json={"status": status, **extra},
        headers={"X-Actor-Role": role},
    )


def _ship(client, order_id):
    assert _move(client, order_id, "confirmed", "vendor").status_code == 200
    assert _move(client, order_id, "processing", "vendor").status_code == 200
    response = _move(client, order_id, "shipped", "vendor", delivery_payment=40.0, estimated_delivery_minutes=30)
    assert response.status_code == 200


class TestPlaceOrderEndpoint:
    def test_place_order(self, client):
        response = client.post("/orders", json=_order_payload())
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["order_number"].startswith("ORD-")
        assert body["pricing"]["total"] == 1000.0
        assert [entry["stage"] for entry in body["timeline"]] == [
            "placed",
            "confirmed",
            "shipped",
            "out_for_delivery",
            "delivered",
        ]

        order = current_domain.repository_for(Order).get(body["order_id"])
        assert order.customer_id == "cust-api-001"

    def test_empty_basket_is_rejected(self, client):
        payload = _order_payload()
        payload["items"] = []
        response = client.post("/orders", json=payload)
        assert response.status_code == 400

    def test_bad_quantity_fails_schema(self, client):
        payload = _order_payload()
        payload["items"][0]["quantity"] = 0
        response = client.post("/orders", json=payload)
        assert response.status_code == 422

    def test_unknown_payment_method(self, client):
        response = client.post("/orders", json=_order_payload("barter"))
        assert response.status_code == 400


class TestGetOrderEndpoint:
    def test_get_order(self, client):
        order_id = _place(client)
        response = client.get(f"/orders/{order_id}")
        assert response.status_code == 200
        assert response.json()["order_id"] == order_id

    def test_unknown_order(self, client):
        response = client.get("/orders/does-not-exist")
        assert response.status_code == 404


class TestTransitionEndpoint:
    def test_confirm(self, client):
        order_id = _place(client)
        response = _move(client, order_id, "confirmed", "vendor")
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"
        assert response.json()["timeline"][1]["completed"] is True

    def test_role_header_is_required(self, client):
        order_id = _place(client)
        response = client.put(f"/orders/{order_id}/status", json={"status": "confirmed"})
        assert response.status_code == 422

    def test_vendor_cannot_deliver(self, client):
        order_id = _place(client)
        _ship(client, order_id)
        response = _move(client, order_id, "delivered", "vendor")
        assert response.status_code == 403
        assert "reason" in response.json()

    def test_cancel_after_shipping_conflicts(self, client):
        order_id = _place(client)
        _ship(client, order_id)
        response = _move(client, order_id, "cancelled", "admin")
        assert response.status_code == 409

    def test_delivered_order_conflicts(self, client):
        order_id = _place(client)
        _ship(client, order_id)
        assert _move(client, order_id, "delivered", "delivery").status_code == 200
        assert _move(client, order_id, "delivered", "admin").status_code == 409

    def test_shipping_without_terms(self, client):
        order_id = _place(client)
        _move(client, order_id, "confirmed", "vendor")
        _move(client, order_id, "processing", "vendor")
        response = _move(client, order_id, "shipped", "vendor")
        assert response.status_code == 400
        assert client.get(f"/orders/{order_id}").json()["status"] == "processing"

    def test_nan_delivery_payment(self, client):
        order_id = _place(client)
        _move(client, order_id, "confirmed", "vendor")
        _move(client, order_id, "processing", "vendor")
        response = client.put(
            f"/orders/{order_id}/status",
            content='{"status": "shipped", "delivery_payment": NaN, "estimated_delivery_minutes": 30}',
            headers={"X-Actor-Role": "vendor", "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert client.get(f"/orders/{order_id}").json()["status"] == "processing"

    def test_unknown_order(self, client):
        response = _move(client, "does-not-exist", "confirmed", "vendor")
        assert response.status_code == 404


class TestAssignEndpoint:
    def test_delivery_partner_accepts(self, client):
        order_id = _place(client)
        _ship(client, order_id)
        response = client.put(
            f"/orders/{order_id}/assign",
            json={"delivery_partner_id": "rider-7"},
            headers={"X-Actor-Role": "delivery"},
        )
        assert response.status_code == 200
        assert response.json()["delivery_partner_id"] == "rider-7"

    def test_customer_cannot_assign(self, client):
        order_id = _place(client)
        response = client.put(
            f"/orders/{order_id}/assign",
            json={"delivery_partner_id": "rider-7"},
            headers={"X-Actor-Role": "customer"},
        )
        assert response.status_code == 403


class TestVendorOrdersEndpoint:
    def test_list_vendor_orders(self, client):
        _place(client)
        response = client.get("/vendors/vendor-1/orders")
        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 1
        assert rows[0]["vendor_subtotal"] == 500.0
        assert rows[0]["vendor_items_count"] == 2

    def test_unknown_status_filter(self, client):
        response = client.get("/vendors/vendor-1/orders", params={"status": "lost"})
        assert response.status_code == 400


class TestWalletEndpoints:
    def test_empty_wallet(self, client):
        response = client.get("/wallets/vendor-new")
        assert response.status_code == 200
        assert response.json()["available"] == 0.0

    def test_delivery_releases_to_available(self, client):
        order_id = _place(client)
        _ship(client, order_id)
        _move(client, order_id, "delivered", "delivery")

        wallet = client.get("/wallets/vendor-1").json()
        assert wallet["available"] == 500.0
        assert wallet["pending"] == 0.0

    def test_transactions_page(self, client):
        _place(client)
        response = client.get("/wallets/vendor-1/transactions", params={"kind": "credit"})
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["transactions"][0]["amount"] == 500.0
        assert body["transactions"][0]["status"] == "pending"

    def test_summary(self, client):
        _place(client)
        response = client.get("/wallets/vendor-2/summary")
        assert response.status_code == 200
        body = response.json()
        assert body["wallet"]["pending"] == 500.0
        assert len(body["recent_transactions"]) == 1

    def test_withdrawal(self, client):
        order_id = _place(client)
        _ship(client, order_id)
        _move(client, order_id, "delivered", "delivery")

        response = client.post(
            "/wallets/vendor-1/withdrawals",
            json={"amount": 200.0, "method": "upi", "upi_id": "vendor@upi"},
        )
        assert response.status_code == 201
        assert response.json()["available"] == 300.0

    def test_withdrawal_over_balance(self, client):
        response = client.post(
            "/wallets/vendor-1/withdrawals",
            json={"amount": 200.0, "method": "upi", "upi_id": "vendor@upi"},
        )
        assert response.status_code == 400
        assert "reason" in response.json()


class TestStorageFailures:
    def test_storage_failure_asks_client_to_retry(self, client, monkeypatch):
        def unavailable(vendor_id):
            raise RuntimeError("connection to db-primary:5432 refused")

        monkeypatch.setattr(services, "_find_wallet", unavailable)

        response = client.get("/wallets/vendor-1")
        assert response.status_code == 503
        assert response.json() == {"error": "Please try again"}
        assert "db-primary" not in response.text

    def test_failed_transition_is_retryable(self, client, monkeypatch):
        order_id = _place(client)
        _ship(client, order_id)

        with monkeypatch.context() as patched:
            patched.setattr(ledger, "release", lambda vendor_id, order_id: 1 / 0)
            response = _move(client, order_id, "delivered", "delivery")
        assert response.status_code == 503
        assert client.get(f"/orders/{order_id}").json()["status"] == "shipped"

        assert _move(client, order_id, "delivered", "delivery").status_code == 200


class TestPartnerEarningsEndpoint:
    def test_delivered_order_pays_partner(self, client):
        order_id = _place(client)
        _ship(client, order_id)
        client.put(
            f"/orders/{order_id}/assign",
            json={"delivery_partner_id": "rider-7"},
            headers={"X-Actor-Role": "delivery"},
        )
        assert _move(client, order_id, "delivered", "delivery").status_code == 200

        response = client.get("/delivery-partners/rider-7/earnings")
        assert response.status_code == 200
        body = response.json()
        assert body["total_earned"] == 40.0
        assert body["deliveries_completed"] == 1
        assert body["entries"][0]["order_id"] == order_id

    def test_new_partner(self, client):
        response = client.get("/delivery-partners/rider-new/earnings")
        assert response.status_code == 200
        assert response.json()["total_earned"] == 0.0
