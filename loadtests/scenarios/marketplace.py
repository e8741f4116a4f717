"""Marketplace load test scenarios.

Three stateful SequentialTaskSet journeys: a prepaid order walked all the way
to delivery, an order cancelled before it ships, and a vendor checking its
wallet and withdrawing part of the available balance. Vendors come from a
small shared pool, so concurrent journeys contend on the same wallets.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    PREPAID_METHODS,
    VENDOR_POOL,
    cancellation_reason,
    order_data,
    shipping_terms,
    withdrawal_data,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import OrderState, WalletState


class _OrderJourney(SequentialTaskSet):
    payment_methods = PREPAID_METHODS + ["cod"]

    def on_start(self):
        self.state = OrderState()

    def _move(self, status, role, extra=None, label=None):
        payload = {"status": status, **(extra or {})}
        with self.client.put(
            f"/orders/{self.state.order_id}/status",
            json=payload,
            headers={"X-Actor-Role": role},
            catch_response=True,
            name=label or f"PUT /orders/{{id}}/status [{status}]",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = status
            else:
                resp.failure(f"Move to {status} failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def place_order(self):
        payload = order_data(payment_method=random.choice(self.payment_methods))
        with self.client.post("/orders", json=payload, catch_response=True, name="POST /orders") as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.order_id = body["order_id"]
                self.state.order_number = body["order_number"]
                self.state.payment_method = body["payment_method"]
                self.state.vendor_ids = sorted({item["vendor_id"] for item in body["items"]})
            else:
                resp.failure(f"Place order failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()


class OrderDeliveryJourney(_OrderJourney):
    """Place -> Confirm -> Processing -> Ship -> Accept -> Out for delivery -> Deliver.

    The happy path. Prepaid orders credit every vendor on placement and
    release the credit on delivery.
    """

    @task
    def confirm(self):
        self._move("confirmed", "vendor")

    @task
    def start_processing(self):
        self._move("processing", "vendor")

    @task
    def ship(self):
        self._move("shipped", "vendor", extra=shipping_terms())

    @task
    def accept_delivery(self):
        self.state.delivery_partner_id = f"rider-{random.randint(1, 50)}"
        with self.client.put(
            f"/orders/{self.state.order_id}/assign",
            json={"delivery_partner_id": self.state.delivery_partner_id},
            headers={"X-Actor-Role": "delivery"},
            catch_response=True,
            name="PUT /orders/{id}/assign",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Accept delivery failed: {extract_error_detail(resp)}")

    @task
    def out_for_delivery(self):
        self._move("out_for_delivery", "delivery")

    @task
    def deliver(self):
        self._move("delivered", "delivery")

    @task
    def check_vendor_wallet(self):
        for vendor_id in self.state.vendor_ids:
            with self.client.get(
                f"/wallets/{vendor_id}",
                catch_response=True,
                name="GET /wallets/{id}",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Get wallet failed: {extract_error_detail(resp)}")

    @task
    def check_partner_earnings(self):
        with self.client.get(
            f"/delivery-partners/{self.state.delivery_partner_id}/earnings",
            catch_response=True,
            name="GET /delivery-partners/{id}/earnings",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Get partner earnings failed: {extract_error_detail(resp)}")
            elif resp.json()["total_earned"] <= 0:
                resp.failure("Delivered order left the partner with no earnings")

    @task
    def done(self):
        self.interrupt()


class OrderCancellationJourney(_OrderJourney):
    """Place -> Confirm -> Cancel.

    The unhappy path. Reverses the vendors' pending credits for prepaid orders.
    """

    payment_methods = PREPAID_METHODS

    @task
    def confirm(self):
        self._move("confirmed", "vendor")

    @task
    def cancel(self):
        self._move("cancelled", "customer", extra={"reason": cancellation_reason()})

    @task
    def view_order(self):
        with self.client.get(
            f"/orders/{self.state.order_id}",
            catch_response=True,
            name="GET /orders/{id}",
        ) as resp:
            if resp.status_code != 200 or resp.json()["status"] != "cancelled":
                resp.failure(f"Cancelled order not visible: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class VendorWalletJourney(SequentialTaskSet):
    """View vendor orders -> Summary -> Transactions -> Withdraw.

    Withdraws a slice of whatever is available. Insufficient balance is an
    expected outcome under contention and is not counted as a failure.
    """

    def on_start(self):
        self.state = WalletState(vendor_id=random.choice(VENDOR_POOL))

    @task
    def list_orders(self):
        with self.client.get(
            f"/vendors/{self.state.vendor_id}/orders",
            catch_response=True,
            name="GET /vendors/{id}/orders",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"List vendor orders failed: {extract_error_detail(resp)}")

    @task
    def summary(self):
        with self.client.get(
            f"/wallets/{self.state.vendor_id}/summary",
            catch_response=True,
            name="GET /wallets/{id}/summary",
        ) as resp:
            if resp.status_code == 200:
                self.state.available = resp.json()["wallet"]["available"]
            else:
                resp.failure(f"Wallet summary failed: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def transactions(self):
        with self.client.get(
            f"/wallets/{self.state.vendor_id}/transactions",
            params={"limit": 10},
            catch_response=True,
            name="GET /wallets/{id}/transactions",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"List transactions failed: {extract_error_detail(resp)}")

    @task
    def withdraw(self):
        if self.state.available < 200:
            return
        amount = round(self.state.available * random.uniform(0.2, 0.5), 2)
        with self.client.post(
            f"/wallets/{self.state.vendor_id}/withdrawals",
            json=withdrawal_data(max(amount, 100.0)),
            catch_response=True,
            name="POST /wallets/{id}/withdrawals",
        ) as resp:
            if resp.status_code == 201:
                self.state.withdrawals += 1
                resp.success()
            elif resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Withdrawal failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class MarketplaceUser(HttpUser):
    """Locust user simulating marketplace traffic.

    Weighted distribution:
    - 55% Order delivered end to end
    - 20% Order cancelled before shipping
    - 25% Vendor checking its wallet and withdrawing
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        OrderDeliveryJourney: 11,
        OrderCancellationJourney: 4,
        VendorWalletJourney: 5,
    }
