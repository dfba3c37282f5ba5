"""Storefront load test scenarios.

Stateful SequentialTaskSet journeys: a shopper who fills a cart and pays by
card, a shopper who pays cash and has the order auto-completed, and a shopper
who watches the engagement gate to waive the delivery fee.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    card_checkout_data,
    cart_item_data,
    cash_checkout_data,
    customer_headers,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import ShopperState


class _ShopperJourney(SequentialTaskSet):
    def on_start(self):
        self.state = ShopperState(headers=customer_headers())

    def on_stop(self):
        self.client.delete("/session", headers=self.state.headers, name="DELETE /session")

    def _add_item(self):
        with self.client.post(
            "/cart/items",
            json=cart_item_data(),
            headers=self.state.headers,
            catch_response=True,
            name="POST /cart/items",
        ) as resp:
            if resp.status_code == 201:
                self.state.item_ids = [item["id"] for item in resp.json()["items"]]
            else:
                resp.failure(f"Add cart item failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    def _checkout(self, payload, expected=(201,)):
        with self.client.post(
            "/cart/checkout",
            json=payload,
            headers=self.state.headers,
            catch_response=True,
            name="POST /cart/checkout",
        ) as resp:
            if resp.status_code in expected:
                order = resp.json()["order"]
                self.state.order_id = order["id"]
                self.state.order_status = order["status"]
                resp.success()
            else:
                resp.failure(f"Checkout failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()


class CardCheckoutJourney(_ShopperJourney):
    """Add Items -> Change Amount -> Card Checkout -> Deliver -> Complete."""

    @task
    def add_items(self):
        for _ in range(random.randint(1, 3)):
            self._add_item()

    @task
    def change_amount(self):
        item_id = random.choice(self.state.item_ids)
        with self.client.put(
            f"/cart/items/{item_id}",
            json={"amount": random.randint(1, 5)},
            headers=self.state.headers,
            catch_response=True,
            name="PUT /cart/items/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Update amount failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def checkout(self):
        # One in ten shoppers types a card the simulated check rejects.
        accepted = random.random() > 0.1
        self._checkout(card_checkout_data(accepted=accepted), expected=(201, 402))
        if not accepted:
            self.interrupt()

    @task
    def deliver(self):
        for status in ("delivering", "completed"):
            with self.client.put(
                f"/orders/{self.state.order_id}/status",
                json={"status": status},
                headers=self.state.headers,
                catch_response=True,
                name="PUT /orders/{id}/status",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Status {status} failed: {resp.status_code}: {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def done(self):
        self.interrupt()


class CashCheckoutJourney(_ShopperJourney):
    """Add Item -> Cash Checkout -> List Orders."""

    @task
    def add_item(self):
        self._add_item()

    @task
    def checkout(self):
        self._checkout(cash_checkout_data())

    @task
    def list_orders(self):
        with self.client.get(
            "/orders",
            headers=self.state.headers,
            catch_response=True,
            name="GET /orders",
        ) as resp:
            if resp.status_code != 200 or not resp.json():
                resp.failure(f"List orders failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class EngagementJourney(_ShopperJourney):
    """Add Item -> Start Gate -> Pause -> Resume -> Rendered -> Check Waiver."""

    @task
    def add_item(self):
        self._add_item()

    @task
    def start_gate(self):
        with self.client.post(
            "/cart/engagement",
            headers=self.state.headers,
            catch_response=True,
            name="POST /cart/engagement",
        ) as resp:
            if resp.status_code == 201:
                self.state.gate_state = resp.json()["state"]
            else:
                resp.failure(f"Start gate failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def pause_and_resume(self):
        for action in ("visibility-lost", "play"):
            with self.client.post(
                f"/cart/engagement/{action}",
                headers=self.state.headers,
                catch_response=True,
                name=f"POST /cart/engagement/{action}",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Gate {action} failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def rendered(self):
        with self.client.post(
            "/cart/engagement/rendered",
            headers=self.state.headers,
            catch_response=True,
            name="POST /cart/engagement/rendered",
        ) as resp:
            if resp.status_code == 200:
                self.state.gate_state = resp.json()["state"]
            else:
                resp.failure(f"Gate rendered failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def check_waiver(self):
        with self.client.get(
            "/cart",
            headers=self.state.headers,
            catch_response=True,
            name="GET /cart",
        ) as resp:
            if resp.status_code != 200 or not resp.json()["summary"]["is_delivery_fee_waived"]:
                resp.failure("Delivery fee was not waived after the gate completed")

    @task
    def done(self):
        self.interrupt()


class ShopperUser(HttpUser):
    """Weighted mix of storefront shopper journeys."""

    wait_time = between(0.5, 2)
    tasks = {CardCheckoutJourney: 5, CashCheckoutJourney: 3, EngagementJourney: 2}
