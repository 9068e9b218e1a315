"""Checkout load test scenarios.

Three journeys:
- ShopperJourney: guest fills a cart, views it, signs in (cart merge).
- OnlineCheckoutJourney: initiate an online payment, verify it, then replay
  the verification and expect 410 (session consumed).
- CashOnDeliveryUser: pay-on-delivery checkouts that create orders directly.

Run the API with PAYMENT_GATEWAYS=fake so online payments verify.
"""

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import cart_item_data, checkout_data, customer_id, fake, session_id
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CheckoutState, ShopperState


class ShopperJourney(SequentialTaskSet):
    """Add items as a guest -> view cart -> merge into a customer cart."""

    def on_start(self):
        self.state = ShopperState(session_id=session_id(), customer_id=customer_id())

    @task
    def add_items(self):
        for _ in range(3):
            with self.client.post(
                "/carts/items",
                json=cart_item_data(session=self.state.session_id),
                catch_response=True,
                name="POST /carts/items",
            ) as resp:
                if resp.status_code == 201:
                    self.state.items_added += 1
                else:
                    resp.failure(f"Add cart item failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def view_cart(self):
        with self.client.get(
            "/carts",
            params={"session_id": self.state.session_id},
            catch_response=True,
            name="GET /carts",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"View cart failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def sign_in(self):
        with self.client.post(
            "/carts/merge",
            json={"session_id": self.state.session_id, "customer_id": self.state.customer_id},
            catch_response=True,
            name="POST /carts/merge",
        ) as resp:
            # The auth profile is strict; throttling is an expected outcome
            if resp.status_code not in (200, 429):
                resp.failure(f"Cart merge failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class OnlineCheckoutJourney(SequentialTaskSet):
    """Initiate -> verify -> verify again (must be refused)."""

    def on_start(self):
        self.state = CheckoutState()

    @task
    def initiate(self):
        with self.client.post(
            "/checkout/initiate",
            json=checkout_data(method="khalti"),
            catch_response=True,
            name="POST /checkout/initiate [online]",
        ) as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.order_id = body["order_id"]
                self.state.transaction_id = body["transaction_id"]
            else:
                resp.failure(f"Initiate failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def verify(self):
        with self.client.post(
            "/checkout/verify",
            json={"order_id": self.state.order_id, "transaction_id": self.state.transaction_id},
            catch_response=True,
            name="POST /checkout/verify",
        ) as resp:
            if resp.status_code == 200:
                self.state.order_created = True
            else:
                resp.failure(f"Verify failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def replay_verify(self):
        with self.client.post(
            "/checkout/verify",
            json={"order_id": self.state.order_id, "transaction_id": self.state.transaction_id},
            catch_response=True,
            name="POST /checkout/verify [replay]",
        ) as resp:
            if resp.status_code == 410:
                resp.success()
            else:
                resp.failure(f"Replay should be refused with 410, got {resp.status_code}")

    @task
    def done(self):
        self.interrupt()


class _ClientAddressMixin:
    def on_start(self):
        # Rate limits are keyed by client address
        self.client.headers["X-Forwarded-For"] = fake.ipv4()


class CheckoutUser(_ClientAddressMixin, HttpUser):
    wait_time = between(1, 3)
    tasks = {ShopperJourney: 2, OnlineCheckoutJourney: 1}


class CashOnDeliveryUser(_ClientAddressMixin, HttpUser):
    wait_time = between(1, 3)

    @task
    def checkout(self):
        with self.client.post(
            "/checkout/initiate",
            json=checkout_data(method="cod"),
            catch_response=True,
            name="POST /checkout/initiate [cod]",
        ) as resp:
            if resp.status_code != 201 or not resp.json().get("order_created"):
                resp.failure(f"COD checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
