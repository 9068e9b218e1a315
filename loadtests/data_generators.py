"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names expected by the API's Pydantic request
schemas. Product ids refer to the demo catalogue created by
``scripts/seed_products.py``.
"""

import random
import uuid

from faker import Faker

fake = Faker()

SEEDED_PRODUCTS = 50


def product_id() -> str:
    return f"LT-PROD-{random.randint(1, SEEDED_PRODUCTS):04d}"


def session_id() -> str:
    return f"sess-lt-{uuid.uuid4().hex[:12]}"


def customer_id() -> str:
    return f"cust-lt-{uuid.uuid4().hex[:8]}"


def guest_email() -> str:
    return f"{fake.user_name()[:20]}.{uuid.uuid4().hex[:4]}@{fake.free_email_domain()}"


def cart_item_data(session: str | None = None, customer: str | None = None) -> dict:
    return {
        "product_id": product_id(),
        "quantity": random.randint(1, 3),
        "session_id": session,
        "customer_id": customer,
    }


def address_data() -> dict:
    return {
        "full_name": fake.name(),
        "phone": f"98{random.randint(10_000_000, 99_999_999)}",
        "address_line": fake.street_address(),
        "city": random.choice(["Kathmandu", "Lalitpur", "Bhaktapur", "Pokhara"]),
    }


def checkout_data(method: str = "cod", items: int | None = None) -> dict:
    count = items or random.randint(1, 3)
    # Distinct products so the request is not folded
    chosen = random.sample(range(1, SEEDED_PRODUCTS + 1), count)
    return {
        "items": [{"product_id": f"LT-PROD-{n:04d}", "quantity": random.randint(1, 2)} for n in chosen],
        "method": method,
        "guest_email": guest_email(),
        "shipping_address": address_data(),
    }
