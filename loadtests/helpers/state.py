"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared across users.
"""

from dataclasses import dataclass


@dataclass
class ShopperState:
    """A guest who browses, fills a cart and signs in."""

    session_id: str | None = None
    customer_id: str | None = None
    items_added: int = 0


@dataclass
class CheckoutState:
    """An online checkout between initiation and verification."""

    order_id: str | None = None
    transaction_id: str | None = None
    order_created: bool = False
