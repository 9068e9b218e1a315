"""Ordering bounded context: Shopping Cart, Orders and Checkout.

Handles the live cart (guest and registered), the checkout flow that prices
a cart and hands it to a payment gateway, and the orders materialized once
payment is confirmed (or immediately, for pay on delivery).
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
