"""Checkout service factory.

The service is built once per process from the configured collaborators
(product store, cache, gateways and settings) and shared by every
request. ``set_checkout_service`` / ``reset_checkout_service`` swap it in tests.
"""

from catalogue.store import get_product_store
from ordering.cart.management import clear_customer_cart
from ordering.checkout.service import CheckoutService
from ordering.checkout.session import CheckoutSessionStore
from ordering.order.store import RepositoryOrderStore
from payments.gateway import get_payment_adapter
from shared.cache import get_cache
from shared.settings import get_settings

_current_service: CheckoutService | None = None


def build_checkout_service(**overrides) -> CheckoutService:
    options = {
        "products": get_product_store(),
        "orders": RepositoryOrderStore(),
        "sessions": CheckoutSessionStore(get_cache()),
        "payments": get_payment_adapter(),
        "settings": get_settings(),
        "clear_cart": clear_customer_cart,
    }
    options.update(overrides)
    return CheckoutService(**options)


def get_checkout_service() -> CheckoutService:
    global _current_service
    if _current_service is None:
        _current_service = build_checkout_service()
    return _current_service


def set_checkout_service(service: CheckoutService) -> None:
    global _current_service
    _current_service = service


def reset_checkout_service() -> None:
    global _current_service
    _current_service = None
