"""Error taxonomy shared by the checkout pipeline and its infrastructure.

Input-shape problems are reported with ``protean.exceptions.ValidationError``
(a field -> messages dict) like every other command in the platform. The
classes below cover catalogue/stock invariants, cart lookup, payment gateway
outcomes, the checkout session lifecycle, admission control and the
ephemeral store.

Each error carries the HTTP status it maps to, so the API layer can render it
without a lookup table.
"""


class StorefrontError(Exception):
    """Base class for user-actionable storefront errors."""

    status_code = 400

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.message, "code": type(self).__name__}


# ---------------------------------------------------------------------------
# Catalogue / stock
# ---------------------------------------------------------------------------
class ProductNotFound(StorefrontError):
    status_code = 404

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product {product_id} not found", product_id=product_id)
        self.product_id = product_id


class ProductUnavailable(StorefrontError):
    status_code = 409

    def __init__(self, product_id: str, name: str | None = None) -> None:
        super().__init__(
            f"Product {name or product_id} is no longer available",
            product_id=product_id,
        )
        self.product_id = product_id


class InsufficientInventory(StorefrontError):
    status_code = 409

    def __init__(self, product_id: str, requested: int, available: int | None = None, name: str | None = None) -> None:
        message = f"Insufficient inventory for {name or product_id}"
        if available is not None:
            message += f". Only {available} available"
        super().__init__(message, product_id=product_id, requested=requested, available=available)
        self.product_id = product_id
        self.requested = requested
        self.available = available


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class CartNotFound(StorefrontError):
    status_code = 404

    def __init__(self, owner: str) -> None:
        super().__init__(f"No cart found for {owner}", owner=owner)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class PaymentInitiationFailed(StorefrontError):
    status_code = 402


class PaymentVerificationFailed(StorefrontError):
    status_code = 402


# ---------------------------------------------------------------------------
# Checkout lifecycle
# ---------------------------------------------------------------------------
class SessionExpiredOrNotFound(StorefrontError):
    """No live checkout session exists for the order.

    Raised both for sessions that expired and for sessions that were already
    consumed by a successful verification. Callers should treat it as
    "nothing left to verify" rather than retry.
    """

    status_code = 410

    def __init__(self, order_id: str) -> None:
        super().__init__("Payment session not found or expired", order_id=order_id)
        self.order_id = order_id


class OrderAlreadyExists(StorefrontError):
    status_code = 409

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} already exists", order_id=order_id)
        self.order_id = order_id


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
class RateLimitExceeded(StorefrontError):
    status_code = 429

    def __init__(self, result, message: str = "Too many requests, please try again later") -> None:
        super().__init__(message)
        self.result = result


class StorageUnavailable(StorefrontError):
    status_code = 503

    def __init__(
        self, message: str = "Storage backend unavailable, please retry", cause: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.cause = cause
