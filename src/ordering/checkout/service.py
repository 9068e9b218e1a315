"""Checkout orchestrator.

State machine:
    online methods:    INITIATED → AWAITING_PAYMENT → ORDER_CREATED
                       AWAITING_PAYMENT → EXPIRED (no verification before the session TTL)
    pay on delivery:   INITIATED → ORDER_CREATED

``initiate_checkout`` validates and prices the cart. Pay-on-delivery orders
are materialized on the spot. For online payments a checkout session is
created under the order id (refused if one is live) and only then is the
payment handed to the gateway. ``verify_payment`` turns a live session into
an order once the gateway confirms the payment.

The session TTL is the only timeout. A payment the gateway confirms after the
session expired does not create an order: ``verify_payment`` refuses it with
``SessionExpiredOrNotFound`` and the payment has to be reconciled outside
checkout.
"""

import secrets
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum

import structlog
from protean.exceptions import ValidationError

from catalogue.store import ProductStore
from ordering.checkout.materializer import OrderMaterializer
from ordering.checkout.pricing import PriceSummary, summarize
from ordering.checkout.session import SESSION_TTL, CheckoutSession, CheckoutSessionStore
from ordering.order.order import PaymentStatus
from ordering.order.store import OrderDraft, OrderLine, OrderStore
from payments.gateway import PaymentGatewayAdapter
from payments.gateway.port import CustomerInfo, PaymentMethod
from shared.errors import (
    InsufficientInventory,
    OrderAlreadyExists,
    PaymentInitiationFailed,
    PaymentVerificationFailed,
    ProductNotFound,
    ProductUnavailable,
    SessionExpiredOrNotFound,
    StorageUnavailable,
)
from shared.settings import SettingsProvider

logger = structlog.get_logger(__name__)


class CheckoutState(Enum):
    INITIATED = "Initiated"
    AWAITING_PAYMENT = "Awaiting_Payment"
    ORDER_CREATED = "Order_Created"
    EXPIRED = "Expired"


@dataclass(frozen=True)
class CheckoutItem:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    state: CheckoutState
    method: PaymentMethod
    amount: float
    payment_url: str | None = None
    transaction_id: str | None = None
    payment_status: str | None = None

    @property
    def order_created(self) -> bool:
        return self.state == CheckoutState.ORDER_CREATED


def generate_order_id(now: float) -> str:
    return f"order-{int(now * 1000)}-{secrets.token_hex(5)[:9]}"


class CheckoutService:
    def __init__(
        self,
        products: ProductStore,
        orders: OrderStore,
        sessions: CheckoutSessionStore,
        payments: PaymentGatewayAdapter,
        settings: SettingsProvider,
        clear_cart: Callable[[str], object] | None = None,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[float], str] = generate_order_id,
        session_ttl: int = SESSION_TTL,
    ) -> None:
        self.products = products
        self.orders = orders
        self.sessions = sessions
        self.payments = payments
        self.settings = settings
        self.clear_cart = clear_cart
        self.clock = clock
        self.id_factory = id_factory
        self.session_ttl = session_ttl
        self.materializer = OrderMaterializer(products, orders)

    # -------------------------------------------------------------------
    # Initiation
    # -------------------------------------------------------------------
    def initiate_checkout(
        self,
        items: Iterable,
        method,
        shipping_address: dict | None = None,
        guest_email: str | None = None,
        user_id: str | None = None,
        order_id: str | None = None,
    ) -> CheckoutResult:
        method = self._parse_method(method)
        requested = self._fold_items(items)
        if not user_id and not guest_email:
            raise ValidationError({"guest_email": ["Guest email is required when not signed in"]})

        now = self.clock()
        if order_id:
            if self.sessions.exists(order_id) or self.orders.exists(order_id):
                raise OrderAlreadyExists(order_id)
        else:
            order_id = self.id_factory(now)

        # Every line is checked before anything is written
        lines = tuple(self._snapshot_line(product_id, quantity) for product_id, quantity in requested.items())
        pricing = summarize(lines, self.settings)
        log = logger.bind(order_id=order_id, method=method.value)

        if method == PaymentMethod.COD:
            return self._place_on_delivery(
                order_id, lines, pricing, shipping_address, guest_email, user_id, log
            )

        # The session reserves the order id before the gateway is called
        session = CheckoutSession(
            order_id=order_id,
            lines=lines,
            method=method.value,
            subtotal=pricing.subtotal,
            shipping_cost=pricing.shipping_cost,
            tax_total=pricing.tax_total,
            amount=pricing.grand_total,
            created_at=now,
            expires_at=now + self.session_ttl,
            user_id=user_id,
            guest_email=guest_email,
            shipping_address=shipping_address,
        )
        self.sessions.create(session)

        result = self.payments.initiate(
            method,
            order_id,
            pricing.grand_total,
            customer=self._customer_info(shipping_address, guest_email),
            product_name=self._purchase_name(lines),
        )
        if not result.success:
            log.warning("Payment initiation failed", error=result.error)
            self.sessions.delete(order_id)
            raise PaymentInitiationFailed(result.error or "Payment initiation failed", order_id=order_id)

        try:
            self.sessions.save(replace(session, gateway_reference=result.transaction_id))
        except StorageUnavailable:
            self.sessions.delete(order_id)
            raise
        log.info("Checkout awaiting payment", amount=pricing.grand_total)

        return CheckoutResult(
            order_id=order_id,
            state=CheckoutState.AWAITING_PAYMENT,
            method=method,
            amount=pricing.grand_total,
            payment_url=result.payment_url,
            transaction_id=result.transaction_id,
        )

    def _place_on_delivery(self, order_id, lines, pricing, shipping_address, guest_email, user_id, log):
        reference = self.payments.initiate(PaymentMethod.COD, order_id, pricing.grand_total).transaction_id
        self.materializer.materialize(
            self._draft(
                order_id,
                lines,
                pricing,
                PaymentMethod.COD,
                PaymentStatus.PENDING,
                reference,
                user_id=user_id,
                guest_email=guest_email,
                shipping_address=shipping_address,
            )
        )
        log.info("Pay-on-delivery order created", amount=pricing.grand_total)

        return CheckoutResult(
            order_id=order_id,
            state=CheckoutState.ORDER_CREATED,
            method=PaymentMethod.COD,
            amount=pricing.grand_total,
            transaction_id=reference,
            payment_status=PaymentStatus.PENDING.value,
        )

    # -------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------
    def get_session(self, order_id: str) -> CheckoutSession | None:
        session = self.sessions.load(order_id)
        if session is None or session.is_expired(self.clock()):
            return None
        return session

    def verify_payment(self, transaction_id: str, order_id: str) -> CheckoutResult:
        if not transaction_id or not order_id:
            raise ValidationError({"transaction_id": ["transaction_id and order_id are required"]})

        log = logger.bind(order_id=order_id, transaction_id=transaction_id)
        session = self.sessions.load(order_id)
        if session is None:
            raise SessionExpiredOrNotFound(order_id)
        if session.is_expired(self.clock()):
            log.info("Checkout session expired", expired_at=session.expires_at)
            self.sessions.delete(order_id)
            raise SessionExpiredOrNotFound(order_id)

        if session.gateway_reference is None:
            raise PaymentVerificationFailed("Payment is still being initiated", order_id=order_id)

        method = PaymentMethod(session.method)
        result = self.payments.verify(
            method,
            transaction_id,
            order_reference=session.gateway_reference,
            amount=session.amount,
        )
        if not result.success:
            log.warning("Payment verification failed", error=result.error)
            raise PaymentVerificationFailed(result.error or "Payment verification failed", order_id=order_id)

        # Removing the session is the commit point: only the caller that
        # removes it goes on to create the order.
        if not self.sessions.claim(order_id):
            raise SessionExpiredOrNotFound(order_id)

        draft = self._draft(
            order_id,
            session.lines,
            PriceSummary(
                subtotal=session.subtotal,
                shipping_cost=session.shipping_cost,
                tax_total=session.tax_total,
                grand_total=session.amount,
            ),
            method,
            PaymentStatus.PAID,
            transaction_id,
            user_id=session.user_id,
            guest_email=session.guest_email,
            shipping_address=session.shipping_address,
        )
        try:
            self.materializer.materialize(draft)
        except OrderAlreadyExists as exc:
            raise SessionExpiredOrNotFound(order_id) from exc
        except Exception:
            self._restore(session)
            raise

        log.info("Payment verified, order created", amount=session.amount)
        self._after_commit(session)

        return CheckoutResult(
            order_id=order_id,
            state=CheckoutState.ORDER_CREATED,
            method=method,
            amount=session.amount,
            transaction_id=transaction_id,
            payment_status=PaymentStatus.PAID.value,
        )

    def _restore(self, session: CheckoutSession) -> None:
        """Put a claimed session back after a failed materialization."""
        try:
            self.sessions.save(session)
        except Exception as exc:
            logger.error("Failed to restore checkout session", order_id=session.order_id, error=str(exc))

    def _after_commit(self, session: CheckoutSession) -> None:
        if session.user_id and self.clear_cart is not None:
            try:
                self.clear_cart(session.user_id)
            except Exception as exc:
                logger.error("Failed to clear cart after checkout", user_id=session.user_id, error=str(exc))

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _parse_method(method) -> PaymentMethod:
        if isinstance(method, PaymentMethod):
            return method
        try:
            return PaymentMethod(method)
        except ValueError:
            raise ValidationError({"method": [f"Unsupported payment method: {method}"]}) from None

    @staticmethod
    def _fold_items(items) -> dict[str, int]:
        """Collapse the request into ``{product_id: quantity}``."""
        folded: dict[str, int] = {}
        for item in items or []:
            if isinstance(item, CheckoutItem):
                product_id, quantity = item.product_id, item.quantity
            else:
                product_id, quantity = item.get("product_id"), item.get("quantity")

            if not product_id:
                raise ValidationError({"items": ["Every item needs a product_id"]})
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise ValidationError({"quantity": [f"Invalid quantity for product {product_id}"]})
            folded[str(product_id)] = folded.get(str(product_id), 0) + quantity

        if not folded:
            raise ValidationError({"items": ["Cart is empty"]})
        return folded

    def _snapshot_line(self, product_id: str, quantity: int) -> OrderLine:
        product = self.products.find_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        if not product.is_active:
            raise ProductUnavailable(product_id, product.name)
        if quantity > product.stock:
            raise InsufficientInventory(product_id, quantity, available=product.stock, name=product.name)
        return OrderLine(
            product_id=product.id,
            quantity=quantity,
            unit_price=product.unit_price,
            product_name=product.name,
        )

    @staticmethod
    def _customer_info(shipping_address: dict | None, guest_email: str | None) -> CustomerInfo:
        address = shipping_address or {}
        return CustomerInfo(
            name=address.get("full_name"),
            email=guest_email or address.get("email"),
            phone=address.get("phone"),
        )

    @staticmethod
    def _purchase_name(lines) -> str:
        first = lines[0].product_name or lines[0].product_id
        if len(lines) == 1:
            return first
        return f"{first} and {len(lines) - 1} more"

    @staticmethod
    def _draft(
        order_id,
        lines,
        pricing: PriceSummary,
        method: PaymentMethod,
        status: PaymentStatus,
        reference,
        user_id=None,
        guest_email=None,
        shipping_address=None,
    ) -> OrderDraft:
        return OrderDraft(
            order_id=order_id,
            lines=tuple(lines),
            subtotal=pricing.subtotal,
            shipping_cost=pricing.shipping_cost,
            tax_total=pricing.tax_total,
            grand_total=pricing.grand_total,
            currency=pricing.currency,
            payment_method=method.value,
            payment_status=status,
            payment_reference=reference,
            customer_id=user_id,
            guest_email=guest_email,
            shipping_address=shipping_address,
        )
