"""Payment gateway factory.

Provides get_payment_adapter() / set_payment_adapter() to swap implementations:
- fake gateways for development and testing (``PAYMENT_GATEWAYS=fake``)
- eSewa and Khalti built from environment variables (``PAYMENT_GATEWAYS=live``)

Pay-on-delivery is always registered.
"""

import os

import requests
import structlog

from payments.gateway.cod_adapter import CashOnDeliveryGateway
from payments.gateway.esewa_adapter import ESewaGateway
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.khalti_adapter import KhaltiGateway
from payments.gateway.port import (
    CustomerInfo,
    InitiationResult,
    PaymentGateway,
    PaymentMethod,
    VerificationResult,
)

logger = structlog.get_logger(__name__)


class PaymentGatewayAdapter:
    """Dispatches initiate/verify to the gateway registered for a method.

    Exceptions raised by a gateway (network errors, malformed responses) are
    logged and turned into failed results, as is a method with no registered
    gateway, so callers only ever branch on ``success``.
    """

    def __init__(self, gateways: dict[PaymentMethod, PaymentGateway]) -> None:
        self._gateways = dict(gateways)

    def gateway_for(self, method: PaymentMethod) -> PaymentGateway:
        try:
            return self._gateways[method]
        except KeyError:
            raise LookupError(f"No payment gateway registered for {method.value}") from None

    def supports(self, method: PaymentMethod) -> bool:
        return method in self._gateways

    def initiate(
        self,
        method: PaymentMethod,
        order_id: str,
        amount: float,
        customer: CustomerInfo | None = None,
        product_name: str | None = None,
    ) -> InitiationResult:
        if not self.supports(method):
            logger.warning("Payment method not available", method=method.value, order_id=order_id)
            return InitiationResult(success=False, error=f"Payment method {method.value} is not available")

        gateway = self.gateway_for(method)
        try:
            return gateway.initiate(
                order_id,
                amount,
                product_name or f"Order {order_id}",
                customer,
            )
        except (requests.RequestException, KeyError, ValueError) as exc:
            logger.error("Payment initiation error", method=method.value, order_id=order_id, error=str(exc))
            return InitiationResult(success=False, error=f"Payment initiation failed: {exc}")

    def verify(
        self,
        method: PaymentMethod,
        transaction_id: str,
        order_reference: str | None = None,
        amount: float | None = None,
    ) -> VerificationResult:
        if not self.supports(method):
            logger.warning("Payment method not available", method=method.value, transaction_id=transaction_id)
            return VerificationResult(
                success=False,
                transaction_id=transaction_id,
                error=f"Payment method {method.value} is not available",
            )

        gateway = self.gateway_for(method)
        try:
            return gateway.verify(transaction_id, order_reference=order_reference, amount=amount)
        except (requests.RequestException, KeyError, ValueError) as exc:
            logger.error(
                "Payment verification error",
                method=method.value,
                transaction_id=transaction_id,
                error=str(exc),
            )
            return VerificationResult(
                success=False,
                transaction_id=transaction_id,
                error=f"Payment verification failed: {exc}",
            )


def build_fake_adapter() -> PaymentGatewayAdapter:
    return PaymentGatewayAdapter(
        {
            PaymentMethod.ESEWA: FakeGateway(PaymentMethod.ESEWA),
            PaymentMethod.KHALTI: FakeGateway(PaymentMethod.KHALTI),
            PaymentMethod.COD: CashOnDeliveryGateway(),
        }
    )


def build_live_adapter() -> PaymentGatewayAdapter:
    success_url = os.environ.get("PAYMENT_SUCCESS_URL", "")
    failure_url = os.environ.get("PAYMENT_FAILURE_URL", "")
    gateways: dict[PaymentMethod, PaymentGateway] = {PaymentMethod.COD: CashOnDeliveryGateway()}

    if os.environ.get("ESEWA_MERCHANT_ID"):
        gateways[PaymentMethod.ESEWA] = ESewaGateway(
            merchant_id=os.environ["ESEWA_MERCHANT_ID"],
            secret_key=os.environ.get("ESEWA_SECRET_KEY", ""),
            base_url=os.environ.get("ESEWA_BASE_URL", ""),
            success_url=success_url,
            failure_url=failure_url,
        )
    else:
        logger.warning("eSewa not configured, method disabled")

    if os.environ.get("KHALTI_SECRET_KEY"):
        gateways[PaymentMethod.KHALTI] = KhaltiGateway(
            secret_key=os.environ["KHALTI_SECRET_KEY"],
            base_url=os.environ.get("KHALTI_BASE_URL", ""),
            return_url=success_url,
        )
    else:
        logger.warning("Khalti not configured, method disabled")

    return PaymentGatewayAdapter(gateways)


_current_adapter: PaymentGatewayAdapter | None = None


def get_payment_adapter() -> PaymentGatewayAdapter:
    """Return the current gateway adapter, creating it from the environment on first use."""
    global _current_adapter
    if _current_adapter is None:
        mode = os.environ.get("PAYMENT_GATEWAYS", "fake")
        _current_adapter = build_live_adapter() if mode == "live" else build_fake_adapter()
    return _current_adapter


def set_payment_adapter(adapter: PaymentGatewayAdapter) -> None:
    """Override the active gateway adapter (useful for tests)."""
    global _current_adapter
    _current_adapter = adapter


def reset_payment_adapter() -> None:
    """Reset to default adapter."""
    global _current_adapter
    _current_adapter = None
