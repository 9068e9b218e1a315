"""eSewa payment gateway adapter.

Initiation is local: eSewa takes the payment form as query parameters on its
``/epay/main`` page, so we only build the redirect URL. The generated ``pid``
is the reference eSewa echoes back as ``oid`` on the success callback.

Verification posts ``oid``, ``amt`` and the eSewa reference id (``rid``) to
``/epay/transrec``; eSewa answers with a small XML body containing
``Success`` when the payment is genuine.
"""

import time
from urllib.parse import urlencode

import requests
import structlog

from payments.gateway.port import (
    CustomerInfo,
    InitiationResult,
    PaymentGateway,
    PaymentMethod,
    VerificationResult,
)

logger = structlog.get_logger(__name__)


class ESewaGateway(PaymentGateway):
    method = PaymentMethod.ESEWA

    def __init__(
        self,
        merchant_id: str,
        secret_key: str,
        base_url: str,
        success_url: str,
        failure_url: str,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        if not merchant_id or not secret_key or not base_url:
            raise ValueError("eSewa configuration is incomplete. Check environment variables.")
        self.merchant_id = merchant_id
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.success_url = success_url
        self.failure_url = failure_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def payment_request(self, order_id: str, amount: float) -> dict[str, str]:
        amt = f"{amount:.2f}"
        tax_amount = service_charge = delivery_charge = "0"
        total = f"{float(amt) + float(tax_amount) + float(service_charge) + float(delivery_charge):.2f}"
        return {
            "tAmt": total,
            "amt": amt,
            "txAmt": tax_amount,
            "psc": service_charge,
            "pdc": delivery_charge,
            "scd": self.merchant_id,
            "pid": f"{order_id}-{int(time.time() * 1000)}",
            "su": self.success_url,
            "fu": self.failure_url,
        }

    def initiate(
        self,
        order_id: str,
        amount: float,
        product_name: str,
        customer: CustomerInfo | None = None,
    ) -> InitiationResult:
        form = self.payment_request(order_id, amount)
        return InitiationResult(
            success=True,
            payment_url=f"{self.base_url}/epay/main?{urlencode(form)}",
            transaction_id=form["pid"],
            data=form,
        )

    def verify(
        self,
        transaction_id: str,
        order_reference: str | None = None,
        amount: float | None = None,
    ) -> VerificationResult:
        if order_reference is None or amount is None:
            return VerificationResult(
                success=False,
                transaction_id=transaction_id,
                error="eSewa verification needs the payment reference and amount",
            )

        response = self.session.post(
            f"{self.base_url}/epay/transrec",
            data={"oid": order_reference, "amt": f"{amount:.2f}", "rid": transaction_id},
            timeout=self.timeout,
        )
        if not response.ok:
            logger.warning("eSewa verification request failed", status=response.status_code, oid=order_reference)
            return VerificationResult(
                success=False,
                transaction_id=transaction_id,
                error=f"eSewa verification failed: {response.status_code}",
            )

        verified = "Success" in response.text
        return VerificationResult(
            success=verified,
            transaction_id=transaction_id,
            amount=amount,
            error=None if verified else "eSewa did not confirm the payment",
        )

    @staticmethod
    def parse_callback(query: dict) -> dict[str, str]:
        """Extract the success-callback parameters (``oid``, ``amt``, ``refId``)."""
        return {name: _first(query.get(name)) for name in ("oid", "amt", "refId")}


def _first(value) -> str:
    if isinstance(value, list | tuple):
        return value[0] if value else ""
    return value or ""
