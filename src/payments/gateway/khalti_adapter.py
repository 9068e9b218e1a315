"""Khalti ePayment (v2) gateway adapter.

Khalti works in paisa (1 NPR = 100 paisa). Initiation registers the purchase
and returns a ``pidx`` plus the hosted payment page; verification looks the
``pidx`` up and accepts only a ``Completed`` payment of the checkout's own
``pidx`` for the full order amount.
"""

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

STATUS_TEXT = {
    "Completed": "Payment Successful",
    "Pending": "Payment Pending",
    "Initiated": "Payment Initiated",
    "Refunded": "Payment Refunded",
    "Failed": "Payment Failed",
    "Expired": "Payment Expired",
    "User canceled": "Payment Canceled by User",
}


def npr_to_paisa(amount: float) -> int:
    return round(amount * 100)


def paisa_to_npr(paisa: int) -> float:
    return paisa / 100


class KhaltiGateway(PaymentGateway):
    method = PaymentMethod.KHALTI

    def __init__(
        self,
        secret_key: str,
        base_url: str,
        return_url: str,
        website_url: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        if not secret_key or not base_url:
            raise ValueError("Khalti configuration is incomplete. Check environment variables.")
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.return_url = return_url
        self.website_url = website_url or return_url
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Key {self.secret_key}", "Content-Type": "application/json"}

    def initiate(
        self,
        order_id: str,
        amount: float,
        product_name: str,
        customer: CustomerInfo | None = None,
    ) -> InitiationResult:
        paisa = npr_to_paisa(amount)
        payload = {
            "return_url": self.return_url,
            "website_url": self.website_url,
            "amount": paisa,
            "purchase_order_id": order_id,
            "purchase_order_name": product_name,
            "product_details": [
                {
                    "identity": order_id,
                    "name": product_name,
                    "total_price": paisa,
                    "quantity": 1,
                    "unit_price": paisa,
                }
            ],
        }
        if customer is not None:
            payload["customer_info"] = {
                key: value
                for key, value in (("name", customer.name), ("email", customer.email), ("phone", customer.phone))
                if value
            }

        response = self.session.post(
            f"{self.base_url}/api/v2/epayment/initiate/",
            json=payload,
            headers=self._headers,
            timeout=self.timeout,
        )
        if not response.ok:
            return InitiationResult(
                success=False,
                error=f"Khalti payment initiation failed: {response.text[:300]}",
            )

        body = response.json()
        return InitiationResult(
            success=True,
            payment_url=body["payment_url"],
            transaction_id=body["pidx"],
            data=body,
        )

    def verify(
        self,
        transaction_id: str,
        order_reference: str | None = None,
        amount: float | None = None,
    ) -> VerificationResult:
        if order_reference is not None and transaction_id != order_reference:
            logger.warning("Khalti pidx does not match the checkout", pidx=transaction_id, expected=order_reference)
            return VerificationResult(
                success=False,
                transaction_id=transaction_id,
                error="Payment reference does not match this checkout",
            )

        response = self.session.post(
            f"{self.base_url}/api/v2/epayment/lookup/",
            json={"pidx": transaction_id},
            headers=self._headers,
            timeout=self.timeout,
        )
        if not response.ok:
            return VerificationResult(
                success=False,
                transaction_id=transaction_id,
                error=f"Khalti payment verification failed: {response.text[:300]}",
            )

        body = response.json()
        status = body.get("status")
        if status != "Completed":
            logger.info("Khalti payment not completed", pidx=transaction_id, status=status)
            return VerificationResult(
                success=False,
                transaction_id=transaction_id,
                error=STATUS_TEXT.get(status, "Unknown Status"),
            )

        paid = body.get("total_amount")
        if amount is not None and paid != npr_to_paisa(amount):
            logger.warning("Khalti amount does not match the checkout", pidx=transaction_id, paid=paid, expected=amount)
            return VerificationResult(
                success=False,
                transaction_id=transaction_id,
                error="Payment amount does not match the order total",
            )

        return VerificationResult(
            success=True,
            transaction_id=body.get("transaction_id") or transaction_id,
            amount=paisa_to_npr(body.get("total_amount", 0)),
        )

    @staticmethod
    def parse_callback(query: dict) -> dict[str, str]:
        fields = ("pidx", "status", "transaction_id", "amount", "purchase_order_id")
        result = {}
        for name in fields:
            value = query.get(name)
            if isinstance(value, list | tuple):
                value = value[0] if value else ""
            result[name] = value or ""
        return result
