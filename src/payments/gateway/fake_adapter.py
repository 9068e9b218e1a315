"""Configurable fake online gateway for development and testing.

Simulates a hosted-payment-page provider without any external calls. It can
be configured at runtime to succeed or fail initiation and verification
independently, and records every call for test assertions.
"""

from uuid import uuid4

from payments.gateway.port import (
    CustomerInfo,
    InitiationResult,
    PaymentGateway,
    PaymentMethod,
    VerificationResult,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, method: PaymentMethod = PaymentMethod.KHALTI) -> None:
        self.method = method
        self.initiate_succeeds: bool = True
        self.verify_succeeds: bool = True
        self.failure_reason: str = "Payment declined"
        self.raise_on_call: Exception | None = None
        self.calls: list[dict] = []

    def configure(
        self,
        initiate_succeeds: bool = True,
        verify_succeeds: bool = True,
        failure_reason: str = "Payment declined",
        raise_on_call: Exception | None = None,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.initiate_succeeds = initiate_succeeds
        self.verify_succeeds = verify_succeeds
        self.failure_reason = failure_reason
        self.raise_on_call = raise_on_call

    def initiate(
        self,
        order_id: str,
        amount: float,
        product_name: str,
        customer: CustomerInfo | None = None,
    ) -> InitiationResult:
        self.calls.append(
            {
                "method": "initiate",
                "order_id": order_id,
                "amount": amount,
                "product_name": product_name,
                "customer": customer,
            }
        )
        if self.raise_on_call is not None:
            raise self.raise_on_call

        if not self.initiate_succeeds:
            return InitiationResult(success=False, error=self.failure_reason)

        transaction_id = f"fake_txn_{uuid4().hex[:12]}"
        return InitiationResult(
            success=True,
            payment_url=f"https://pay.example.test/{self.method.value}/{transaction_id}",
            transaction_id=transaction_id,
        )

    def verify(
        self,
        transaction_id: str,
        order_reference: str | None = None,
        amount: float | None = None,
    ) -> VerificationResult:
        self.calls.append(
            {
                "method": "verify",
                "transaction_id": transaction_id,
                "order_reference": order_reference,
                "amount": amount,
            }
        )
        if self.raise_on_call is not None:
            raise self.raise_on_call

        if not self.verify_succeeds:
            return VerificationResult(success=False, transaction_id=transaction_id, error=self.failure_reason)
        return VerificationResult(success=True, transaction_id=transaction_id, amount=amount)
