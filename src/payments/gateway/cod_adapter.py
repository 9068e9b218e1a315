"""Pay-on-delivery gateway.

No money moves online, so initiation only mints a local reference and
verification always succeeds. Checkout materializes pay-on-delivery orders
synchronously and never opens a payment session for them.
"""

import time

from payments.gateway.port import (
    CustomerInfo,
    InitiationResult,
    PaymentGateway,
    PaymentMethod,
    VerificationResult,
)


class CashOnDeliveryGateway(PaymentGateway):
    method = PaymentMethod.COD

    def initiate(
        self,
        order_id: str,
        amount: float,
        product_name: str,
        customer: CustomerInfo | None = None,
    ) -> InitiationResult:
        return InitiationResult(
            success=True,
            transaction_id=f"cod-{order_id}-{int(time.time() * 1000)}",
            data={"order_id": order_id, "amount": amount, "method": self.method.value},
        )

    def verify(
        self,
        transaction_id: str,
        order_reference: str | None = None,
        amount: float | None = None,
    ) -> VerificationResult:
        return VerificationResult(success=True, transaction_id=transaction_id, amount=amount)
