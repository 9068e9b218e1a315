"""Payment gateway port (abstract interface).

Every payment method exposes the same two capabilities: ``initiate`` a
transaction for an amount, and later ``verify`` that the customer completed
it. Online gateways (eSewa, Khalti) redirect the customer and are verified
against the provider; pay-on-delivery needs no external round-trip.

Gateways are selected by ``PaymentMethod``, never by inspecting the adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class PaymentMethod(Enum):
    ESEWA = "esewa"
    KHALTI = "khalti"
    COD = "cod"

    @property
    def is_online(self) -> bool:
        return self is not PaymentMethod.COD

    @property
    def display_name(self) -> str:
        return {
            PaymentMethod.ESEWA: "eSewa",
            PaymentMethod.KHALTI: "Khalti",
            PaymentMethod.COD: "Cash on Delivery",
        }[self]


@dataclass(frozen=True)
class CustomerInfo:
    name: str | None = None
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class InitiationResult:
    """Result of starting a payment with a gateway."""

    success: bool
    payment_url: str | None = None
    transaction_id: str | None = None
    error: str | None = None
    data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class VerificationResult:
    """Result of confirming a payment with a gateway."""

    success: bool
    transaction_id: str | None = None
    amount: float | None = None
    error: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    method: PaymentMethod

    @abstractmethod
    def initiate(
        self,
        order_id: str,
        amount: float,
        product_name: str,
        customer: CustomerInfo | None = None,
    ) -> InitiationResult:
        """Start a payment for ``amount`` against ``order_id``."""
        ...

    @abstractmethod
    def verify(
        self,
        transaction_id: str,
        order_reference: str | None = None,
        amount: float | None = None,
    ) -> VerificationResult:
        """Confirm with the provider that ``transaction_id`` was paid.

        ``order_reference`` is the identifier handed to the provider at
        initiation; gateways that need it to look the payment up use it.
        """
        ...
