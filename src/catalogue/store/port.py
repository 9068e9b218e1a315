"""Product store port (abstract interface).

The durable product catalogue is owned by the catalogue service; checkout
only needs point reads and the stock counter. The one operation with a real
atomicity requirement is ``conditional_decrement_stock``: it must check and
decrement in a single round-trip so two concurrent buyers can never both
take the last unit.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProductRecord:
    """Point-in-time view of a catalogue product."""

    id: str
    name: str
    price: float
    stock: int
    is_active: bool = True
    discount_price: float | None = None

    @property
    def unit_price(self) -> float:
        """Price charged per unit at checkout."""
        return self.discount_price if self.discount_price is not None else self.price


class ProductStore(ABC):
    @abstractmethod
    def find_by_id(self, product_id: str) -> ProductRecord | None:
        ...

    @abstractmethod
    def conditional_decrement_stock(self, product_id: str, quantity: int) -> bool:
        """Decrement stock by ``quantity`` only if at least that much is left.

        Returns True when the decrement was applied.
        """
        ...

    @abstractmethod
    def increment_stock(self, product_id: str, quantity: int) -> None:
        """Return ``quantity`` units to stock (compensation for a failed order)."""
        ...
