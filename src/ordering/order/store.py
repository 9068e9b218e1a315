"""Order store port and the repository-backed adapter.

The materializer hands over an ``OrderDraft`` (plain data, prices frozen) and
gets the persisted order back. Writing the same order id twice is refused.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.order.order import Order, PaymentStatus
from shared.errors import OrderAlreadyExists

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    quantity: int
    unit_price: float
    product_name: str | None = None

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "OrderLine":
        return cls(
            product_id=data["product_id"],
            quantity=int(data["quantity"]),
            unit_price=float(data["unit_price"]),
            product_name=data.get("product_name"),
        )


@dataclass(frozen=True)
class OrderDraft:
    order_id: str
    lines: tuple[OrderLine, ...]
    subtotal: float
    shipping_cost: float
    tax_total: float
    grand_total: float
    payment_method: str
    payment_status: PaymentStatus
    payment_reference: str | None = None
    currency: str = "NPR"
    customer_id: str | None = None
    guest_email: str | None = None
    shipping_address: dict | None = field(default=None, hash=False)


class OrderStore(ABC):
    @abstractmethod
    def insert_order(self, draft: OrderDraft):
        """Persist ``draft`` as a new order; raise ``OrderAlreadyExists`` on a duplicate id."""
        ...

    @abstractmethod
    def exists(self, order_id: str) -> bool: ...


class RepositoryOrderStore(OrderStore):
    """Writes orders through the ordering domain's Order repository.

    Must be called inside an active domain context.
    """

    def exists(self, order_id: str) -> bool:
        try:
            current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            return False
        return True

    def insert_order(self, draft: OrderDraft) -> Order:
        if self.exists(draft.order_id):
            raise OrderAlreadyExists(draft.order_id)

        order = Order.place(
            order_id=draft.order_id,
            lines=[line.to_dict() for line in draft.lines],
            pricing={
                "subtotal": draft.subtotal,
                "shipping_cost": draft.shipping_cost,
                "tax_total": draft.tax_total,
                "grand_total": draft.grand_total,
                "currency": draft.currency,
            },
            payment_method=draft.payment_method,
            payment_status=draft.payment_status,
            payment_reference=draft.payment_reference,
            customer_id=draft.customer_id,
            guest_email=draft.guest_email,
            shipping_address=draft.shipping_address,
        )
        current_domain.repository_for(Order).add(order)
        logger.info("Order stored", order_id=draft.order_id, grand_total=draft.grand_total)
        return order
