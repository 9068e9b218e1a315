"""Order aggregate: the durable record of a committed checkout.

An order is written exactly once, by the order materializer, after every
line's stock has been decremented. Line prices are copied from the checkout
snapshot and never re-read from the catalogue.

Payment status:
    PENDING (pay on delivery) or PAID (online payment verified)
Fulfillment status:
    PENDING → PROCESSING → SHIPPED → DELIVERED, or CANCELLED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from ordering.domain import ordering
from ordering.order.events import OrderPlaced


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class FulfillmentStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


@ordering.entity(part_of="Order")
class OrderItem:
    """A line of an order with its price frozen at checkout."""

    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)


@ordering.aggregate
class Order:
    order_id = Identifier(identifier=True, required=True)
    customer_id = Identifier()
    guest_email = String(max_length=255)
    items = HasMany(OrderItem)
    shipping_address = Text()  # JSON: address dict
    subtotal = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    tax_total = Float(default=0.0)
    grand_total = Float(default=0.0)
    currency = String(max_length=3, default="NPR")
    payment_method = String(max_length=20, required=True)
    payment_reference = String(max_length=255)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    fulfillment_status = String(choices=FulfillmentStatus, default=FulfillmentStatus.PENDING.value)
    placed_at = DateTime()

    @classmethod
    def place(
        cls,
        order_id,
        lines,
        pricing,
        payment_method,
        payment_status,
        payment_reference=None,
        customer_id=None,
        guest_email=None,
        shipping_address=None,
    ):
        """Build a new order from frozen checkout lines.

        Args:
            lines: iterable of dicts with product_id, product_name, quantity, unit_price.
            pricing: dict with subtotal, shipping_cost, tax_total, grand_total, currency.
        """
        if not lines:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            order_id=order_id,
            customer_id=customer_id,
            guest_email=guest_email,
            shipping_address=json.dumps(shipping_address) if shipping_address else None,
            subtotal=pricing["subtotal"],
            shipping_cost=pricing.get("shipping_cost", 0.0),
            tax_total=pricing.get("tax_total", 0.0),
            grand_total=pricing["grand_total"],
            currency=pricing.get("currency", "NPR"),
            payment_method=payment_method,
            payment_reference=payment_reference,
            payment_status=payment_status.value,
            fulfillment_status=FulfillmentStatus.PENDING.value,
            placed_at=now,
        )
        for line in lines:
            order.add_items(
                OrderItem(
                    product_id=line["product_id"],
                    product_name=line.get("product_name"),
                    quantity=line["quantity"],
                    unit_price=line["unit_price"],
                    line_total=round(line["unit_price"] * line["quantity"], 2),
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order_id),
                customer_id=str(customer_id) if customer_id else None,
                guest_email=guest_email,
                recipient=guest_email or (shipping_address or {}).get("email"),
                items=json.dumps(
                    [
                        {
                            "product_id": str(item.product_id),
                            "product_name": item.product_name,
                            "quantity": item.quantity,
                            "unit_price": item.unit_price,
                            "line_total": item.line_total,
                        }
                        for item in order.items
                    ]
                ),
                item_count=sum(line["quantity"] for line in lines),
                grand_total=order.grand_total,
                currency=order.currency,
                payment_method=payment_method,
                payment_reference=payment_reference,
                payment_status=payment_status.value,
                placed_at=now,
            )
        )
        return order
