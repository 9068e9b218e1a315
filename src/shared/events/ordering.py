"""Cross-domain event contracts for Ordering domain events.

These classes define the event shape for consumption by other domains (the
Notifications domain sends order confirmations from ``OrderPlaced``). They
are registered as external events via ``domain.register_external_event()``
with matching type strings so Protean's stream deserialization works.

The source-of-truth events are in src/ordering/order/events.py.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Float, Identifier, Integer, String, Text


class OrderPlaced(BaseEvent):
    """A checkout was committed and the order written.

    Consumed by the Notifications domain to send the order confirmation.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier()
    guest_email = String()
    recipient = String()
    items = Text(required=True)  # JSON list of order lines
    item_count = Integer(required=True)
    grand_total = Float(required=True)
    currency = String(default="NPR")
    payment_method = String(required=True)
    payment_reference = String()
    payment_status = String(required=True)
    placed_at = DateTime(required=True)
