"""Inbound cross-domain event handler: Notifications reacts to Order events.

Listens for OrderPlaced and sends the order confirmation.
"""

import json

import structlog
from protean.utils.mixins import handle

from notifications.confirmation.confirmation import OrderConfirmation, send_order_confirmation
from notifications.domain import notifications
from shared.events.ordering import OrderPlaced

logger = structlog.get_logger(__name__)

notifications.register_external_event(OrderPlaced, "Ordering.OrderPlaced.v1")


@notifications.event_handler(part_of=OrderConfirmation, stream_category="ordering::order")
class OrderingEventsHandler:
    """Reacts to Ordering domain events to send customer notifications."""

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        """Send the order confirmation once an order is placed."""
        send_order_confirmation(
            {
                "order_id": str(event.order_id),
                "currency": event.currency or "NPR",
                "grand_total": event.grand_total,
                "payment_method": event.payment_method,
                "items": json.loads(event.items) if event.items else [],
            },
            event.recipient,
        )
