"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A checkout was committed and the order written with its stock reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier()
    guest_email = String()
    recipient = String()  # where the confirmation goes: guest email, else the address email
    items = Text(required=True)  # JSON list of order lines
    item_count = Integer(required=True)
    grand_total = Float(required=True)
    currency = String(default="NPR")
    payment_method = String(required=True)
    payment_reference = String()
    payment_status = String(required=True)
    placed_at = DateTime(required=True)
