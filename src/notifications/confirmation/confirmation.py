"""OrderConfirmation aggregate: the record of one order's confirmation email.

State Machine:
    PENDING → SENT
    PENDING → FAILED → (redelivered event) → SENT

Keyed by order id, so a redelivered ``OrderPlaced`` finds the earlier
attempt and sends again only if that attempt failed.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from notifications.channel import get_email_channel
from notifications.channel.email_port import EmailPort
from notifications.domain import notifications
from notifications.templates import ORDER_CONFIRMATION, get_template

logger = structlog.get_logger(__name__)


class ConfirmationStatus(Enum):
    PENDING = "Pending"
    SENT = "Sent"
    FAILED = "Failed"


@notifications.aggregate
class OrderConfirmation:
    order_id: Identifier(identifier=True, required=True)
    recipient: String(max_length=255, required=True)
    subject: String(max_length=500)
    body: Text(required=True)
    status: String(choices=ConfirmationStatus, default=ConfirmationStatus.PENDING.value)
    message_id: String(max_length=255)
    failure_reason: String(max_length=500)
    sent_at: DateTime()
    created_at: DateTime()

    @classmethod
    def create(cls, order_id, recipient, subject, body):
        return cls(
            order_id=order_id,
            recipient=recipient,
            subject=subject,
            body=body,
            status=ConfirmationStatus.PENDING.value,
            created_at=datetime.now(UTC),
        )

    def mark_sent(self, message_id):
        if self.status == ConfirmationStatus.SENT.value:
            raise ValidationError({"status": ["Confirmation was already sent"]})
        self.status = ConfirmationStatus.SENT.value
        self.message_id = message_id
        self.failure_reason = None
        self.sent_at = datetime.now(UTC)

    def mark_failed(self, reason):
        if self.status == ConfirmationStatus.SENT.value:
            raise ValidationError({"status": ["Confirmation was already sent"]})
        self.status = ConfirmationStatus.FAILED.value
        self.failure_reason = (reason or "Unknown dispatch error")[:500]


def send_order_confirmation(order: dict, recipient: str | None, channel: EmailPort | None = None):
    """Render and send the confirmation for ``order``; return the record, or None.

    The order is already committed when this runs, so delivery problems are
    recorded on the aggregate and logged, never raised.
    """
    order_id = str(order.get("order_id"))
    if not recipient:
        logger.info("No recipient for order confirmation", order_id=order_id)
        return None

    repo = current_domain.repository_for(OrderConfirmation)
    try:
        confirmation = repo.get(order_id)
    except ObjectNotFoundError:
        confirmation = None

    if confirmation is not None and confirmation.status == ConfirmationStatus.SENT.value:
        logger.info("Order confirmation already sent", order_id=order_id)
        return confirmation

    content = get_template(ORDER_CONFIRMATION).render(order)
    if confirmation is None:
        confirmation = OrderConfirmation.create(order_id, recipient, content["subject"], content["body"])

    try:
        result = (channel or get_email_channel()).send(to=recipient, subject=content["subject"], body=content["body"])
    except Exception as exc:
        result = {"message_id": None, "status": "failed", "error": str(exc)}

    if result.get("status") == "sent":
        confirmation.mark_sent(result.get("message_id"))
        logger.info("Order confirmation sent", order_id=order_id, message_id=result.get("message_id"))
    else:
        confirmation.mark_failed(result.get("error"))
        logger.warning("Order confirmation not delivered", order_id=order_id, error=confirmation.failure_reason)

    repo.add(confirmation)
    return confirmation
