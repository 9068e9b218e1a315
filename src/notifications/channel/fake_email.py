"""Email adapters that never leave the process.

``FakeEmailAdapter`` records messages for test assertions and can be told
to fail or raise. ``LoggingEmailAdapter`` writes each message to the log and
is the development default.
"""

import threading
from uuid import uuid4

import structlog

from notifications.channel.email_port import EmailPort

logger = structlog.get_logger(__name__)


class FakeEmailAdapter(EmailPort):
    """Email adapter that records messages in memory for test assertions."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.raise_on_send: Exception | None = None
        self._lock = threading.Lock()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        raise_on_send: Exception | None = None,
    ):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_on_send = raise_on_send

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        if self.raise_on_send is not None:
            raise self.raise_on_send

        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"email-{uuid4().hex[:12]}"
        # Engine workers may send concurrently
        with self._lock:
            self.sent_emails.append(
                {
                    "message_id": message_id,
                    "to": to,
                    "subject": subject,
                    "body": body,
                    "html_body": html_body,
                }
            )
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        """Clear sent emails (useful between tests)."""
        with self._lock:
            self.sent_emails.clear()
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.raise_on_send = None


class LoggingEmailAdapter(EmailPort):
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        message_id = f"email-{uuid4().hex[:12]}"
        logger.info("Email sent", message_id=message_id, to=to, subject=subject)
        return {"message_id": message_id, "status": "sent"}
