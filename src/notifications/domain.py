"""Notifications bounded context: customer messages sent in reaction to events.

Consumes Ordering events from the ``ordering::order`` stream and sends the
order confirmation through the configured email channel. Every attempt is
recorded so a confirmation is sent at most once per order.
"""

import structlog
from protean.domain import Domain

notifications = Domain(name="notifications")

logger = structlog.get_logger(__name__)
