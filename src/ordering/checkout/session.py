"""Checkout sessions: the priced, validated cart held between payment
initiation and confirmation.

Sessions live in the ephemeral store under ``checkout:session:<order_id>``
and are tagged ``checkout`` and ``checkout:<order_id>``. Here the cache is
the source of truth, so every store failure is raised as
``StorageUnavailable`` instead of being absorbed.
"""

import time
from dataclasses import dataclass, field

import structlog

from ordering.order.store import OrderLine
from shared.cache import TagCache
from shared.errors import OrderAlreadyExists, StorageUnavailable

logger = structlog.get_logger(__name__)

SESSION_PREFIX = "checkout:session:"
SESSION_TTL = 1800  # 30 minutes


@dataclass(frozen=True)
class CheckoutSession:
    order_id: str
    lines: tuple[OrderLine, ...]
    method: str
    subtotal: float
    shipping_cost: float
    tax_total: float
    amount: float
    created_at: float
    expires_at: float
    user_id: str | None = None
    guest_email: str | None = None
    shipping_address: dict | None = field(default=None, hash=False)
    gateway_reference: str | None = None

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "lines": [line.to_dict() for line in self.lines],
            "method": self.method,
            "subtotal": self.subtotal,
            "shipping_cost": self.shipping_cost,
            "tax_total": self.tax_total,
            "amount": self.amount,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "user_id": self.user_id,
            "guest_email": self.guest_email,
            "shipping_address": self.shipping_address,
            "gateway_reference": self.gateway_reference,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CheckoutSession":
        return cls(
            order_id=data["order_id"],
            lines=tuple(OrderLine.from_dict(line) for line in data["lines"]),
            method=data["method"],
            subtotal=data["subtotal"],
            shipping_cost=data["shipping_cost"],
            tax_total=data["tax_total"],
            amount=data["amount"],
            created_at=data["created_at"],
            expires_at=data["expires_at"],
            user_id=data.get("user_id"),
            guest_email=data.get("guest_email"),
            shipping_address=data.get("shipping_address"),
            gateway_reference=data.get("gateway_reference"),
        )


class CheckoutSessionStore:
    def __init__(self, cache: TagCache, ttl: int = SESSION_TTL, clock=time.time) -> None:
        self.cache = cache
        self.ttl = ttl
        self.clock = clock

    @staticmethod
    def _key(order_id: str) -> str:
        return f"{SESSION_PREFIX}{order_id}"

    def _write(self, session: CheckoutSession, only_if_absent: bool) -> bool:
        if not self.cache.enabled:
            raise StorageUnavailable("Checkout is temporarily unavailable, please retry")

        ttl = int(session.expires_at - self.clock())
        if ttl <= 0:
            return True

        try:
            return self.cache.set(
                self._key(session.order_id),
                session.to_dict(),
                ttl=ttl,
                tags=["checkout", f"checkout:{session.order_id}"],
                only_if_absent=only_if_absent,
                strict=True,
            )
        except StorageUnavailable as exc:
            logger.error("Failed to store checkout session", order_id=session.order_id, error=str(exc.cause or exc))
            raise StorageUnavailable("Failed to create payment session, please try again", cause=exc.cause) from exc

    def create(self, session: CheckoutSession) -> None:
        """Store a new session; the order id must not have a live session.

        Raises:
            OrderAlreadyExists: another checkout already holds this order id.
            StorageUnavailable: the store is disabled or the write failed.
        """
        if not self._write(session, only_if_absent=True):
            raise OrderAlreadyExists(session.order_id)

    def save(self, session: CheckoutSession) -> None:
        """Persist ``session`` until its ``expires_at``, replacing any live one.

        Raises:
            StorageUnavailable: the store is disabled or the write failed.
        """
        self._write(session, only_if_absent=False)

    def load(self, order_id: str) -> CheckoutSession | None:
        data = self.cache.get(self._key(order_id), strict=True)
        if data is None:
            return None
        return CheckoutSession.from_dict(data)

    def exists(self, order_id: str) -> bool:
        return self.load(order_id) is not None

    def claim(self, order_id: str) -> bool:
        """Delete the session; True only for the caller that removed it."""
        return self.cache.delete(self._key(order_id), strict=True)

    def delete(self, order_id: str) -> bool:
        return self.cache.delete(self._key(order_id))
