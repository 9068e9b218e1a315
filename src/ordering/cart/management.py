"""Cart management: clearing carts and merging a guest cart at login."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart, cart_tag
from ordering.cart.items import add_product_to_cart, find_cart, find_or_create_cart, invalidate_cart_views
from ordering.domain import ordering
from shared.errors import StorefrontError

logger = structlog.get_logger(__name__)


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    """Remove every item from a customer's (or guest session's) cart."""

    customer_id = Identifier()
    session_id = String(max_length=255)


@ordering.command(part_of="ShoppingCart")
class MergeGuestCart:
    """Fold a guest session's cart into a registered customer's cart."""

    session_id = String(required=True, max_length=255)
    customer_id = Identifier(required=True)


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(ClearCart)
    def clear_cart(self, command):
        cart = find_cart(customer_id=command.customer_id, session_id=command.session_id)
        if cart is None or not cart.items:
            return 0

        removed = len(cart.items)
        cart.clear()
        current_domain.repository_for(ShoppingCart).add(cart)
        invalidate_cart_views(cart.cache_tag())
        return removed

    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        """Merge item by item; an item that cannot be added is logged and skipped."""
        repo = current_domain.repository_for(ShoppingCart)
        guest_cart = find_cart(session_id=command.session_id)
        if guest_cart is None or not guest_cart.items:
            return 0

        user_cart = find_or_create_cart(customer_id=command.customer_id)

        merged = 0
        for item in list(guest_cart.items):
            try:
                add_product_to_cart(user_cart, item.product_id, item.quantity)
                merged += 1
            except (ValidationError, StorefrontError) as exc:
                logger.warning(
                    "Failed to merge cart item",
                    product_id=str(item.product_id),
                    quantity=item.quantity,
                    customer_id=str(command.customer_id),
                    error=str(exc),
                )

        user_cart.record_merge(source_session_id=command.session_id, items_merged_count=merged)
        repo.add(user_cart)

        guest_cart.clear()
        repo.add(guest_cart)

        invalidate_cart_views(
            cart_tag(customer_id=command.customer_id),
            cart_tag(session_id=command.session_id),
        )
        logger.info(
            "Guest cart merged",
            customer_id=str(command.customer_id),
            session_id=command.session_id,
            items_merged=merged,
        )
        return merged


def clear_customer_cart(customer_id) -> int:
    """Clear a customer's cart, returning how many lines were removed."""
    return current_domain.process(ClearCart(customer_id=customer_id), asynchronous=False)


def merge_guest_cart_to_user(session_id, customer_id) -> int:
    return current_domain.process(
        MergeGuestCart(session_id=session_id, customer_id=customer_id),
        asynchronous=False,
    )
