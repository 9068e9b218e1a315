"""Shopping Cart aggregate: the live cart of a customer or guest session.

A cart belongs either to a registered customer (``customer_id``) or to an
anonymous browsing session (``session_id``). At login the guest cart is
folded into the customer's cart; after a paid checkout the customer's cart
is cleared.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ordering.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated, CartsMerged
from ordering.domain import ordering


def cart_tag(customer_id=None, session_id=None) -> str:
    """Cache tag covering every cached view of one cart."""
    if customer_id:
        return f"cart:user:{customer_id}"
    return f"cart:session:{session_id}"


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier()  # Nullable for guest carts
    session_id = String(max_length=255)  # For guest cart identification
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None, session_id=None):
        if not customer_id and not session_id:
            raise ValidationError({"cart": ["A cart needs a customer or a session"]})

        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            session_id=session_id,
            created_at=now,
            updated_at=now,
        )

    def cache_tag(self) -> str:
        return cart_tag(customer_id=self.customer_id, session_id=self.session_id)

    def quantity_of(self, product_id) -> int:
        item = self._find(product_id)
        return item.quantity if item else 0

    def _find(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity):
        """Add a product to the cart, accumulating quantity if already present."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        existing = self._find(product_id)
        if existing:
            existing.quantity += quantity
            new_quantity = existing.quantity
        else:
            self.add_items(CartItem(product_id=product_id, quantity=quantity, added_at=now))
            new_quantity = quantity

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product_id),
                quantity=quantity,
                new_quantity=new_quantity,
            )
        )

    def update_item_quantity(self, product_id, new_quantity):
        """Set the quantity of a product already in the cart; zero removes it."""
        if new_quantity is None or new_quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})

        item = self._find(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Item not found in cart"]})
        if new_quantity == 0:
            self.remove_item(product_id)
            return

        previous_quantity = item.quantity
        item.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, product_id):
        """Take a product out of the cart."""
        item = self._find(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Item not found in cart"]})

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id), quantity=item.quantity))

    def clear(self):
        """Remove every item from the cart."""
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), items_removed=removed))

    def record_merge(self, source_session_id, items_merged_count):
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_session_id=source_session_id,
                items_merged_count=items_merged_count,
            )
        )
