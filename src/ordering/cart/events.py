"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a product already in the cart was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A product was taken out of the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)



@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """Every item was removed from the cart (after checkout or a merge)."""

    __version__ = 1

    cart_id = Identifier(required=True)
    items_removed = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartsMerged:
    """A guest cart's items were folded into a registered customer's cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    source_session_id = String()
    items_merged_count = Integer(required=True)
