"""Cart item management: commands, handler and cart lookup helpers."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from catalogue.inventory import InventoryChecker
from catalogue.store import get_product_store
from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering
from shared.cache import get_cache
from shared.errors import CartNotFound, InsufficientInventory, ProductNotFound, ProductUnavailable

logger = structlog.get_logger(__name__)


def find_cart(customer_id=None, session_id=None) -> ShoppingCart | None:
    """Return the cart of a customer or, failing that, of a guest session."""
    repo = current_domain.repository_for(ShoppingCart)
    if customer_id:
        carts = repo._dao.query.filter(customer_id=str(customer_id)).all().items
    elif session_id:
        carts = repo._dao.query.filter(session_id=session_id).all().items
    else:
        return None
    return carts[0] if carts else None


def find_or_create_cart(customer_id=None, session_id=None) -> ShoppingCart:
    cart = find_cart(customer_id=customer_id, session_id=session_id)
    if cart is None:
        cart = ShoppingCart.create(customer_id=customer_id, session_id=None if customer_id else session_id)
    return cart


def ensure_sellable(product_id, quantity: int) -> None:
    """Raise unless ``quantity`` of the product can be sold right now."""
    products = get_product_store()
    product = products.find_by_id(str(product_id))
    if product is None:
        raise ProductNotFound(str(product_id))
    if not product.is_active:
        raise ProductUnavailable(product.id, product.name)

    if not InventoryChecker(products).check_availability(product.id, quantity):
        raise InsufficientInventory(product.id, quantity, available=product.stock, name=product.name)


def add_product_to_cart(cart: ShoppingCart, product_id, quantity: int) -> None:
    """Add ``quantity`` of a product after checking it can be sold.

    The stock check covers the quantity the cart will hold afterwards, so
    repeated adds cannot pile up more than is in stock.
    """
    ensure_sellable(product_id, cart.quantity_of(product_id) + quantity)
    cart.add_item(product_id=product_id, quantity=quantity)


def _existing_cart(command) -> ShoppingCart:
    if not command.customer_id and not command.session_id:
        raise ValidationError({"cart": ["customer_id or session_id is required"]})

    cart = find_cart(customer_id=command.customer_id, session_id=command.session_id)
    if cart is None:
        owner = f"customer {command.customer_id}" if command.customer_id else f"session {command.session_id}"
        raise CartNotFound(owner)
    return cart


def invalidate_cart_views(*tags: str) -> None:
    cache = get_cache()
    for tag in tags:
        cache.invalidate_by_tag(tag)


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    customer_id = Identifier()
    session_id = String(max_length=255)


@ordering.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    product_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=0)  # 0 removes the item
    customer_id = Identifier()
    session_id = String(max_length=255)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    product_id = Identifier(required=True)
    customer_id = Identifier()
    session_id = String(max_length=255)


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        if not command.customer_id and not command.session_id:
            raise ValidationError({"cart": ["customer_id or session_id is required"]})

        cart = find_or_create_cart(customer_id=command.customer_id, session_id=command.session_id)
        add_product_to_cart(cart, command.product_id, command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)

        invalidate_cart_views(cart.cache_tag())
        return str(cart.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = _existing_cart(command)
        # Lowering to zero needs no stock
        if command.new_quantity and cart.quantity_of(command.product_id):
            ensure_sellable(command.product_id, command.new_quantity)
        cart.update_item_quantity(command.product_id, command.new_quantity)
        current_domain.repository_for(ShoppingCart).add(cart)

        invalidate_cart_views(cart.cache_tag())
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = _existing_cart(command)
        cart.remove_item(command.product_id)
        current_domain.repository_for(ShoppingCart).add(cart)

        invalidate_cart_views(cart.cache_tag())
        return str(cart.id)
