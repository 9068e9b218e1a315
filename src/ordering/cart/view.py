"""Cart view: current cart state for UI rendering, read through the cache.

Views are cached for 30 minutes under the ``cart`` tag and the cart's own
tag, so any mutation of a cart (or a bulk ``cart`` invalidation) drops them.
"""

from catalogue.store import get_product_store
from ordering.cart.cart import cart_tag
from ordering.cart.items import find_cart
from shared.cache import get_cache

CART_VIEW_TTL = 1800


def _view_key(customer_id=None, session_id=None) -> str:
    if customer_id:
        return f"cart:view:user:{customer_id}"
    return f"cart:view:session:{session_id}"


def build_cart_view(customer_id=None, session_id=None) -> dict:
    cart = find_cart(customer_id=customer_id, session_id=session_id)
    products = get_product_store()

    items = []
    for item in cart.items if cart else []:
        product = products.find_by_id(str(item.product_id))
        unit_price = product.unit_price if product else 0.0
        items.append(
            {
                "product_id": str(item.product_id),
                "name": product.name if product else None,
                "unit_price": unit_price,
                "quantity": item.quantity,
                "line_total": round(unit_price * item.quantity, 2),
                "available": bool(product and product.is_active and product.stock >= item.quantity),
            }
        )

    return {
        "cart_id": str(cart.id) if cart else None,
        "customer_id": str(customer_id) if customer_id else None,
        "session_id": session_id if not customer_id else None,
        "items": items,
        "item_count": sum(i["quantity"] for i in items),
        "total": round(sum(i["line_total"] for i in items), 2),
    }


def get_cart_view(customer_id=None, session_id=None) -> dict:
    return get_cache().get_or_set(
        _view_key(customer_id=customer_id, session_id=session_id),
        lambda: build_cart_view(customer_id=customer_id, session_id=session_id),
        ttl=CART_VIEW_TTL,
        tags=["cart", cart_tag(customer_id=customer_id, session_id=session_id)],
    )
