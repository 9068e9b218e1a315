"""Inventory availability checks.

These are point-in-time reads against the durable stock counter and are
advisory only: stock can move between checkout and payment. The binding check
is the conditional decrement performed when the order is materialized.
"""

import structlog

from catalogue.store.port import ProductStore

logger = structlog.get_logger(__name__)


class InventoryChecker:
    def __init__(self, products: ProductStore) -> None:
        self.products = products

    def check_availability(self, product_id: str, quantity: int) -> bool:
        product = self.products.find_by_id(product_id)
        if product is None:
            return False

        available = product.stock >= quantity
        if not available:
            logger.info(
                "Requested quantity exceeds stock",
                product_id=product_id,
                requested=quantity,
                stock=product.stock,
            )
        return available
