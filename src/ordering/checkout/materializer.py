"""Order materializer: turns a frozen line-item snapshot into a durable order.

Stock is taken line by line with a conditional decrement. If any line cannot
be satisfied, every decrement already applied in this attempt is reversed
and nothing is written. The order row is written only after all decrements
succeed, so an order never exists with part of its stock missing.

Two materializations racing for the last unit of a product: the product
store serializes the conditional decrement, so exactly one observes success.
"""

import structlog

from catalogue.store import ProductStore
from ordering.order.store import OrderDraft, OrderLine, OrderStore
from shared.errors import InsufficientInventory

logger = structlog.get_logger(__name__)


class OrderMaterializer:
    def __init__(self, products: ProductStore, orders: OrderStore) -> None:
        self.products = products
        self.orders = orders

    def materialize(self, draft: OrderDraft):
        applied: list[OrderLine] = []
        try:
            for line in draft.lines:
                if not self.products.conditional_decrement_stock(line.product_id, line.quantity):
                    raise self._insufficient(line)
                applied.append(line)

            order = self.orders.insert_order(draft)
        except Exception:
            self._compensate(draft.order_id, applied)
            raise

        logger.info(
            "Order materialized",
            order_id=draft.order_id,
            lines=len(draft.lines),
            payment_status=draft.payment_status.value,
        )
        return order

    def _insufficient(self, line: OrderLine) -> InsufficientInventory:
        product = self.products.find_by_id(line.product_id)
        return InsufficientInventory(
            line.product_id,
            line.quantity,
            available=product.stock if product else 0,
            name=line.product_name,
        )

    def _compensate(self, order_id: str, applied: list[OrderLine]) -> None:
        for line in reversed(applied):
            try:
                self.products.increment_stock(line.product_id, line.quantity)
            except Exception as exc:
                # Stock for this line stays decremented until reconciled by hand
                logger.error(
                    "Stock compensation failed",
                    order_id=order_id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    error=str(exc),
                )
        if applied:
            logger.warning("Stock decrements reversed", order_id=order_id, lines=len(applied))
