"""In-memory product store for development and testing."""

import threading
from dataclasses import replace

from catalogue.store.port import ProductRecord, ProductStore


class MemoryProductStore(ProductStore):
    """Product store backed by a dict; a lock makes check-and-decrement atomic."""

    def __init__(self, products: list[ProductRecord] | None = None) -> None:
        self._lock = threading.Lock()
        self._products: dict[str, ProductRecord] = {}
        for product in products or []:
            self.add(product)

    def add(self, product: ProductRecord) -> None:
        with self._lock:
            self._products[product.id] = product

    def find_by_id(self, product_id: str) -> ProductRecord | None:
        with self._lock:
            return self._products.get(product_id)

    def conditional_decrement_stock(self, product_id: str, quantity: int) -> bool:
        with self._lock:
            product = self._products.get(product_id)
            if product is None or product.stock < quantity:
                return False
            self._products[product_id] = replace(product, stock=product.stock - quantity)
            return True

    def increment_stock(self, product_id: str, quantity: int) -> None:
        with self._lock:
            product = self._products.get(product_id)
            if product is not None:
                self._products[product_id] = replace(product, stock=product.stock + quantity)

    def stock_of(self, product_id: str) -> int:
        product = self.find_by_id(product_id)
        return product.stock if product else 0
