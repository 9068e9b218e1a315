"""Product store factory.

PRODUCT_STORE selects the adapter: ``memory`` (default) or ``sql`` (the
SQLAlchemy store at DATABASE_URL).
"""

import os

from catalogue.store.port import ProductRecord, ProductStore

_current_store: ProductStore | None = None


def get_product_store() -> ProductStore:
    """Return the configured product store (singleton)."""
    global _current_store
    if _current_store is None:
        adapter = os.environ.get("PRODUCT_STORE", "memory")
        if adapter == "memory":
            from catalogue.store.memory_adapter import MemoryProductStore

            _current_store = MemoryProductStore()
        elif adapter == "sql":
            from sqlalchemy import create_engine

            from catalogue.store.sql_adapter import SqlProductStore

            store = SqlProductStore(create_engine(os.environ.get("DATABASE_URL", "sqlite:///storefront.db")))
            store.create_schema()
            _current_store = store
        else:
            raise ValueError(f"Unknown product store: {adapter}")
    return _current_store


def set_product_store(store: ProductStore) -> None:
    """Override the active product store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_product_store() -> None:
    global _current_store
    _current_store = None


__all__ = ["ProductRecord", "ProductStore", "get_product_store", "set_product_store", "reset_product_store"]
