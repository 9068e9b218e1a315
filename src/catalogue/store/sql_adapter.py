"""SQLAlchemy product store.

The stock counter is decremented with a single conditional UPDATE
(``... SET stock = stock - :qty WHERE id = :id AND stock >= :qty``); the
database serializes concurrent updates of the same row, so the row count
tells each caller whether it won. No read-modify-write happens in Python.
"""

from sqlalchemy import Boolean, Column, Float, Integer, MetaData, String, Table, insert, select, update
from sqlalchemy.engine import Engine

from catalogue.store.port import ProductRecord, ProductStore

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("price", Float, nullable=False),
    Column("discount_price", Float, nullable=True),
    Column("stock", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
)


class SqlProductStore(ProductStore):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def add(self, product: ProductRecord) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                insert(products).values(
                    id=product.id,
                    name=product.name,
                    price=product.price,
                    discount_price=product.discount_price,
                    stock=product.stock,
                    is_active=product.is_active,
                )
            )

    def find_by_id(self, product_id: str) -> ProductRecord | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(products).where(products.c.id == product_id)).mappings().first()
        if row is None:
            return None
        return ProductRecord(
            id=row["id"],
            name=row["name"],
            price=row["price"],
            discount_price=row["discount_price"],
            stock=row["stock"],
            is_active=bool(row["is_active"]),
        )

    def conditional_decrement_stock(self, product_id: str, quantity: int) -> bool:
        stmt = (
            update(products)
            .where(products.c.id == product_id, products.c.stock >= quantity)
            .values(stock=products.c.stock - quantity)
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount == 1

    def increment_stock(self, product_id: str, quantity: int) -> None:
        stmt = update(products).where(products.c.id == product_id).values(stock=products.c.stock + quantity)
        with self.engine.begin() as conn:
            conn.execute(stmt)
