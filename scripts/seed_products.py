"""Seed the SQL product store with demo products.

Creates the ``products`` table at DATABASE_URL (if missing) and inserts
products ``LT-PROD-0001`` … with generous stock, so the API and the load tests
have something to sell. Run the API with ``PRODUCT_STORE=sql`` afterwards.

Usage:
    python scripts/seed_products.py --count 50 --stock 100000
    DATABASE_URL=postgresql://... python scripts/seed_products.py --inactive 5
"""

import argparse
import os
import random
import sys
import time

# Add src/ to path so we can import domain modules
sys.path.insert(0, "src")


def main():
    parser = argparse.ArgumentParser(
        description="Seed the SQL product store with demo products",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--count", type=int, default=50, help="Number of products to create (default: 50)")
    parser.add_argument("--stock", type=int, default=100_000, help="Stock per product (default: 100000)")
    parser.add_argument("--inactive", type=int, default=0, help="How many of them to mark inactive (default: 0)")
    args = parser.parse_args()

    from sqlalchemy import create_engine
    from sqlalchemy.exc import IntegrityError

    from catalogue.store import ProductRecord
    from catalogue.store.sql_adapter import SqlProductStore

    url = os.environ.get("DATABASE_URL", "sqlite:///storefront.db")
    store = SqlProductStore(create_engine(url))
    store.create_schema()

    print(f"\n{'='*60}")
    print("  Storefront product seed")
    print(f"{'='*60}")
    print(f"  Database:  {url}")
    print(f"  Products:  {args.count:,} ({args.inactive} inactive)")
    print(f"  Stock:     {args.stock:,} each")
    print(f"{'='*60}\n")

    created = skipped = 0
    start = time.monotonic()
    for i in range(args.count):
        price = float(random.randrange(50, 5000, 10))
        product = ProductRecord(
            id=f"LT-PROD-{i + 1:04d}",
            name=f"Demo Product {i + 1}",
            price=price,
            discount_price=round(price * 0.9, 2) if i % 5 == 0 else None,
            stock=args.stock,
            is_active=i >= args.inactive,
        )
        try:
            store.add(product)
            created += 1
        except IntegrityError:
            skipped += 1

    print(f"  Created {created:,} products, skipped {skipped:,} existing in {time.monotonic() - start:.1f}s\n")


if __name__ == "__main__":
    main()
