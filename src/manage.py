"""Storefront database management CLI.

Provides commands to create and drop the ordering domain's database schema
and to load the catalogue records the ordering core reads.

Usage:
    python src/manage.py setup-db                    # Create all tables
    python src/manage.py drop-db                     # Drop all tables
    python src/manage.py seed-products products.json # Upsert products
"""

import argparse
import json
import sys
from pathlib import Path


def setup_database():
    from ordering.domain import ordering
    from shared.db import setup_db

    print("Creating ordering database schema...")
    setup_db(ordering)
    print("Done.")


def drop_database():
    from ordering.domain import ordering
    from shared.db import drop_db

    print("Dropping ordering database schema...")
    drop_db(ordering)
    print("Done.")


def seed_products(path: Path) -> int:
    """Insert or update products from a JSON list of product records.

    Each record needs ``id``, ``title``, ``price`` and ``stock``; ``image``
    and ``sale_price`` are optional. Returns the number of records loaded.
    """
    from ordering.catalogue import save_product
    from ordering.domain import ordering

    records = json.loads(path.read_text())
    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON list of products")

    with ordering.domain_context():
        for record in records:
            save_product(
                product_id=record["id"],
                title=record["title"],
                price=record["price"],
                stock=record["stock"],
                sale_price=record.get("sale_price"),
                image=record.get("image"),
            )
    print(f"Loaded {len(records)} products from {path}.")
    return len(records)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    seed_parser = subparsers.add_parser("seed-products", help="Load products from a JSON file")
    seed_parser.add_argument("file", type=Path, help="JSON list of product records")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "seed-products":
        seed_products(args.file)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    from ordering.domain import ordering
    from shared.logging import configure_logging

    configure_logging()
    ordering.init()
    main()
