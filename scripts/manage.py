#!/usr/bin/env python
import argparse
import asyncio
from decimal import Decimal

from sqlalchemy import func, select

from backend.app.core.logging import setup_logging
from backend.app.db.session import SessionLocal
from backend.app.models.enums import ProductCategory
from backend.app.models.product import Product
from backend.app.services.admin_service import create_admin
from backend.app.services.catalog_service import create_product
from backend.app.services.errors import ServiceError

STARTER_PRODUCTS = [
    {
        "name": "Steam Account - Premium",
        "description": "Premium Steam account with a large game library and a high level.",
        "price": Decimal("2500"),
        "category": ProductCategory.accounts,
        "image_url": "https://images.pexels.com/photos/442576/pexels-photo-442576.jpeg",
        "stock_quantity": 10,
        "track_stock": True,
        "low_stock_threshold": 2,
    },
    {
        "name": "Netflix Premium - 1 Month",
        "description": "Netflix Premium subscription for one month in 4K.",
        "price": Decimal("800"),
        "category": ProductCategory.subscriptions,
        "image_url": "https://images.pexels.com/photos/1040160/pexels-photo-1040160.jpeg",
        "stock_quantity": 50,
        "track_stock": True,
        "low_stock_threshold": 5,
    },
    {
        "name": "Discord Nitro - 1 Month",
        "description": "Discord Nitro subscription with all premium features.",
        "price": Decimal("600"),
        "category": ProductCategory.addons,
        "stock_quantity": 25,
        "track_stock": True,
        "low_stock_threshold": 3,
    },
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Storefront maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)

    admin = sub.add_parser("create-admin", help="Create a back-office admin")
    admin.add_argument("--username", required=True)
    admin.add_argument("--password", required=True)

    sub.add_parser("seed-products", help="Insert starter products into an empty catalog")
    return parser.parse_args()


async def cmd_create_admin(username: str, password: str) -> None:
    async with SessionLocal() as session:
        try:
            admin = await create_admin(session, username=username, password=password)
        except ServiceError as exc:
            raise SystemExit(exc.message) from exc
        await session.commit()
    print(f"Admin {admin.username} created")


async def cmd_seed_products() -> None:
    async with SessionLocal() as session:
        existing = (await session.execute(select(func.count()).select_from(Product))).scalar()
        if existing:
            raise SystemExit(f"Catalog already has {existing} product(s)")
        for fields in STARTER_PRODUCTS:
            await create_product(session, **fields)
        await session.commit()
    print(f"Seeded {len(STARTER_PRODUCTS)} products")


async def main() -> None:
    setup_logging()
    args = parse_args()
    if args.command == "create-admin":
        await cmd_create_admin(args.username, args.password)
    elif args.command == "seed-products":
        await cmd_seed_products()


if __name__ == "__main__":
    asyncio.run(main())
