from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.enums import ProductCategory
from backend.app.models.giveaway import Giveaway
from backend.app.models.product import Product

T0 = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 5, 8, 12, 0, tzinfo=timezone.utc)


def make_giveaway(**overrides) -> Giveaway:
    fields = {
        "title": "Summer drop",
        "description": "Win a premium account",
        "prize": "Steam Premium",
        "max_participants": 100,
        "start_date": T0,
        "end_date": T1,
        "is_active": True,
        "winner_count": 1,
        "created_at": T0 - timedelta(days=1),
    }
    fields.update(overrides)
    return Giveaway(**fields)


async def add_giveaway(session: AsyncSession, **overrides) -> Giveaway:
    giveaway = make_giveaway(**overrides)
    session.add(giveaway)
    await session.commit()
    return giveaway


async def add_product(session: AsyncSession, **overrides) -> Product:
    fields = {
        "name": "Netflix Premium",
        "description": "One month, 4K",
        "price": Decimal("800.00"),
        "category": ProductCategory.subscriptions,
        "image_url": "",
        "stock_quantity": 0,
        "track_stock": False,
        "low_stock_threshold": 0,
        "created_at": T0,
    }
    fields.update(overrides)
    product = Product(**fields)
    session.add(product)
    await session.commit()
    return product
