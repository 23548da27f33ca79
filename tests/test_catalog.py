from decimal import Decimal

import pytest

from backend.app.models.enums import ProductCategory
from backend.app.models.product import Product
from backend.app.services.catalog_service import (
    create_product,
    fake_discount_percent,
    list_products,
    parse_amount,
    parse_category,
    stock_status,
)
from backend.app.services.errors import InvalidProduct

from tests.factories import add_product


@pytest.mark.parametrize(
    "track, quantity, expected",
    [
        (False, 0, "unlimited"),
        (True, 0, "out_of_stock"),
        (True, 2, "low_stock"),
        (True, 10, "in_stock"),
    ],
)
def test_stock_status(track, quantity, expected):
    product = Product(track_stock=track, stock_quantity=quantity, low_stock_threshold=3)
    assert stock_status(product) == expected


def test_fake_discount_percent():
    product = Product(
        price=Decimal("750"), original_price=Decimal("1000"), show_fake_discount=True
    )
    assert fake_discount_percent(product) == 25
    product.show_fake_discount = False
    assert fake_discount_percent(product) is None


def test_parse_helpers():
    assert parse_category("all") is None
    assert parse_category("addons") == ProductCategory.addons
    assert parse_amount("12.50", field="Price") == Decimal("12.50")
    assert parse_amount("", field="Price", optional=True) is None
    with pytest.raises(InvalidProduct):
        parse_category("cars")
    with pytest.raises(InvalidProduct):
        parse_amount("-1", field="Price")
    with pytest.raises(InvalidProduct):
        parse_amount("abc", field="Price")


@pytest.mark.asyncio
async def test_list_products_filters(session):
    await add_product(session, name="Netflix Premium")
    await add_product(session, name="Steam account", category=ProductCategory.accounts)
    await add_product(session, name="Extra storage", category=ProductCategory.addons)

    accounts = await list_products(session, category=ProductCategory.accounts)
    assert [p.name for p in accounts] == ["Steam account"]
    found = await list_products(session, query="netflix")
    assert [p.name for p in found] == ["Netflix Premium"]
    assert len(await list_products(session)) == 3


@pytest.mark.asyncio
async def test_create_product_requires_name(session):
    with pytest.raises(InvalidProduct):
        await create_product(
            session, name="  ", price=Decimal("1"), category=ProductCategory.addons
        )
