import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.time import utcnow
from backend.app.models.enums import ProductCategory
from backend.app.models.product import Product
from backend.app.services.errors import InvalidProduct, ProductNotFound

logger = logging.getLogger(__name__)


def stock_status(product: Product) -> str:
    if not product.track_stock:
        return "unlimited"
    if product.stock_quantity <= 0:
        return "out_of_stock"
    if product.stock_quantity <= product.low_stock_threshold:
        return "low_stock"
    return "in_stock"


def fake_discount_percent(product: Product) -> int | None:
    if not product.show_fake_discount or not product.original_price:
        return None
    if product.original_price <= product.price:
        return None
    saved = (product.original_price - product.price) / product.original_price * 100
    return int(saved.to_integral_value())


def parse_category(value: str | None) -> ProductCategory | None:
    if not value or value == "all":
        return None
    try:
        return ProductCategory(value)
    except ValueError as exc:
        raise InvalidProduct(f"Unknown category: {value}") from exc


def parse_amount(value, *, field: str, optional: bool = False) -> Decimal | None:
    if value is None or str(value).strip() == "":
        if optional:
            return None
        raise InvalidProduct(f"{field} is required.")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidProduct(f"{field} must be a number.") from exc
    if amount < 0:
        raise InvalidProduct(f"{field} cannot be negative.")
    return amount


async def list_products(
    session: AsyncSession,
    *,
    category: ProductCategory | None = None,
    query: str | None = None,
) -> list[Product]:
    stmt = select(Product).order_by(Product.created_at.desc(), Product.id.desc())
    if category:
        stmt = stmt.where(Product.category == category)
    if query and query.strip():
        like = f"%{query.strip()}%"
        stmt = stmt.where(or_(Product.name.ilike(like), Product.description.ilike(like)))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_product(session: AsyncSession, product_id: int) -> Product:
    product = await session.get(Product, product_id)
    if not product:
        raise ProductNotFound()
    return product


def _apply(product: Product, **fields) -> None:
    name = fields["name"].strip()
    if not name:
        raise InvalidProduct("Name is required.")
    if fields["price"] is None or fields["price"] < 0:
        raise InvalidProduct("Price cannot be negative.")
    if fields["stock_quantity"] < 0 or fields["low_stock_threshold"] < 0:
        raise InvalidProduct("Stock values cannot be negative.")
    product.name = name
    product.description = fields["description"].strip()
    product.price = fields["price"]
    product.category = fields["category"]
    product.image_url = fields["image_url"].strip()
    product.original_price = fields["original_price"]
    product.show_fake_discount = fields["show_fake_discount"]
    product.stock_quantity = fields["stock_quantity"]
    product.track_stock = fields["track_stock"]
    product.low_stock_threshold = fields["low_stock_threshold"]


async def create_product(
    session: AsyncSession,
    *,
    name: str,
    price: Decimal,
    category: ProductCategory,
    description: str = "",
    image_url: str = "",
    original_price: Decimal | None = None,
    show_fake_discount: bool = False,
    stock_quantity: int = 0,
    track_stock: bool = False,
    low_stock_threshold: int = 0,
) -> Product:
    product = Product(created_at=utcnow())
    _apply(
        product,
        name=name,
        description=description,
        price=price,
        category=category,
        image_url=image_url,
        original_price=original_price,
        show_fake_discount=show_fake_discount,
        stock_quantity=stock_quantity,
        track_stock=track_stock,
        low_stock_threshold=low_stock_threshold,
    )
    session.add(product)
    await session.flush()
    return product


async def update_product(session: AsyncSession, *, product_id: int, **fields) -> Product:
    product = await get_product(session, product_id)
    _apply(product, **fields)
    return product


async def delete_product(session: AsyncSession, *, product_id: int) -> None:
    product = await get_product(session, product_id)
    await session.delete(product)
    logger.info("Product %s deleted", product_id)
