import logging
import secrets
import string
from collections import OrderedDict
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.time import utcnow
from backend.app.models.discount_code import DiscountCode
from backend.app.models.enums import OrderStatus
from backend.app.models.order import Order
from backend.app.models.product import Product
from backend.app.services.catalog_service import get_product
from backend.app.services.discount_service import get_valid_discount, redeem_discount
from backend.app.services.errors import InvalidOrder, OrderNotFound, OutOfStock
from backend.app.services.participant_service import normalize_handle
from backend.app.services.pricing import CartLine, CartTotals, price_cart

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class ItemRequest:
    product_id: int
    quantity: int


@dataclass
class Quote:
    lines: list[CartLine]
    totals: CartTotals
    products: dict[int, Product]
    discount: DiscountCode | None = None


def generate_order_code() -> str:
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(8))
    return f"{settings.order_code_prefix}-{suffix}"


def merge_items(items: Iterable[ItemRequest]) -> "OrderedDict[int, int]":
    merged: OrderedDict[int, int] = OrderedDict()
    for item in items:
        if item.quantity < 1:
            raise InvalidOrder("Quantity must be at least 1.")
        merged[item.product_id] = merged.get(item.product_id, 0) + item.quantity
    if not merged:
        raise InvalidOrder("Cart is empty.")
    return merged


async def quote_cart(
    session: AsyncSession,
    items: Iterable[ItemRequest],
    *,
    discount_code: str | None = None,
) -> Quote:
    lines: list[CartLine] = []
    products: dict[int, Product] = {}
    for product_id, quantity in merge_items(items).items():
        product = await get_product(session, product_id)
        if product.track_stock and product.stock_quantity < quantity:
            raise OutOfStock(f"Only {product.stock_quantity} of {product.name} left in stock.")
        products[product_id] = product
        lines.append(
            CartLine(
                product_id=product.id,
                name=product.name,
                unit_price=product.price,
                quantity=quantity,
            )
        )
    discount = None
    if discount_code and discount_code.strip():
        discount = await get_valid_discount(session, discount_code)
    return Quote(
        lines=lines,
        totals=price_cart(lines, discount),
        products=products,
        discount=discount,
    )


async def place_order(
    session: AsyncSession,
    *,
    items: Iterable[ItemRequest],
    customer_email: str,
    customer_telegram: str | None = None,
    discount_code: str | None = None,
) -> Order:
    email = customer_email.strip()
    if not email or "@" not in email:
        raise InvalidOrder("A valid e-mail address is required.")
    telegram = normalize_handle(customer_telegram) if customer_telegram else None

    quote = await quote_cart(session, items, discount_code=discount_code)
    for line in quote.lines:
        product = quote.products[line.product_id]
        if product.track_stock:
            product.stock_quantity -= line.quantity
    if quote.discount:
        redeem_discount(quote.discount)

    order = Order(
        order_code=generate_order_code(),
        items=[line.as_dict() for line in quote.lines],
        subtotal=quote.totals.subtotal,
        discount_code=quote.totals.discount_code,
        discount_amount=quote.totals.discount_amount,
        total_amount=quote.totals.total,
        customer_email=email,
        customer_telegram=telegram,
        status=OrderStatus.pending,
        created_at=utcnow(),
    )
    session.add(order)
    await session.flush()
    logger.info("Order %s placed, total %s", order.order_code, order.total_amount)
    return order


async def get_order_by_code(session: AsyncSession, order_code: str) -> Order:
    result = await session.execute(
        select(Order).where(Order.order_code == order_code.strip().upper())
    )
    order = result.scalar_one_or_none()
    if not order:
        raise OrderNotFound()
    return order


async def list_orders(
    session: AsyncSession, *, status: OrderStatus | None = None
) -> list[Order]:
    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if status:
        query = query.where(Order.status == status)
    result = await session.execute(query)
    return list(result.scalars().all())


async def _order_products(session: AsyncSession, order: Order) -> list[tuple[Product, int]]:
    pairs = []
    for item in order.items:
        product = await session.get(Product, item["product_id"])
        if product and product.track_stock:
            pairs.append((product, int(item["quantity"])))
    return pairs


async def _restock(session: AsyncSession, order: Order) -> None:
    for product, quantity in await _order_products(session, order):
        product.stock_quantity += quantity


async def _withdraw(session: AsyncSession, order: Order) -> None:
    pairs = await _order_products(session, order)
    for product, quantity in pairs:
        if product.stock_quantity < quantity:
            raise OutOfStock(f"Only {product.stock_quantity} of {product.name} left in stock.")
    for product, quantity in pairs:
        product.stock_quantity -= quantity


async def set_order_status(
    session: AsyncSession, *, order_id: int, status: OrderStatus
) -> Order:
    """Move an order between statuses; only non-cancelled orders hold stock."""
    order = await session.get(Order, order_id)
    if not order:
        raise OrderNotFound()
    if order.status == status:
        return order
    if status == OrderStatus.cancelled:
        await _restock(session, order)
    elif order.status == OrderStatus.cancelled:
        await _withdraw(session, order)
    order.status = status
    order.completed_at = utcnow() if status == OrderStatus.completed else None
    logger.info("Order %s is now %s", order.order_code, status.value)
    return order
