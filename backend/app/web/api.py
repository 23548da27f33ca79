from decimal import Decimal

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.time import utcnow
from backend.app.db.session import get_session
from backend.app.models.giveaway import Giveaway
from backend.app.models.order import Order
from backend.app.models.product import Product
from backend.app.models.winner import Winner
from backend.app.services import notifications
from backend.app.services.catalog_service import (
    fake_discount_percent,
    get_product,
    list_products,
    parse_category,
    stock_status,
)
from backend.app.services.eligibility import Eligibility, evaluate
from backend.app.services.giveaway_service import (
    get_giveaway,
    list_public_giveaways,
    participation_link,
)
from backend.app.services.order_service import (
    ItemRequest,
    get_order_by_code,
    place_order,
    quote_cart,
)
from backend.app.services.participant_service import (
    count_participants,
    join_giveaway,
    list_participants,
)
from backend.app.services.sell_request_service import submit_sell_request
from backend.app.services.winner_service import list_winners
from backend.app.web.limiter import limiter

router = APIRouter(prefix="/api", tags=["storefront"])


class CartItemIn(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)


class QuoteIn(BaseModel):
    items: list[CartItemIn]
    discount_code: str | None = None


class OrderIn(QuoteIn):
    customer_email: str
    customer_telegram: str | None = None


class JoinIn(BaseModel):
    telegram_username: str
    email: str | None = None


class SellRequestIn(BaseModel):
    customer_name: str
    customer_email: str
    customer_telegram: str
    item_name: str
    item_description: str = ""
    asking_price: str | None = None
    item_category: str = "accounts"


def _amount(value: Decimal | None) -> str | None:
    return None if value is None else f"{value:.2f}"


def product_out(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": _amount(product.price),
        "original_price": _amount(product.original_price),
        "fake_discount_percent": fake_discount_percent(product),
        "category": product.category.value,
        "image_url": product.image_url,
        "stock_status": stock_status(product),
        "stock_quantity": product.stock_quantity if product.track_stock else None,
        "currency": settings.currency,
    }


def order_out(order: Order) -> dict:
    return {
        "order_code": order.order_code,
        "status": order.status.value,
        "items": order.items,
        "subtotal": _amount(order.subtotal),
        "discount_code": order.discount_code,
        "discount_amount": _amount(order.discount_amount),
        "total_amount": _amount(order.total_amount),
        "currency": settings.currency,
        "created_at": order.created_at.isoformat(),
    }


def giveaway_out(giveaway: Giveaway, eligibility: Eligibility) -> dict:
    return {
        "id": giveaway.id,
        "title": giveaway.title,
        "description": giveaway.description,
        "prize": giveaway.prize,
        "start_date": giveaway.start_date.isoformat(),
        "end_date": giveaway.end_date.isoformat(),
        "winner_count": giveaway.winner_count,
        "max_participants": giveaway.max_participants,
        "participant_count": eligibility.participant_count,
        "spots_left": eligibility.spots_left,
        "status": eligibility.status.value,
        "is_full": eligibility.is_full,
        "can_join": eligibility.can_join,
        "link": participation_link(giveaway.id),
    }


def winner_out(winner: Winner) -> dict:
    return {
        "position": winner.position,
        "telegram_username": winner.participant.telegram_username,
        "selected_at": winner.selected_at.isoformat(),
    }


@router.get("/products")
async def products_list(
    category: str | None = None,
    q: str | None = None,
    session: AsyncSession = Depends(get_session),
):
    products = await list_products(session, category=parse_category(category), query=q)
    return {"items": [product_out(p) for p in products]}


@router.get("/products/{product_id}")
async def product_detail(product_id: int, session: AsyncSession = Depends(get_session)):
    return product_out(await get_product(session, product_id))


@router.post("/cart/quote")
async def cart_quote(body: QuoteIn, session: AsyncSession = Depends(get_session)):
    quote = await quote_cart(
        session,
        [ItemRequest(i.product_id, i.quantity) for i in body.items],
        discount_code=body.discount_code,
    )
    return {
        "lines": [line.as_dict() for line in quote.lines],
        "subtotal": _amount(quote.totals.subtotal),
        "discount_code": quote.totals.discount_code,
        "discount_amount": _amount(quote.totals.discount_amount),
        "total": _amount(quote.totals.total),
        "currency": settings.currency,
    }


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def orders_create(body: OrderIn, session: AsyncSession = Depends(get_session)):
    order = await place_order(
        session,
        items=[ItemRequest(i.product_id, i.quantity) for i in body.items],
        customer_email=body.customer_email,
        customer_telegram=body.customer_telegram,
        discount_code=body.discount_code,
    )
    await session.commit()
    notifications.notify_new_order(order.id)
    return order_out(order)


@router.get("/orders/{order_code}")
async def orders_detail(order_code: str, session: AsyncSession = Depends(get_session)):
    return order_out(await get_order_by_code(session, order_code))


@router.get("/giveaways")
async def giveaways_list(session: AsyncSession = Depends(get_session)):
    overviews = await list_public_giveaways(session)
    return {"items": [giveaway_out(o.giveaway, o.eligibility) for o in overviews]}


@router.get("/giveaways/{giveaway_id}")
async def giveaways_detail(giveaway_id: int, session: AsyncSession = Depends(get_session)):
    giveaway = await get_giveaway(session, giveaway_id)
    eligibility = evaluate(giveaway, utcnow(), await count_participants(session, giveaway_id))
    data = giveaway_out(giveaway, eligibility)
    data["winners"] = [winner_out(w) for w in await list_winners(session, giveaway_id)]
    return data


@router.get("/giveaways/{giveaway_id}/participants")
async def giveaways_participants(
    giveaway_id: int, session: AsyncSession = Depends(get_session)
):
    await get_giveaway(session, giveaway_id)
    participants = await list_participants(session, giveaway_id)
    return {
        "items": [
            {"telegram_username": p.telegram_username, "joined_at": p.created_at.isoformat()}
            for p in participants
        ]
    }


@router.post("/giveaways/{giveaway_id}/join", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.join_rate_limit)
async def giveaways_join(
    request: Request,
    giveaway_id: int,
    body: JoinIn,
    session: AsyncSession = Depends(get_session),
):
    participant = await join_giveaway(
        session,
        giveaway_id=giveaway_id,
        telegram_username=body.telegram_username,
        email=body.email,
    )
    await session.commit()
    return {
        "giveaway_id": giveaway_id,
        "telegram_username": participant.telegram_username,
        "joined_at": participant.created_at.isoformat(),
    }


@router.post("/sell-requests", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.sell_request_rate_limit)
async def sell_requests_create(
    request: Request,
    body: SellRequestIn,
    session: AsyncSession = Depends(get_session),
):
    sell_request = await submit_sell_request(session, **body.model_dump())
    await session.commit()
    notifications.notify_sell_request(sell_request.id)
    return {"id": sell_request.id, "status": sell_request.status.value}
