import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.time import utcnow
from backend.app.models.enums import ProductCategory, SellRequestStatus
from backend.app.models.sell_request import SellRequest
from backend.app.services.errors import (
    InvalidHandle,
    InvalidSellRequest,
    SellRequestNotFound,
)
from backend.app.services.participant_service import normalize_handle

logger = logging.getLogger(__name__)


def parse_asking_price(value: str | None) -> Decimal:
    if value is None or not str(value).strip():
        return Decimal(0)
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidSellRequest("Asking price must be a number.") from exc
    if not price.is_finite():
        raise InvalidSellRequest("Asking price must be a number.")
    if price < 0:
        raise InvalidSellRequest("Asking price cannot be negative.")
    return price


async def submit_sell_request(
    session: AsyncSession,
    *,
    customer_name: str,
    customer_email: str,
    customer_telegram: str,
    item_name: str,
    item_description: str = "",
    asking_price: str | None = None,
    item_category: str = ProductCategory.accounts.value,
) -> SellRequest:
    if not customer_name.strip() or not customer_email.strip() or not item_name.strip():
        raise InvalidSellRequest()
    if "@" not in customer_email:
        raise InvalidSellRequest("A valid e-mail address is required.")
    try:
        telegram = normalize_handle(customer_telegram)
    except InvalidHandle as exc:
        raise InvalidSellRequest(exc.message) from exc
    try:
        category = ProductCategory(item_category)
    except ValueError as exc:
        raise InvalidSellRequest(f"Unknown category: {item_category}") from exc

    now = utcnow()
    request = SellRequest(
        customer_name=customer_name.strip(),
        customer_email=customer_email.strip(),
        customer_telegram=telegram,
        item_name=item_name.strip(),
        item_description=item_description.strip(),
        asking_price=parse_asking_price(asking_price),
        item_category=category,
        status=SellRequestStatus.pending,
        created_at=now,
        updated_at=now,
    )
    session.add(request)
    await session.flush()
    logger.info("Sell request %s submitted by @%s", request.id, telegram)
    return request


async def get_sell_request(session: AsyncSession, request_id: int) -> SellRequest:
    request = await session.get(SellRequest, request_id)
    if not request:
        raise SellRequestNotFound()
    return request


async def list_sell_requests(
    session: AsyncSession, *, status: SellRequestStatus | None = None
) -> list[SellRequest]:
    query = select(SellRequest).order_by(SellRequest.created_at.desc(), SellRequest.id.desc())
    if status:
        query = query.where(SellRequest.status == status)
    result = await session.execute(query)
    return list(result.scalars().all())


async def count_by_status(session: AsyncSession) -> dict[SellRequestStatus, int]:
    result = await session.execute(
        select(SellRequest.status, func.count()).group_by(SellRequest.status)
    )
    counts = {status: 0 for status in SellRequestStatus}
    counts.update({status: count for status, count in result.all()})
    return counts


async def set_status(
    session: AsyncSession, *, request_id: int, status: SellRequestStatus
) -> SellRequest:
    request = await get_sell_request(session, request_id)
    request.status = status
    request.updated_at = utcnow()
    return request


async def update_notes(session: AsyncSession, *, request_id: int, notes: str) -> SellRequest:
    request = await get_sell_request(session, request_id)
    request.admin_notes = notes.strip() or None
    request.updated_at = utcnow()
    return request


async def delete_sell_request(session: AsyncSession, *, request_id: int) -> None:
    request = await get_sell_request(session, request_id)
    await session.delete(request)
