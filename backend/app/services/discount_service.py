from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.time import utcnow
from backend.app.models.discount_code import DiscountCode
from backend.app.models.enums import DiscountType
from backend.app.services.errors import DiscountCodeInvalid, ServiceError


def normalize_code(code: str) -> str:
    return code.strip().upper()


def is_exhausted(discount: DiscountCode) -> bool:
    return discount.max_usage is not None and discount.usage_count >= discount.max_usage


async def list_discount_codes(session: AsyncSession) -> list[DiscountCode]:
    result = await session.execute(
        select(DiscountCode).order_by(DiscountCode.created_at.desc(), DiscountCode.id.desc())
    )
    return list(result.scalars().all())


async def find_discount(session: AsyncSession, code: str) -> DiscountCode | None:
    result = await session.execute(
        select(DiscountCode).where(func.upper(DiscountCode.code) == normalize_code(code))
    )
    return result.scalar_one_or_none()


async def get_valid_discount(session: AsyncSession, code: str) -> DiscountCode:
    discount = await find_discount(session, code) if code.strip() else None
    if not discount or not discount.is_active or is_exhausted(discount):
        raise DiscountCodeInvalid()
    return discount


def redeem_discount(discount: DiscountCode) -> None:
    discount.usage_count += 1


async def create_discount_code(
    session: AsyncSession,
    *,
    code: str,
    discount_type: DiscountType,
    discount_percentage: int = 0,
    fixed_amount: Decimal = Decimal(0),
    max_usage: int | None = None,
    is_active: bool = True,
) -> DiscountCode:
    code = normalize_code(code)
    if not code:
        raise ServiceError("Code is required.")
    if discount_type == DiscountType.percentage and not 0 < discount_percentage <= 100:
        raise ServiceError("Percentage must be between 1 and 100.")
    if discount_type == DiscountType.fixed and fixed_amount <= 0:
        raise ServiceError("Fixed amount must be positive.")
    if max_usage is not None and max_usage < 1:
        raise ServiceError("Usage limit must be at least 1.")
    discount = DiscountCode(
        code=code,
        discount_type=discount_type,
        discount_percentage=discount_percentage,
        fixed_amount=fixed_amount,
        usage_count=0,
        max_usage=max_usage,
        is_active=is_active,
        created_at=utcnow(),
    )
    session.add(discount)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise ServiceError(f"Code {code} already exists.") from exc
    return discount


async def toggle_discount_code(session: AsyncSession, *, discount_id: int) -> DiscountCode | None:
    discount = await session.get(DiscountCode, discount_id)
    if discount:
        discount.is_active = not discount.is_active
    return discount


async def delete_discount_code(session: AsyncSession, *, discount_id: int) -> None:
    discount = await session.get(DiscountCode, discount_id)
    if discount:
        await session.delete(discount)
