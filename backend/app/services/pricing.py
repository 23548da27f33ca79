"""Server-side cart pricing. Pure functions over Decimal amounts."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from collections.abc import Iterable

from backend.app.models.discount_code import DiscountCode
from backend.app.models.enums import DiscountType

CENT = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartLine:
    product_id: int
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return money(self.unit_price * self.quantity)

    def as_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": str(money(self.unit_price)),
            "quantity": self.quantity,
            "line_total": str(self.line_total),
        }


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    discount_code: str | None = None


def discount_for(subtotal: Decimal, discount: DiscountCode) -> Decimal:
    if discount.discount_type == DiscountType.percentage:
        amount = subtotal * Decimal(discount.discount_percentage) / Decimal(100)
    else:
        amount = Decimal(discount.fixed_amount)
    return money(min(max(amount, Decimal(0)), subtotal))


def price_cart(lines: Iterable[CartLine], discount: DiscountCode | None = None) -> CartTotals:
    subtotal = money(sum((line.line_total for line in lines), Decimal(0)))
    discount_amount = discount_for(subtotal, discount) if discount else money(0)
    return CartTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        total=money(subtotal - discount_amount),
        discount_code=discount.code if discount else None,
    )
