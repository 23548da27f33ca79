from decimal import Decimal

import pytest

from backend.app.models.enums import ProductCategory, SellRequestStatus
from backend.app.services.errors import InvalidSellRequest, SellRequestNotFound
from backend.app.services.sell_request_service import (
    count_by_status,
    list_sell_requests,
    parse_asking_price,
    set_status,
    submit_sell_request,
    update_notes,
)


def _form(**overrides):
    fields = {
        "customer_name": "Ana",
        "customer_email": "ana@example.com",
        "customer_telegram": "@ana_sells",
        "item_name": "Old Steam account",
        "item_description": "Level 40",
        "asking_price": "1500",
        "item_category": "accounts",
    }
    fields.update(overrides)
    return fields


def test_parse_asking_price():
    assert parse_asking_price(None) == Decimal(0)
    assert parse_asking_price(" 99.90 ") == Decimal("99.90")
    with pytest.raises(InvalidSellRequest):
        parse_asking_price("-5")
    with pytest.raises(InvalidSellRequest):
        parse_asking_price("lots")


@pytest.mark.parametrize("value", ["NaN", "sNaN", "Infinity", "-Infinity"])
def test_parse_asking_price_rejects_non_numbers(value):
    with pytest.raises(InvalidSellRequest, match="must be a number"):
        parse_asking_price(value)


@pytest.mark.asyncio
async def test_submit_and_review(session):
    request = await submit_sell_request(session, **_form())
    await session.commit()
    assert request.status == SellRequestStatus.pending
    assert request.customer_telegram == "ana_sells"
    assert request.item_category == ProductCategory.accounts

    counts = await count_by_status(session)
    assert counts[SellRequestStatus.pending] == 1
    assert counts[SellRequestStatus.approved] == 0

    await set_status(session, request_id=request.id, status=SellRequestStatus.approved)
    await update_notes(session, request_id=request.id, notes="  call tomorrow ")
    await session.commit()
    assert request.admin_notes == "call tomorrow"

    approved = await list_sell_requests(session, status=SellRequestStatus.approved)
    assert [r.id for r in approved] == [request.id]
    assert await list_sell_requests(session, status=SellRequestStatus.rejected) == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"customer_name": " "},
        {"item_name": ""},
        {"customer_email": "no-at-sign"},
        {"customer_telegram": "@"},
        {"item_category": "cars"},
        {"asking_price": "NaN"},
        {"asking_price": "sNaN"},
        {"asking_price": "Infinity"},
    ],
)
@pytest.mark.asyncio
async def test_submit_rejects_bad_input(session, overrides):
    with pytest.raises(InvalidSellRequest):
        await submit_sell_request(session, **_form(**overrides))


@pytest.mark.asyncio
async def test_unknown_sell_request(session):
    with pytest.raises(SellRequestNotFound):
        await set_status(session, request_id=1, status=SellRequestStatus.rejected)
