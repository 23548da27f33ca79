from datetime import timedelta

import pytest

from backend.app.core.time import utcnow
from backend.app.services.admin_service import create_admin
from backend.app.services.participant_service import join_giveaway
from backend.app.services.winner_service import list_winners
from backend.app.web.auth import SESSION_COOKIE, create_session_cookie, get_serializer

from tests.factories import add_giveaway, add_product


async def _open_giveaway(session, **overrides):
    now = utcnow()
    fields = {"start_date": now - timedelta(days=1), "end_date": now + timedelta(days=1)}
    fields.update(overrides)
    return await add_giveaway(session, **fields)


def _login(client, username="admin"):
    cookie = create_session_cookie(username)
    client.cookies.set(SESSION_COOKIE, cookie)
    return get_serializer().loads(cookie)["csrf"]


@pytest.mark.asyncio
async def test_join_flow(client, session):
    giveaway = await _open_giveaway(session, max_participants=2)
    url = f"/api/giveaways/{giveaway.id}/join"

    response = await client.post(url, json={"telegram_username": "@Alice"})
    assert response.status_code == 201
    assert response.json()["telegram_username"] == "Alice"

    response = await client.post(url, json={"telegram_username": "alice"})
    assert response.status_code == 409
    assert "already joined" in response.json()["error"]

    response = await client.post(url, json={"telegram_username": "  @ "})
    assert response.status_code == 400

    response = await client.post(url, json={"telegram_username": "bob"})
    assert response.status_code == 201
    response = await client.post(url, json={"telegram_username": "carol"})
    assert response.status_code == 400
    assert response.json()["error"] == "This giveaway is full."

    detail = (await client.get(f"/api/giveaways/{giveaway.id}")).json()
    assert detail["participant_count"] == 2
    assert detail["is_full"] is True
    assert detail["status"] == "active"
    assert detail["winners"] == []

    participants = (await client.get(f"/api/giveaways/{giveaway.id}/participants")).json()
    assert {p["telegram_username"] for p in participants["items"]} == {"Alice", "bob"}


@pytest.mark.asyncio
async def test_join_unknown_giveaway(client):
    response = await client.post("/api/giveaways/999/join", json={"telegram_username": "alice"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_public_list_hides_disabled(client, session):
    visible = await _open_giveaway(session, title="Visible")
    await _open_giveaway(session, title="Hidden", is_active=False)
    items = (await client.get("/api/giveaways")).json()["items"]
    assert [g["id"] for g in items] == [visible.id]
    assert items[0]["can_join"] is True


@pytest.mark.asyncio
async def test_order_flow(client, session):
    product = await add_product(session, track_stock=True, stock_quantity=2)

    products = (await client.get("/api/products")).json()["items"]
    assert products[0]["stock_status"] == "in_stock"

    quote = await client.post(
        "/api/cart/quote", json={"items": [{"product_id": product.id, "quantity": 2}]}
    )
    assert quote.status_code == 200
    assert quote.json()["total"] == "1600.00"

    response = await client.post(
        "/api/orders",
        json={
            "items": [{"product_id": product.id, "quantity": 2}],
            "customer_email": "buyer@example.com",
        },
    )
    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert order["total_amount"] == "1600.00"

    found = await client.get(f"/api/orders/{order['order_code']}")
    assert found.json()["order_code"] == order["order_code"]

    response = await client.post(
        "/api/orders",
        json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "customer_email": "late@example.com",
        },
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_order_and_product(client):
    assert (await client.get("/api/orders/KS-MISSING1")).status_code == 404
    assert (await client.get("/api/products/77")).status_code == 404


@pytest.mark.asyncio
async def test_sell_request(client):
    response = await client.post(
        "/api/sell-requests",
        json={
            "customer_name": "Ana",
            "customer_email": "ana@example.com",
            "customer_telegram": "ana",
            "item_name": "Steam account",
        },
    )
    assert response.status_code == 201
    assert response.json()["status"] == "pending"

    response = await client.post(
        "/api/sell-requests",
        json={
            "customer_name": "",
            "customer_email": "ana@example.com",
            "customer_telegram": "ana",
            "item_name": "Steam account",
        },
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_login(client, session):
    await create_admin(session, username="boss", password="correct-horse")
    await session.commit()

    response = await client.post(
        "/admin/login", data={"username": "boss", "password": "wrong-password"}
    )
    assert response.status_code == 200
    assert "Invalid credentials" in response.text

    response = await client.post(
        "/admin/login", data={"username": "boss", "password": "correct-horse"}
    )
    assert response.status_code == 302
    assert SESSION_COOKIE in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_admin_draw(client, session):
    giveaway = await _open_giveaway(session, winner_count=2)
    gid = giveaway.id
    for name in ["a", "b", "c"]:
        await join_giveaway(session, giveaway_id=gid, telegram_username=name)
    await session.commit()

    csrf = _login(client)
    response = await client.post(f"/admin/giveaways/{gid}/draw", data={"csrf_token": csrf})
    assert response.status_code == 302
    assert "ok=" in response.headers["location"]

    winners = await list_winners(session, gid)
    assert [w.position for w in winners] == [1, 2]

    page = await client.get(f"/admin/giveaways/{gid}")
    assert page.status_code == 200


@pytest.mark.asyncio
async def test_admin_draw_rejects_bad_csrf(client, session):
    giveaway = await _open_giveaway(session)
    _login(client)
    response = await client.post(
        f"/admin/giveaways/{giveaway.id}/draw", data={"csrf_token": "forged"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_draw_without_participants(client, session):
    giveaway = await _open_giveaway(session)
    csrf = _login(client)
    response = await client.post(
        f"/admin/giveaways/{giveaway.id}/draw", data={"csrf_token": csrf}
    )
    assert response.status_code == 302
    assert "error=" in response.headers["location"]


@pytest.mark.asyncio
async def test_sell_request_with_nan_price_is_rejected(client):
    response = await client.post(
        "/api/sell-requests",
        json={
            "customer_name": "Ana",
            "customer_email": "ana@example.com",
            "customer_telegram": "ana",
            "item_name": "Steam account",
            "asking_price": "NaN",
        },
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Asking price must be a number."


@pytest.mark.asyncio
async def test_admin_status_of_unknown_order_redirects(client):
    csrf = _login(client)
    response = await client.post(
        "/admin/orders/999/status", data={"status": "completed", "csrf_token": csrf}
    )
    assert response.status_code == 302
    assert response.headers["location"].startswith("/admin/orders?error=")
