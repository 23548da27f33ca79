import asyncio
from decimal import Decimal

import pytest

from backend.app.core.config import settings
from backend.app.models.enums import OrderStatus, ProductCategory, SellRequestStatus
from backend.app.models.order import Order
from backend.app.models.sell_request import SellRequest
from backend.app.services import notifications
from worker import tasks
from worker.tasks import format_order_message, format_sell_request_message, format_winners_message

from tests.factories import make_giveaway


def _capture(monkeypatch):
    sent = []
    monkeypatch.setattr(
        notifications.celery_app,
        "send_task",
        lambda name, args=None: sent.append((name, args)),
    )
    return sent


def test_nothing_is_queued_without_chats(monkeypatch):
    sent = _capture(monkeypatch)
    monkeypatch.setattr(settings, "admin_bot_token", "")
    notifications.announce_winners(1)
    notifications.notify_new_order(1)
    notifications.notify_sell_request(1)
    assert sent == []


def test_tasks_are_queued_when_configured(monkeypatch):
    sent = _capture(monkeypatch)
    monkeypatch.setattr(settings, "admin_bot_token", "123:abc")
    monkeypatch.setattr(settings, "public_channel", "@koho_shop")
    monkeypatch.setattr(settings, "admin_group_id", -100)
    notifications.announce_winners(5)
    notifications.notify_new_order(6)
    assert sent == [
        ("worker.tasks.announce_winners", [5]),
        ("worker.tasks.notify_new_order", [6]),
    ]


def test_broker_failure_is_swallowed(monkeypatch):
    def boom(name, args=None):
        raise ConnectionError("broker down")

    monkeypatch.setattr(notifications.celery_app, "send_task", boom)
    monkeypatch.setattr(settings, "admin_bot_token", "123:abc")
    monkeypatch.setattr(settings, "admin_group_id", -100)
    notifications.notify_sell_request(3)


def test_winners_message_escapes_html():
    giveaway = make_giveaway(title="<Drop>", prize="Hoodie & cap")
    text = format_winners_message(giveaway, ["alice", "bob"])
    assert "&lt;Drop&gt;" in text
    assert "Hoodie &amp; cap" in text
    assert text.endswith("1. @alice\n2. @bob")


def test_order_and_sell_request_messages():
    order = Order(
        order_code="KS-ABCD1234",
        items=[{"name": "Netflix", "quantity": 2}],
        total_amount=Decimal("1600.00"),
        customer_email="buyer@example.com",
        customer_telegram="buyer",
        status=OrderStatus.pending,
    )
    text = format_order_message(order)
    assert "KS-ABCD1234" in text
    assert "2 × Netflix" in text
    assert "buyer@example.com / @buyer" in text

    request = SellRequest(
        id=4,
        customer_name="Ana",
        customer_telegram="ana",
        item_name="Steam account",
        asking_price=Decimal("1500"),
        item_category=ProductCategory.accounts,
        status=SellRequestStatus.pending,
    )
    text = format_sell_request_message(request)
    assert "#4" in text
    assert "Category: accounts" in text
    assert "Ana / @ana" in text


def test_worker_session_disposes_engine_on_error(monkeypatch):
    disposed = []

    class FakeEngine:
        async def dispose(self):
            disposed.append(True)

    class FakeSession:
        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

    monkeypatch.setattr(tasks, "create_async_engine", lambda *args, **kwargs: FakeEngine())
    monkeypatch.setattr(tasks, "async_sessionmaker", lambda *args, **kwargs: FakeSession)

    async def failing_task():
        async with tasks.worker_session():
            raise ConnectionError("telegram down")

    with pytest.raises(ConnectionError):
        asyncio.run(failing_task())
    assert disposed == [True]
