import asyncio
import logging
from contextlib import asynccontextmanager
from html import escape

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError, TelegramNetworkError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app.core.config import settings
from backend.app.models.giveaway import Giveaway
from backend.app.models.order import Order
from backend.app.models.sell_request import SellRequest
from backend.app.services.winner_service import list_winners
from worker.celery_app import celery_app

logger = logging.getLogger(__name__)

# Network hiccups are retried; Telegram refusals (bad chat, blocked bot) are not.
RETRY = {
    "autoretry_for": (TelegramNetworkError,),
    "retry_backoff": True,
    "max_retries": 3,
}


@asynccontextmanager
async def worker_session():
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    Session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    try:
        async with Session() as session:
            yield session
    finally:
        await engine.dispose()


async def _post(chat_id: int | str, text: str) -> None:
    async with Bot(
        token=settings.admin_bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    ) as bot:
        try:
            await bot.send_message(chat_id, text)
        except TelegramNetworkError:
            raise
        except TelegramAPIError:
            logger.exception("Telegram message to %s failed", chat_id)


def format_winners_message(giveaway: Giveaway, usernames: list[str]) -> str:
    lines = [f"🎉 <b>{escape(giveaway.title)}</b>", f"Prize: {escape(giveaway.prize)}", ""]
    lines += [f"{position}. @{escape(name)}" for position, name in enumerate(usernames, 1)]
    return "\n".join(lines)


def format_order_message(order: Order) -> str:
    items = "\n".join(
        f"• {item['quantity']} × {escape(item['name'])}" for item in order.items
    )
    contact = escape(order.customer_email)
    if order.customer_telegram:
        contact += f" / @{escape(order.customer_telegram)}"
    return (
        f"🛒 New order <b>{order.order_code}</b>\n{items}\n"
        f"Total: {order.total_amount} {settings.currency}\n{contact}"
    )


def format_sell_request_message(request: SellRequest) -> str:
    return (
        f"💰 Sell request #{request.id}: <b>{escape(request.item_name)}</b>\n"
        f"Category: {request.item_category.value}\n"
        f"Asking: {request.asking_price} {settings.currency}\n"
        f"{escape(request.customer_name)} / @{escape(request.customer_telegram)}"
    )


@celery_app.task(name="worker.tasks.announce_winners", **RETRY)
def announce_winners(giveaway_id: int) -> None:
    asyncio.run(_announce_winners_async(giveaway_id))


async def _announce_winners_async(giveaway_id: int) -> None:
    async with worker_session() as session:
        giveaway = await session.get(Giveaway, giveaway_id)
        if not giveaway:
            logger.warning("Giveaway %s vanished before announcement", giveaway_id)
            return
        winners = await list_winners(session, giveaway_id)
        usernames = [w.participant.telegram_username for w in winners]
    if usernames:
        await _post(settings.public_channel, format_winners_message(giveaway, usernames))


@celery_app.task(name="worker.tasks.notify_new_order", **RETRY)
def notify_new_order(order_id: int) -> None:
    asyncio.run(_notify_new_order_async(order_id))


async def _notify_new_order_async(order_id: int) -> None:
    async with worker_session() as session:
        order = await session.get(Order, order_id)
    if order:
        await _post(settings.admin_group_id, format_order_message(order))


@celery_app.task(name="worker.tasks.notify_sell_request", **RETRY)
def notify_sell_request(request_id: int) -> None:
    asyncio.run(_notify_sell_request_async(request_id))


async def _notify_sell_request_async(request_id: int) -> None:
    async with worker_session() as session:
        request = await session.get(SellRequest, request_id)
    if request:
        await _post(settings.admin_group_id, format_sell_request_message(request))
