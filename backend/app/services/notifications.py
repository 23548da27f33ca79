"""Queue Telegram notifications for the worker.

Each helper is a no-op when the matching chat is not configured.
"""

import logging

from backend.app.core.config import settings
from worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def _send(task_name: str, *args) -> None:
    try:
        celery_app.send_task(task_name, args=list(args))
    except Exception:
        # Notification loss must not fail the request that triggered it.
        logger.exception("Failed to enqueue %s", task_name)


def announce_winners(giveaway_id: int) -> None:
    if settings.public_channel and settings.admin_bot_token:
        _send("worker.tasks.announce_winners", giveaway_id)


def notify_new_order(order_id: int) -> None:
    if settings.admin_group_id and settings.admin_bot_token:
        _send("worker.tasks.notify_new_order", order_id)


def notify_sell_request(request_id: int) -> None:
    if settings.admin_group_id and settings.admin_bot_token:
        _send("worker.tasks.notify_sell_request", request_id)
