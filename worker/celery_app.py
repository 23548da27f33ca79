from celery import Celery

from backend.app.core.config import settings
from backend.app.core.logging import setup_logging

setup_logging()

# Only Telegram notifications run here; results are never read back.
celery_app = Celery("storefront", broker=settings.redis_url, include=["worker.tasks"])
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
    task_default_queue="notifications",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)
