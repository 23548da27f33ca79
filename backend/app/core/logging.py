import logging

from backend.app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def setup_logging() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())
    # Third-party chatter stays at WARNING unless something breaks.
    for name in ("sqlalchemy.engine", "aiogram", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
    _configured = True
