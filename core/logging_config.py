# core/logging_config.py
import logging

from core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOGGER_NAME = "meuape"


def setup_logger() -> logging.Logger:
    app_logger = logging.getLogger(LOGGER_NAME)

    # Avoid duplicate handlers in dev reload
    if app_logger.handlers:
        return app_logger

    app_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    app_logger.addHandler(stream_handler)

    # supabase-py / httpx log every PostgREST call at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    return app_logger


def get_logger(name: str) -> logging.Logger:
    """Child of the application logger, e.g. ``meuape.intake``."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


logger = setup_logger()
