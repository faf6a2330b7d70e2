# core/logging_config.py
import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOGGER_NAME = "fleet"

# supabase-py pulls these in; at INFO they log every HTTP call and channel heartbeat
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "realtime", "websockets", "apscheduler.executors")


def setup_logger(level: str = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)

    # reload-safe
    if logger.handlers:
        return logger

    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logger.setLevel(getattr(logging, level, logging.INFO))

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(stream_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


logger = setup_logger()
