# shopcore/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import List

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _level(name: str, default: str) -> int:
    return getattr(logging, os.getenv(name, default).upper(), logging.INFO)


def _build_handlers(level: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []

    if _env_flag("LOG_TO_STDOUT", "true"):
        handlers.append(logging.StreamHandler(sys.stdout))

    if _env_flag("LOG_TO_FILE", "false"):
        path = os.getenv("LOG_FILE", "./logs/storefront.log")
        try:
            if os.path.dirname(path):
                os.makedirs(os.path.dirname(path), exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    path,
                    maxBytes=int(os.getenv("LOG_MAX_BYTES", str(1024 * 1024))),
                    backupCount=int(os.getenv("LOG_BACKUPS", "3")),
                )
            )
        except OSError as e:
            logging.getLogger().warning("Could not open log file %s: %s", path, e)

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging():
    """
    Configure the root logger once from the environment.

    LOG_LEVEL sets the storefront level; LOG_HTTP_LEVEL (default WARNING)
    sets the level of urllib3, the transport under requests.
    """
    global _configured
    if _configured:
        return

    level = _level("LOG_LEVEL", "INFO")
    root = logging.getLogger()
    root.setLevel(level)
    logging.getLogger("urllib3").setLevel(_level("LOG_HTTP_LEVEL", "WARNING"))

    # Avoid duplicate handlers
    if not root.handlers:
        for handler in _build_handlers(level):
            root.addHandler(handler)

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
