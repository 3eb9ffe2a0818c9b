"""
Logging setup for VaultSearch.

The entry point calls setup_logging() once. Everything else asks for a
named logger with get_logger(__name__) and never touches handlers.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import LOG_LEVEL

DEFAULT_LOG_PATH = Path("logs") / "vaultsearch.log"

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(module)s.%(funcName)s:%(lineno)d %(message)s"

# Third-party loggers that are only interesting when something goes wrong
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "llama_cpp", "slowapi")


def _file_handler(log_file: Optional[str]) -> logging.Handler:
    target = Path(log_file) if log_file else DEFAULT_LOG_PATH
    target.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(target, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    log_level: str = LOG_LEVEL,
    log_file: Optional[str] = None,
    enable_file_logging: bool = False
) -> None:
    """
    Install console (and optionally file) handlers on the root logger.

    Args:
        log_level: Console level name, e.g. "DEBUG" or "INFO"
        log_file: File handler target (logs/vaultsearch.log when omitted)
        enable_file_logging: Also write a detailed log file at DEBUG level
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    handlers = [console]
    if enable_file_logging:
        handlers.append(_file_handler(log_file))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG if enable_file_logging else level)
    for handler in handlers:
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Named logger for a module (pass __name__)."""
    return logging.getLogger(name)
