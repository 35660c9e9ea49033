"""
Logging for Timey Zoney.

Each component asks for ``get_logger("<component>")`` and gets a logger with
two handlers: the console (INFO and up, through prompt_toolkit, colored on a
TTY) and the session log file (everything, rotated by size). Messages carry
an upper-case tag of the component, e.g. ``[DST SCHEDULER]``.

Environment:
    TIMEYZONEY_LOG_DIR    directory for session log files (default ``<repo>/logs``)
    TIMEYZONEY_LOG_LEVEL  console level name (default ``INFO``)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGS_DIR: Path = Path(os.getenv("TIMEYZONEY_LOG_DIR") or Path(__file__).parents[3] / "logs").resolve()

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"

LOG_MAX_BYTES: int = 10 * 1024 * 1024
LOG_BACKUP_COUNT: int = 5

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

NOISY_LOGGERS = [
    "discord", "discord.gateway", "discord.client", "discord.http",
    "discord.shard", "discord.state", "websockets", "aiohttp", "aiosqlite",
]

# Set once per process by get_log_filepath()
LOG_FILEPATH: Path | None = None


class ColorFormatter(logging.Formatter):
    """Paint the whole record in its level's color."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        return f"{color}{text}{RESET_COLOR}" if color else text


class PromptToolkitHandler(logging.Handler):
    """
    Console handler printing through ``print_formatted_text``.

    The ANSI wrapper lets prompt_toolkit render colors on a terminal and drop
    them when output is redirected.
    """

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


def console_level() -> int:
    level = logging.getLevelName(os.getenv("TIMEYZONEY_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def get_log_filepath() -> Path:
    """Session log file, named after the first call's timestamp."""
    global LOG_FILEPATH
    if LOG_FILEPATH is None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        LOG_FILEPATH = LOGS_DIR / f"{datetime.now().strftime(DATE_FORMAT)}.log"
    return LOG_FILEPATH


def _console_handler() -> logging.Handler:
    formatter_cls = ColorFormatter if should_use_color() else logging.Formatter
    handler = PromptToolkitHandler(formatter=formatter_cls(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.setLevel(console_level())
    return handler


def _file_handler() -> logging.Handler:
    handler = RotatingFileHandler(
        get_log_filepath(), maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(logger_name: str) -> logging.Logger:
    """Attach the console and file handlers to ``logger_name`` once and return it."""
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(_console_handler())
    logger.addHandler(_file_handler())
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    return setup_logger(logger_name)


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` that logs uncaught errors; Ctrl+C keeps the default behaviour."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


def silence_noisy_loggers() -> None:
    """Clamp library loggers to ERROR and drop any handlers they installed."""
    for name in NOISY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.setLevel(logging.ERROR)
        library_logger.propagate = False
        library_logger.handlers = []


silence_noisy_loggers()
sys.excepthook = handle_exception
