"""Logging setup for the mailchime daemon."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import ConfigError, LoggingConfig

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(asctime)s %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"
MAIN_LOG_NAME = "mailchime.log"
DEBUG_LOG_NAME = "debug.log"
# imapclient logs every protocol exchange at DEBUG.
CHATTY_LOGGERS = ("imapclient",)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class ConsoleFormatter(logging.Formatter):
    """Prefix each line with a level symbol, coloured when attached to a TTY."""

    SYMBOLS: dict[int, tuple[str, str]] = {
        logging.DEBUG: ("D", "\x1b[36m"),
        logging.INFO: ("I", "\x1b[32m"),
        logging.WARNING: ("!", "\x1b[33m"),
        logging.ERROR: ("X", "\x1b[31m"),
        logging.CRITICAL: ("X", "\x1b[35m"),
    }

    RESET = "\x1b[0m"

    def __init__(self, use_color: bool) -> None:
        super().__init__(CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        symbol, color = self.SYMBOLS.get(record.levelno, ("?", "\x1b[37m"))
        line = super().format(record)
        if self.use_color:
            symbol = f"{color}{symbol}{self.RESET}"
        return f"{symbol} {line}"


def configure_logging(
    logging_config: LoggingConfig,
    root_dir: Path,
    *,
    log_to_file: bool = True,
) -> None:
    """Install console and (optionally) rotating file handlers on the root logger."""

    level = level_from_string(logging_config.level)
    handlers: list[logging.Handler] = [_console_handler()]

    if log_to_file:
        log_dir = (root_dir / "logs").expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_file_handler(log_dir / MAIN_LOG_NAME, logging.INFO))
        if logging_config.debug_file:
            handlers.append(_file_handler(log_dir / DEBUG_LOG_NAME, logging.DEBUG))

    logging.basicConfig(level=level, handlers=handlers, force=True)

    protocol_level = logging.DEBUG if logging_config.debug_file else logging.WARNING
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, protocol_level))


def level_from_string(level: str) -> int:
    try:
        return _LEVELS[level.strip().upper()]
    except KeyError as exc:
        raise ConfigError(f"Unknown log level: {level}") from exc


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=5)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    stream = getattr(handler, "stream", None)
    use_color = bool(getattr(stream, "isatty", lambda: False)())
    handler.setFormatter(ConsoleFormatter(use_color))
    return handler


__all__ = ["ConsoleFormatter", "configure_logging", "level_from_string"]
