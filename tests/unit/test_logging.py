from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from mailchime.config import ConfigError, LoggingConfig
from mailchime.logging import ConsoleFormatter, configure_logging, level_from_string


@pytest.fixture
def imapclient_logger():
    logger = logging.getLogger("imapclient")
    previous = logger.level
    yield logger
    logger.setLevel(previous)


def _file_handlers() -> list[RotatingFileHandler]:
    return [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]


def test_configure_logging_writes_main_log(tmp_path, imapclient_logger):
    configure_logging(LoggingConfig(level="info", debug_file=False), tmp_path)

    handlers = _file_handlers()
    assert [h.baseFilename for h in handlers] == [str(tmp_path / "logs" / "mailchime.log")]
    assert logging.getLogger().level == logging.INFO
    assert imapclient_logger.level == logging.WARNING


def test_debug_file_enables_protocol_logging(tmp_path, imapclient_logger):
    configure_logging(LoggingConfig(level="debug", debug_file=True), tmp_path)

    names = sorted(Path(h.baseFilename).name for h in _file_handlers())
    assert names == ["debug.log", "mailchime.log"]
    assert imapclient_logger.level == logging.DEBUG


def test_console_only_logging_creates_no_files(tmp_path, imapclient_logger):
    configure_logging(LoggingConfig(level="warning", debug_file=False), tmp_path, log_to_file=False)

    assert _file_handlers() == []
    assert not (tmp_path / "logs").exists()


def test_level_from_string_rejects_unknown_levels():
    assert level_from_string(" Warn ") == logging.WARNING
    with pytest.raises(ConfigError):
        level_from_string("loud")


def test_console_formatter_prefixes_level_symbol():
    record = logging.LogRecord("mailchime", logging.WARNING, __file__, 1, "careful", None, None)

    plain = ConsoleFormatter(use_color=False).format(record)
    coloured = ConsoleFormatter(use_color=True).format(record)

    assert plain.startswith("! ")
    assert plain.endswith("careful")
    assert coloured.startswith("\x1b[33m!\x1b[0m ")
