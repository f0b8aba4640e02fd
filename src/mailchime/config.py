"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = Path("~/.config/mailchime/config.yaml")
DEFAULT_ROOT_DIR = Path("~/.local/lib/mailchime")
DEFAULT_LOG_LEVEL = "info"
LOG_LEVELS = frozenset({"debug", "info", "warning", "warn", "error", "critical"})
DEFAULT_PORT = 993
DEFAULT_MAILBOX = "INBOX"
DEFAULT_REFRESH_RATE = 10
DEFAULT_MAIL_EXPIRATION_SECS = 180
DEFAULT_ALLOWED_SENDERS = "allowed_people.json"
DEFAULT_TRIGGERING_SUBJECTS = "triggering_subjects.json"
DEFAULT_AUDIO_FILE = "~/Music/notification.wav"
DEFAULT_TARGET_FOLDER = "Food"
DEFAULT_PLAYER = "play"
PASSWORD_ENV = "MAILCHIME_PASSWORD"
CONFIG_ENV = "MAILCHIME_CONFIG"


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing."""


@dataclass(frozen=True)
class LoggingConfig:
    """Logging-related configuration."""

    level: str = DEFAULT_LOG_LEVEL
    debug_file: bool = False


@dataclass(frozen=True)
class Config:
    """Fully parsed configuration."""

    server: str
    username: str
    password: str = field(repr=False)
    port: int = DEFAULT_PORT
    mailbox: str = DEFAULT_MAILBOX
    refresh_rate: int = DEFAULT_REFRESH_RATE
    mail_expiration_secs: int = DEFAULT_MAIL_EXPIRATION_SECS
    allowed_senders: Path = Path(DEFAULT_ALLOWED_SENDERS)
    triggering_subjects: Path = Path(DEFAULT_TRIGGERING_SUBJECTS)
    audio_file: Path = Path(DEFAULT_AUDIO_FILE).expanduser()
    target_folder: str = DEFAULT_TARGET_FOLDER
    player: str = DEFAULT_PLAYER
    root_dir: Path = DEFAULT_ROOT_DIR.expanduser()
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Path | str | None = None) -> Config:
    """Load and validate configuration from YAML."""

    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config file is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping.")

    return _parse_config(raw, base_dir=config_path.parent)


def resolve_config_path(explicit: Path | str | None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def _parse_config(raw: dict[str, Any], *, base_dir: Path) -> Config:
    server = _required_string(raw, "server")
    username = _required_string(raw, "username")
    password = _parse_password(raw.get("password"))
    root_dir = _parse_path(
        raw.get("rootdir") or raw.get("root_dir"), "root_dir", str(DEFAULT_ROOT_DIR), base_dir
    )
    return Config(
        server=server,
        username=username,
        password=password,
        port=_parse_int(raw.get("port"), "port", DEFAULT_PORT, minimum=1),
        mailbox=_optional_string(raw.get("mailbox"), "mailbox", DEFAULT_MAILBOX),
        refresh_rate=_parse_int(
            raw.get("refresh_rate"), "refresh_rate", DEFAULT_REFRESH_RATE, minimum=1
        ),
        mail_expiration_secs=_parse_int(
            raw.get("mail_expiration_secs"),
            "mail_expiration_secs",
            DEFAULT_MAIL_EXPIRATION_SECS,
            minimum=0,
        ),
        allowed_senders=_parse_path(
            raw.get("allowed_senders"), "allowed_senders", DEFAULT_ALLOWED_SENDERS, base_dir
        ),
        triggering_subjects=_parse_path(
            raw.get("triggering_subjects"),
            "triggering_subjects",
            DEFAULT_TRIGGERING_SUBJECTS,
            base_dir,
        ),
        audio_file=_parse_path(raw.get("audio_file"), "audio_file", DEFAULT_AUDIO_FILE, base_dir),
        target_folder=_optional_string(
            raw.get("target_folder"), "target_folder", DEFAULT_TARGET_FOLDER
        ),
        player=_optional_string(raw.get("player"), "player", DEFAULT_PLAYER),
        root_dir=root_dir,
        logging=_parse_logging(raw.get("logging")),
    )


def _required_string(raw: dict[str, Any], name: str) -> str:
    value = raw.get(name)
    if value is None:
        raise ConfigError(f"'{name}' must be configured.")
    text = str(value).strip()
    if not text:
        raise ConfigError(f"'{name}' cannot be empty.")
    return text


def _optional_string(value: Any, name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string.")
    text = value.strip()
    if not text:
        raise ConfigError(f"{name} cannot be empty.")
    return text


def _parse_password(value: Any) -> str:
    if value is not None:
        return str(value)
    env_password = os.environ.get(PASSWORD_ENV)
    if env_password:
        return env_password
    raise ConfigError(f"'password' must be configured (or set ${PASSWORD_ENV}).")


def _parse_int(value: Any, name: str, default: int, *, minimum: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer.")
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}.")
    return value


def _parse_path(value: Any, name: str, default: str, base_dir: Path) -> Path:
    if value is None:
        value = default
    if not isinstance(value, (str, Path)):
        raise ConfigError(f"{name} must be a string path.")
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


def _parse_logging(value: Any) -> LoggingConfig:
    if value is None:
        return LoggingConfig()
    if not isinstance(value, dict):
        raise ConfigError("logging must be a mapping.")
    level = str(value.get("level", DEFAULT_LOG_LEVEL)).strip().lower()
    if level not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level: {level}")
    debug_file = bool(value.get("debug_file", False))
    return LoggingConfig(level=level, debug_file=debug_file)


__all__ = [
    "Config",
    "LoggingConfig",
    "ConfigError",
    "load_config",
    "resolve_config_path",
]
