"""Read the trusted-sender and trigger-subject lists from disk."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from .types import AllowLists

if TYPE_CHECKING:
    from .config import Config


class AllowListError(RuntimeError):
    """Raised when an allow-list file cannot be read or has the wrong shape."""


def load_list(path: Path) -> tuple[str, ...]:
    """Return the ordered entries stored in ``path``.

    The file holds a JSON array of strings. YAML sequences are accepted too
    since JSON parses as YAML.
    """

    path = Path(path).expanduser()
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except OSError as exc:
        raise AllowListError(f"Failed to read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise AllowListError(f"Failed to parse {path}: {exc}") from exc

    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise AllowListError(f"{path} must contain a list of strings.")
    entries: list[str] = []
    for idx, entry in enumerate(raw, start=1):
        if not isinstance(entry, str):
            raise AllowListError(f"{path}[{idx}] must be a string, got {type(entry).__name__}.")
        entries.append(entry)
    return tuple(entries)


def load_allow_lists(config: Config) -> AllowLists:
    """Load both lists fresh from disk; nothing is cached between calls."""

    return AllowLists(
        senders=load_list(config.allowed_senders),
        subjects=load_list(config.triggering_subjects),
    )


__all__ = ["AllowListError", "load_allow_lists", "load_list"]
