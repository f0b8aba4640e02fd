"""Core immutable data structures used throughout mailchime."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class AllowLists:
    """Trusted sender display names and trigger subject phrases."""

    senders: tuple[str, ...]
    subjects: tuple[str, ...]


@dataclass(frozen=True)
class CandidateMessage:
    """Envelope metadata for one unseen message."""

    uid: int
    sender: str
    subject: str
    date: datetime


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying a candidate message."""

    allowed: bool
    triggering: bool
    stale: bool

    @property
    def actionable(self) -> bool:
        return self.allowed and self.triggering


@dataclass(frozen=True)
class UidBatch:
    """Unseen identifiers tagged with the session generation that produced them."""

    generation: int
    uids: tuple[int, ...] = ()

    def __iter__(self):
        return iter(self.uids)

    def __len__(self) -> int:
        return len(self.uids)


@dataclass
class WatcherMetrics:
    """Lightweight counters reported on status requests."""

    scans: int = 0
    candidates: int = 0
    moved: int = 0
    notified: int = 0
    skipped: int = 0
    reconnects: int = 0
    last_error: str | None = field(default=None)

    def snapshot(self) -> dict[str, int | str | None]:
        return {
            "scans": self.scans,
            "candidates": self.candidates,
            "moved": self.moved,
            "notified": self.notified,
            "skipped": self.skipped,
            "reconnects": self.reconnects,
            "last_error": self.last_error,
        }


__all__ = [
    "AllowLists",
    "CandidateMessage",
    "ClassificationResult",
    "UidBatch",
    "WatcherMetrics",
]
