"""Pure decision functions applied to each unseen message."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from .types import AllowLists, CandidateMessage, ClassificationResult

MAX_SUBJECT_DISTANCE = 2


def is_allowed_sender(name: str, allow_list: Sequence[str]) -> bool:
    """Exact, case-sensitive membership test."""

    return name in allow_list


def is_triggering(subject: str, triggers: Sequence[str]) -> bool:
    """Return True when the lower-cased subject is within two edits of any trigger.

    Trigger entries are compared as written, so they should be stored lower-case.
    """

    lowered = subject.lower()
    return any(
        levenshtein(lowered, trigger) <= MAX_SUBJECT_DISTANCE for trigger in triggers
    )


def levenshtein(left: str, right: str) -> int:
    """Minimum number of single-character inserts, deletes and substitutions."""

    if left == right:
        return 0
    if len(left) < len(right):
        left, right = right, left
    if not right:
        return len(left)

    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (left_char != right_char),
                )
            )
        previous = current
    return previous[-1]


def message_age_seconds(sent: datetime, now: datetime | None = None) -> int:
    """Whole seconds elapsed since ``sent``; future dates count as zero."""

    current = now or datetime.now(timezone.utc)
    return max(0, int((current - sent).total_seconds()))


def is_stale(sent: datetime, expiration_secs: int, now: datetime | None = None) -> bool:
    """True when the message is strictly older than ``expiration_secs``."""

    return message_age_seconds(sent, now) > expiration_secs


def classify(
    candidate: CandidateMessage,
    allow_lists: AllowLists,
    expiration_secs: int,
    now: datetime | None = None,
) -> ClassificationResult:
    return ClassificationResult(
        allowed=is_allowed_sender(candidate.sender, allow_lists.senders),
        triggering=is_triggering(candidate.subject, allow_lists.subjects),
        stale=is_stale(candidate.date, expiration_secs, now),
    )


__all__ = [
    "MAX_SUBJECT_DISTANCE",
    "classify",
    "is_allowed_sender",
    "is_stale",
    "is_triggering",
    "levenshtein",
    "message_age_seconds",
]
