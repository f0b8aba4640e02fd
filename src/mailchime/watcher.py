"""Scan/idle cycle over one selected mailbox."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime

from .allowlists import AllowListError
from .classifier import classify
from .envelope import EnvelopeError, candidate_from_envelope
from .mover import MailMover
from .notifier import SoundNotifier
from .session import MailSession, StaleIdentifierError
from .types import AllowLists, CandidateMessage, UidBatch, WatcherMetrics

LOGGER = logging.getLogger(__name__)

AllowListLoader = Callable[[], AllowLists]
Clock = Callable[[], datetime]


class MailboxWatcher:
    """Repeatedly scan unseen mail, act on matches and idle between scans.

    ``run`` only returns when ``stop_event`` is set; protocol failures
    propagate as ``SessionError`` so the caller can reconnect.
    """

    def __init__(
        self,
        *,
        load_allow_lists: AllowListLoader,
        mover: MailMover,
        notifier: SoundNotifier,
        refresh_rate: float,
        mail_expiration_secs: int,
        stop_event: threading.Event | None = None,
        metrics: WatcherMetrics | None = None,
        clock: Clock | None = None,
        on_cycle: Callable[[], None] | None = None,
    ) -> None:
        self._load_allow_lists = load_allow_lists
        self._mover = mover
        self._notifier = notifier
        self._refresh_rate = refresh_rate
        self._mail_expiration_secs = mail_expiration_secs
        self._stop_event = stop_event or threading.Event()
        self.metrics = metrics or WatcherMetrics()
        self._clock = clock
        self._on_cycle = on_cycle

    def run(self, session: MailSession) -> None:
        while not self._stop_event.is_set():
            if self._on_cycle:
                self._on_cycle()
            if self.scan(session):
                continue
            if self._stop_event.is_set():
                break
            LOGGER.debug("Waiting up to %ss for mailbox activity", self._refresh_rate)
            responses = session.idle_wait(self._refresh_rate)
            LOGGER.debug("Idle finished with %s server response(s)", len(responses))

    def scan(self, session: MailSession) -> bool:
        """Process one batch of unseen mail.

        Returns True when a message was moved, in which case the remaining
        identifiers are stale and the caller must rescan immediately.
        """

        self.metrics.scans += 1
        batch = session.search_unseen()
        for uid in batch:
            if self._stop_event.is_set():
                return False
            try:
                self._process(session, batch, uid)
            except StaleIdentifierError as exc:
                LOGGER.debug("Rescanning: %s", exc)
                return True
            if session.generation != batch.generation:
                # Expunge renumbered the mailbox; remaining identifiers are stale.
                return True
        return False

    def _process(self, session: MailSession, batch: UidBatch, uid: int) -> None:
        LOGGER.debug("Parsing message %s", uid)
        envelope = session.fetch_envelope(batch, uid)
        if envelope is None:
            LOGGER.warning("No envelope returned for message %s; skipping", uid)
            self.metrics.skipped += 1
            return

        try:
            candidate = candidate_from_envelope(uid, envelope)
        except EnvelopeError as exc:
            LOGGER.warning("Skipping message %s with malformed envelope: %s", uid, exc)
            self.metrics.skipped += 1
            return

        try:
            allow_lists = self._load_allow_lists()
        except AllowListError as exc:
            LOGGER.error("Cannot classify message %s: %s", uid, exc)
            self.metrics.skipped += 1
            return

        self.metrics.candidates += 1
        now = self._clock() if self._clock else None
        result = classify(candidate, allow_lists, self._mail_expiration_secs, now)
        if result.actionable:
            self._act(session, candidate, stale=result.stale)

    def _act(self, session: MailSession, candidate: CandidateMessage, *, stale: bool) -> None:
        if self._mover.move(session, candidate.uid):
            self.metrics.moved += 1
        if stale:
            LOGGER.info(
                "Old mail from %s: %r (sent %s); not notifying",
                candidate.sender,
                candidate.subject,
                candidate.date.isoformat(),
            )
        else:
            LOGGER.info("New mail from %s: %r", candidate.sender, candidate.subject)
            if self._notifier.notify():
                self.metrics.notified += 1


__all__ = ["MailboxWatcher"]
