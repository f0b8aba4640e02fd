"""Connection lifecycle: connect, hand off to the watcher, reconnect on failure."""

from __future__ import annotations

import functools
import logging
import signal
import threading
from collections.abc import Callable
from types import FrameType
from typing import Any

from .allowlists import load_allow_lists
from .config import Config
from .mover import MailMover
from .notifier import SoundNotifier
from .session import MailSession, SessionError
from .types import WatcherMetrics
from .watcher import MailboxWatcher

SignalHandler = Callable[[int, FrameType | None], Any] | int | signal.Handlers | None
SessionFactory = Callable[[], MailSession]

LOGGER = logging.getLogger(__name__)
SIG_USR1 = getattr(signal, "SIGUSR1", None)


class ConnectionManager:
    """Keep a watcher running against a freshly authenticated session.

    Every failure (connect, login, select, or anything the watcher raises)
    discards the session, waits ``retry_delay`` seconds and starts over. There
    is no backoff and no retry limit, so bad credentials are retried forever.
    """

    def __init__(
        self,
        config: Config,
        watcher: MailboxWatcher,
        *,
        stop_event: threading.Event,
        session_factory: SessionFactory | None = None,
        retry_delay: float | None = None,
    ) -> None:
        self._config = config
        self._watcher = watcher
        self._stop_event = stop_event
        self._session_factory = session_factory or functools.partial(MailSession.connect, config)
        self._retry_delay = config.refresh_rate if retry_delay is None else retry_delay
        self._status_event = threading.Event()
        self._installed_signals: dict[int, SignalHandler] = {}

    @property
    def metrics(self) -> WatcherMetrics:
        return self._watcher.metrics

    def run(self) -> None:
        """Run until stopped by a signal or ``stop()``."""

        self._install_signal_handlers()
        try:
            while not self._stop_event.is_set():
                self.run_once()
        finally:
            self._restore_signal_handlers()
        LOGGER.info("mailchime stopped.")

    def stop(self) -> None:
        self._stop_event.set()

    def run_once(self) -> None:
        """One connection attempt, followed by the retry delay if it failed."""

        session: MailSession | None = None
        LOGGER.info("Trying to log in to mailbox %s", self._config.mailbox)
        try:
            session = self._session_factory()
            session.select(self._config.mailbox)
            self._watcher.run(session)
        except SessionError as exc:
            self.metrics.last_error = str(exc)
            LOGGER.warning("Connection failed: %s", exc)
        except Exception as exc:
            self.metrics.last_error = str(exc)
            LOGGER.exception("Unexpected error in mailbox session")
        finally:
            if session is not None:
                session.logout()

        if self._stop_event.is_set():
            return
        self.metrics.reconnects += 1
        LOGGER.info("Waiting %ss to reconnect", self._retry_delay)
        self._stop_event.wait(self._retry_delay)

    def request_status(self) -> None:
        self._status_event.set()

    def dump_status_if_requested(self) -> None:
        if not self._status_event.is_set():
            return
        self._status_event.clear()
        LOGGER.info(format_status(self._config, self.metrics))

    def _install_signal_handlers(self) -> None:
        interested = tuple(
            sig for sig in (signal.SIGTERM, signal.SIGINT, SIG_USR1) if sig is not None
        )
        for sig in interested:
            try:
                previous = signal.getsignal(sig)
                signal.signal(sig, self._handle_signal)
            except ValueError:  # pragma: no cover - not on the main thread
                continue
            self._installed_signals[sig] = previous

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._installed_signals.items():
            try:
                signal.signal(sig, handler)
            except (TypeError, ValueError):  # pragma: no cover - unsupported handler
                continue
        self._installed_signals.clear()

    def _handle_signal(self, signum: int, _frame: FrameType | None) -> None:
        if signum in (signal.SIGTERM, signal.SIGINT):
            LOGGER.info("Signal %s received; stopping after the current wait.", signum)
            self._stop_event.set()
        elif SIG_USR1 is not None and signum == SIG_USR1:
            self._status_event.set()


def format_status(config: Config, metrics: WatcherMetrics) -> str:
    snapshot = metrics.snapshot()
    counters = " ".join(f"{key}={value}" for key, value in snapshot.items() if key != "last_error")
    line = f"mailchime {config.username}@{config.server}/{config.mailbox}: {counters}"
    if snapshot["last_error"]:
        line += f" last_error={snapshot['last_error']}"
    return line


def build_connection_manager(
    config: Config,
    *,
    dry_run: bool = False,
    session_factory: SessionFactory | None = None,
) -> ConnectionManager:
    """Wire the watcher, mover and notifier from one immutable config."""

    stop_event = threading.Event()
    manager: ConnectionManager | None = None

    def _on_cycle() -> None:
        if manager is not None:
            manager.dump_status_if_requested()

    watcher = MailboxWatcher(
        load_allow_lists=functools.partial(load_allow_lists, config),
        mover=MailMover(config.target_folder, dry_run=dry_run),
        notifier=SoundNotifier(config.audio_file, player=config.player, dry_run=dry_run),
        refresh_rate=config.refresh_rate,
        mail_expiration_secs=config.mail_expiration_secs,
        stop_event=stop_event,
        on_cycle=_on_cycle,
    )
    manager = ConnectionManager(
        config, watcher, stop_event=stop_event, session_factory=session_factory
    )
    return manager


__all__ = ["ConnectionManager", "build_connection_manager", "format_status"]
