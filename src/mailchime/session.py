"""Authenticated IMAP session bound to one selected mailbox."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from .types import UidBatch

if TYPE_CHECKING:
    from .config import Config

LOGGER = logging.getLogger(__name__)

DELETED = b"\\Deleted"
# Socket timeout for regular commands; idle waits are bounded separately.
COMMAND_TIMEOUT = 60.0

ClientFactory = Callable[..., Any]


class SessionError(RuntimeError):
    """Raised for any transport or protocol failure; the session is then unusable."""


class StaleIdentifierError(RuntimeError):
    """Raised when identifiers from an older session generation are used; rescan instead."""


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SessionError:
        raise
    except (IMAPClientError, OSError) as exc:
        raise SessionError(f"IMAP {operation} failed: {exc}") from exc


class MailSession:
    """Wrap an ``IMAPClient`` and track identifier validity.

    ``generation`` increases whenever a mailbox is selected and whenever the
    mailbox is expunged. Identifier batches remember the generation they were
    produced in and are refused once it has moved on.
    """

    def __init__(self, client: Any) -> None:
        self._client = client
        self._generation = 0
        self._mailbox: str | None = None
        self._closed = False

    @classmethod
    def connect(
        cls,
        config: Config,
        *,
        client_factory: ClientFactory = IMAPClient,
    ) -> MailSession:
        """Open a TLS connection to the configured server and log in."""

        LOGGER.info("Connecting to %s:%s as %s", config.server, config.port, config.username)
        with _translate_errors("connect"):
            client = client_factory(
                config.server,
                port=config.port,
                ssl=True,
                timeout=COMMAND_TIMEOUT,
            )
        # Keep the sender's timezone on ENVELOPE dates.
        client.normalise_times = False
        session = cls(client)
        try:
            with _translate_errors("login"):
                client.login(config.username, config.password)
        except SessionError:
            session.logout()
            raise
        return session

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def mailbox(self) -> str | None:
        return self._mailbox

    def select(self, mailbox: str) -> None:
        with _translate_errors(f"select {mailbox!r}"):
            info = self._client.select_folder(mailbox)
        self._mailbox = mailbox
        self._generation += 1
        LOGGER.info(
            "Selected mailbox %s (%s messages)",
            mailbox,
            info.get(b"EXISTS", "?") if isinstance(info, dict) else "?",
        )

    def search_unseen(self) -> UidBatch:
        with _translate_errors("search"):
            uids = self._client.search(["UNSEEN"])
        batch = UidBatch(generation=self._generation, uids=tuple(uids))
        LOGGER.debug("Unseen messages: %s", list(batch.uids))
        return batch

    def fetch_envelope(self, batch: UidBatch, uid: int) -> Any | None:
        """Return the ENVELOPE for ``uid`` or None when the server sent none."""

        self.ensure_current(batch)
        with _translate_errors(f"fetch {uid}"):
            response = self._client.fetch([uid], ["ENVELOPE"])
        data = response.get(uid)
        if not data:
            return None
        return data.get(b"ENVELOPE")

    def copy(self, uid: int, folder: str) -> None:
        with _translate_errors(f"copy {uid} to {folder!r}"):
            self._client.copy([uid], folder)

    def flag_deleted(self, uid: int) -> None:
        with _translate_errors(f"store {uid}"):
            self._client.add_flags([uid], [DELETED])

    def expunge(self) -> None:
        try:
            with _translate_errors("expunge"):
                self._client.expunge()
        finally:
            self._generation += 1

    def idle_wait(self, timeout: float) -> list[Any]:
        """Block until the server pushes an update or ``timeout`` seconds pass."""

        with _translate_errors("idle"):
            self._client.idle()
            try:
                responses = self._client.idle_check(timeout=timeout)
            finally:
                self._client.idle_done()
        return list(responses or [])

    def ensure_current(self, batch: UidBatch) -> None:
        if batch.generation != self._generation:
            raise StaleIdentifierError(
                f"Identifier batch from generation {batch.generation} used in "
                f"generation {self._generation}."
            )

    def logout(self) -> None:
        """Best-effort logout; the session must not be used afterwards."""

        if self._closed:
            return
        self._closed = True
        try:
            self._client.logout()
        except (IMAPClientError, OSError) as exc:
            LOGGER.debug("Ignoring logout failure: %s", exc)
            try:
                self._client.shutdown()
            except (IMAPClientError, OSError) as shutdown_exc:
                LOGGER.debug("Ignoring shutdown failure: %s", shutdown_exc)


__all__ = ["MailSession", "SessionError", "StaleIdentifierError"]
