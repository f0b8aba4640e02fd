"""Relocate matched messages into the target folder."""

from __future__ import annotations

import logging

from .session import MailSession

LOGGER = logging.getLogger(__name__)


class MailMover:
    """Move messages out of the watched mailbox.

    A move is copy, flag ``\\Deleted`` and expunge. Any step failing raises
    ``SessionError`` and leaves the identifier set untrustworthy, so callers
    must drop the session.
    """

    def __init__(self, target_folder: str, *, dry_run: bool = False) -> None:
        folder = target_folder.strip()
        if not folder:
            raise ValueError("Target folder cannot be empty.")
        self._target_folder = folder
        self._dry_run = dry_run

    @property
    def target_folder(self) -> str:
        return self._target_folder

    def move(self, session: MailSession, uid: int) -> bool:
        """Move ``uid`` to the target folder; return True if the mailbox changed."""

        if self._dry_run:
            LOGGER.info("Dry-run: would move message %s to %s", uid, self._target_folder)
            return False

        session.copy(uid, self._target_folder)
        session.flag_deleted(uid)
        session.expunge()
        LOGGER.info("Moved message %s to %s", uid, self._target_folder)
        return True


__all__ = ["MailMover"]
