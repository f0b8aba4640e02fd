"""Fire-and-forget audio notification."""

from __future__ import annotations

import logging
import shlex
import subprocess
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

LOGGER = logging.getLogger(__name__)

ProcessFactory = Callable[..., Any]


class SoundNotifier:
    """Play an audio file with an external player without blocking the caller.

    Playback runs on a daemon thread that waits for the player process. Only
    one playback runs at a time; requests made while one is in progress are
    dropped.
    """

    def __init__(
        self,
        audio_file: Path,
        *,
        player: str = "play",
        dry_run: bool = False,
        process_factory: ProcessFactory | None = None,
    ) -> None:
        self._audio_file = Path(audio_file).expanduser()
        self._command = [*shlex.split(player), str(self._audio_file)]
        self._dry_run = dry_run
        self._process_factory = process_factory or subprocess.Popen
        self._busy = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def notify(self) -> bool:
        """Start playback in the background; return False if nothing was started."""

        if self._dry_run:
            LOGGER.info("Dry-run: would play %s", self._audio_file)
            return False
        if not self._busy.acquire(blocking=False):
            LOGGER.info("Notification already playing; skipping")
            return False
        thread = threading.Thread(target=self._play, name="mailchime-notify", daemon=True)
        self._thread = thread
        try:
            thread.start()
        except RuntimeError:
            self._busy.release()
            LOGGER.exception("Failed to start notification thread")
            return False
        return True

    def wait(self, timeout: float | None = None) -> None:
        """Join the current playback thread, if any."""

        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _play(self) -> None:
        try:
            try:
                process = self._process_factory(
                    self._command,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
            except OSError as exc:
                LOGGER.warning("Failed to run %s: %s", self._command[0], exc)
                return
            returncode = process.wait()
            if returncode:
                LOGGER.warning("%s exited with status %s", self._command[0], returncode)
        finally:
            self._busy.release()


__all__ = ["SoundNotifier"]
