from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from tests.fakes import FakeIMAPClient, FakeMessage


class FakeMailServer:
    """Shared mailbox state handed to a new client on every connection attempt."""

    def __init__(self, messages: list[FakeMessage] | None = None) -> None:
        self.inbox: list[FakeMessage] = list(messages or [])
        self.folders: dict[str, list[FakeMessage]] = {}
        self.clients: list[FakeIMAPClient] = []
        self.failures: list[dict[str, Exception]] = []
        self.on_idle = None

    def fail_next(self, **fail_on: Exception) -> None:
        """Queue failures for the next connection; later connections stay healthy."""

        self.failures.append(fail_on)

    def connect(self, host: str, **kwargs: Any) -> FakeIMAPClient:
        fail_on = self.failures.pop(0) if self.failures else {}
        client = FakeIMAPClient(
            host,
            messages=self.inbox,
            folders=self.folders,
            fail_on=fail_on,
            **kwargs,
        )
        client.on_idle = self.on_idle
        self.clients.append(client)
        return client


def write_config(tmp_path: Path, *, senders: list[str], subjects: list[str]) -> Path:
    """Write allow-lists and a config file pointing at them."""

    (tmp_path / "allowed_people.json").write_text(json.dumps(senders), encoding="utf-8")
    (tmp_path / "triggering_subjects.json").write_text(json.dumps(subjects), encoding="utf-8")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "\n".join(
            [
                "server: imap.example.com",
                "username: me@example.com",
                "password: secret",
                "refresh_rate: 1",
                "mail_expiration_secs: 180",
                "audio_file: chime.wav",
                "target_folder: Jedzenie",
                f"root_dir: {tmp_path / 'state'}",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return config_path


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Automatically mark tests in this package as integration."""

    package_root = Path(__file__).resolve().parent
    integration_mark = pytest.mark.integration
    for item in items:
        try:
            path = Path(item.path).resolve()
        except OSError:
            continue
        if package_root in path.parents:
            item.add_marker(integration_mark)
