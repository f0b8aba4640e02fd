from __future__ import annotations

import json
from pathlib import Path

import pytest

from mailchime.allowlists import AllowListError, load_allow_lists, load_list
from mailchime.config import Config


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_load_list_reads_json_array_in_order(tmp_path):
    path = _write(tmp_path / "people.json", json.dumps(["Zoe", "Alice", "Żaneta"]))

    assert load_list(path) == ("Zoe", "Alice", "Żaneta")


def test_load_list_accepts_yaml_sequence(tmp_path):
    path = _write(tmp_path / "subjects.yaml", "- pizza delivery\n- lunch\n")

    assert load_list(path) == ("pizza delivery", "lunch")


def test_empty_file_is_an_empty_list(tmp_path):
    path = _write(tmp_path / "empty.json", "")

    assert load_list(path) == ()


@pytest.mark.parametrize(
    "content",
    [
        '{"name": "Alice"}',
        '["Alice", 3]',
        "[unterminated",
    ],
)
def test_malformed_lists_raise(tmp_path, content):
    path = _write(tmp_path / "bad.json", content)

    with pytest.raises(AllowListError):
        load_list(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(AllowListError, match="Failed to read"):
        load_list(tmp_path / "missing.json")


def test_load_allow_lists_rereads_files(tmp_path):
    senders = _write(tmp_path / "people.json", '["Alice"]')
    subjects = _write(tmp_path / "subjects.json", '["pizza delivery"]')
    config = Config(
        server="imap.example.com",
        username="me",
        password="secret",
        allowed_senders=senders,
        triggering_subjects=subjects,
    )

    first = load_allow_lists(config)
    _write(senders, '["Alice", "Bob"]')
    second = load_allow_lists(config)

    assert first.senders == ("Alice",)
    assert second.senders == ("Alice", "Bob")
    assert second.subjects == ("pizza delivery",)
