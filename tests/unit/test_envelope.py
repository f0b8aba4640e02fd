from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone

import pytest

from mailchime.envelope import (
    EnvelopeError,
    candidate_from_envelope,
    date,
    decode_header_value,
    parse_date,
    sender_name,
    subject,
)
from tests.fakes import NOW, make_envelope


def test_decode_header_value_plain_bytes():
    assert decode_header_value(b"Pizza delivery") == "Pizza delivery"


def test_decode_header_value_encoded_words():
    assert decode_header_value(b"=?UTF-8?Q?Zam=C3=B3wienie_gotowe?=") == "Zamówienie gotowe"
    assert decode_header_value("=?utf-8?b?xbx1cmVr?=") == "żurek"


def test_decode_header_value_mixes_raw_text_and_encoded_words():
    raw = "Dostawa żurku =?UTF-8?Q?gotowa?=".encode()

    assert decode_header_value(raw) == "Dostawa żurku gotowa"
    assert decode_header_value("Żurek =?UTF-8?B?xbx1cmVr?=") == "Żurek żurek"


def test_decode_header_value_invalid_utf8_is_lossy():
    assert decode_header_value(b"caf\xe9") == "caf�"


def test_decode_header_value_unknown_charset_falls_back():
    raw = "=?x-no-such-charset?q?abc?="
    assert decode_header_value(raw) == raw


def test_subject_and_sender_are_decoded():
    envelope = make_envelope(sender=b"=?UTF-8?Q?Ma=C5=82gorzata?=", subject=b"Lunch")

    assert sender_name(envelope) == "Małgorzata"
    assert subject(envelope) == "Lunch"


def test_missing_fields_raise_envelope_error():
    with pytest.raises(EnvelopeError):
        subject(make_envelope(subject=None))
    with pytest.raises(EnvelopeError):
        sender_name(make_envelope(no_from=True))
    with pytest.raises(EnvelopeError):
        sender_name(make_envelope(sender=None))
    with pytest.raises(EnvelopeError):
        date(make_envelope(date=None))


def test_date_accepts_aware_datetime():
    assert date(make_envelope(date=NOW)) == NOW


def test_date_parses_rfc2822_bytes():
    parsed = date(make_envelope(date=b"Wed, 01 May 2024 14:00:00 +0200"))

    assert parsed == NOW
    assert parsed.utcoffset() == timedelta(hours=2)


@pytest.fixture
def tokyo_time(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is unavailable")
    monkeypatch.setenv("TZ", "Asia/Tokyo")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_dates_without_a_zone_are_utc_regardless_of_host_zone(tokyo_time):
    parsed = parse_date(b"Wed, 01 May 2024 12:00:00 -0000")

    assert parsed == NOW
    assert parsed.utcoffset() == timedelta(0)
    assert parse_date(datetime(2024, 5, 1, 12, 0, 0)) == NOW


def test_unparsable_date_raises():
    with pytest.raises(EnvelopeError):
        parse_date(b"not a date")


def test_candidate_from_envelope():
    envelope = make_envelope(sender=b"Alice", subject=b"pizza delivery", date=NOW)

    candidate = candidate_from_envelope(3, envelope)

    assert candidate.uid == 3
    assert candidate.sender == "Alice"
    assert candidate.subject == "pizza delivery"
    assert candidate.date == NOW.astimezone(timezone.utc)
