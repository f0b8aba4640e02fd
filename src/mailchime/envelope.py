"""Decode IMAP ENVELOPE fields into plain text and timestamps."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from email import policy
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.utils import parsedate_to_datetime
from typing import Any

from .types import CandidateMessage

LOGGER = logging.getLogger(__name__)


class EnvelopeError(ValueError):
    """Raised when a required envelope field is missing or cannot be parsed."""


def decode_header_value(raw: bytes | str) -> str:
    """Return ``raw`` as text with RFC 2047 encoded-words decoded.

    Bytes are decoded as UTF-8 with replacement characters. Raw text and
    encoded-words may be mixed. If an all-ASCII value cannot be decoded
    (an unknown charset, say), it is returned unchanged.
    """

    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else str(raw)
    if not text.isascii():
        # decode_header mangles raw non-ASCII runs next to encoded-words.
        return str(policy.default.header_factory("subject", text))
    try:
        return str(make_header(decode_header(text)))
    except (HeaderParseError, LookupError, UnicodeDecodeError) as exc:
        LOGGER.debug("Keeping undecoded header value %r: %s", text, exc)
        return text


def subject(envelope: Any) -> str:
    raw = getattr(envelope, "subject", None)
    if raw is None:
        raise EnvelopeError("Envelope has no subject.")
    return decode_header_value(raw)


def sender_name(envelope: Any) -> str:
    """Return the display name of the first ``from`` address."""

    addresses = getattr(envelope, "from_", None)
    if not addresses:
        raise EnvelopeError("Envelope has no from address.")
    name = getattr(addresses[0], "name", None)
    if name is None:
        raise EnvelopeError("First from address has no display name.")
    return decode_header_value(name)


def date(envelope: Any) -> datetime:
    """Return the envelope date as a timezone-aware datetime.

    imapclient usually hands over a parsed ``datetime``; raw header values are
    decoded and parsed as RFC 2822. Values without a zone, including the
    RFC 2822 "-0000" zone, are taken as UTC.
    """

    raw = getattr(envelope, "date", None)
    if raw is None:
        raise EnvelopeError("Envelope has no date.")
    return parse_date(raw)


def parse_date(raw: bytes | str | datetime) -> datetime:
    if isinstance(raw, datetime):
        parsed = raw
    else:
        text = decode_header_value(raw)
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError) as exc:
            raise EnvelopeError(f"Unparsable envelope date: {text!r}") from exc
        if parsed is None:  # pragma: no cover - older Pythons returned None
            raise EnvelopeError(f"Unparsable envelope date: {text!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def candidate_from_envelope(uid: int, envelope: Any) -> CandidateMessage:
    """Extract sender, subject and date for one fetched message."""

    return CandidateMessage(
        uid=uid,
        sender=sender_name(envelope),
        subject=subject(envelope),
        date=date(envelope),
    )


__all__ = [
    "EnvelopeError",
    "candidate_from_envelope",
    "date",
    "decode_header_value",
    "parse_date",
    "sender_name",
    "subject",
]
