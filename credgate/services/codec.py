"""Conversions between readable values and ledger wire formats.

The ledger stores every free-form field (CredentialType, URI, memo parts)
as a hex-encoded byte string, and every timestamp as seconds since its own
epoch, 2000-01-01T00:00:00Z, rather than the Unix epoch.  Nothing here
holds state; every function is a pure conversion that either returns a
value or raises an EncodingError subclass.

HEX
---
  encode_text("Exam")   -> "4578616D"   (UTF-8 bytes, uppercase)
  decode_text("4578616d") -> "Exam"     (case-insensitive, optional 0x)

Decoding is strict: odd length, stray characters (including whitespace,
which bytes.fromhex would silently skip) and invalid UTF-8 all raise
DecodeError.

LEDGER TIME
-----------
  ledger_seconds = unix_seconds - 946684800

The value is an unsigned 32-bit integer on the ledger, so instants before
2000-01-01 or after 2136-02-07 cannot be represented and raise InvalidDate.
Fractions of a second are floored.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

from credgate.core.errors import DecodeError, InvalidDate
from credgate.models.credential import Memo

LEDGER_EPOCH_OFFSET = 946684800
_LEDGER_EPOCH = datetime(2000, 1, 1, tzinfo=UTC)
_MAX_LEDGER_TIME = 2**32 - 1

_HEX_RE = re.compile(r"[0-9A-Fa-f]*")


def encode_text(s: str) -> str:
    return s.encode("utf-8").hex().upper()


def normalize_hex(value: str) -> str:
    """Validate a hex string and return it uppercased, without the 0x prefix."""
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    if len(value) % 2:
        raise DecodeError(f"odd-length hex string ({len(value)} chars)")
    if not _HEX_RE.fullmatch(value):
        raise DecodeError(f"not a hex string: {value!r}")
    return value.upper()


def decode_text(value: str) -> str:
    raw = bytes.fromhex(normalize_hex(value))
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"hex does not decode to UTF-8: {e}") from None


# ---------------------------------------------------------------------------
# Ledger time
# ---------------------------------------------------------------------------


def datetime_to_ledger_time(dt: datetime) -> int:
    # Naive datetimes are taken as UTC, like date-only ISO strings.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    seconds = int(dt.timestamp() // 1) - LEDGER_EPOCH_OFFSET
    if not 0 <= seconds <= _MAX_LEDGER_TIME:
        raise InvalidDate(f"{dt.isoformat()} is outside the ledger time range")
    return seconds


def ledger_time_to_datetime(seconds: int) -> datetime:
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        raise InvalidDate(f"ledger time must be an integer (got {seconds!r})")
    if not 0 <= seconds <= _MAX_LEDGER_TIME:
        raise InvalidDate(f"ledger time {seconds} is out of range")
    return _LEDGER_EPOCH + timedelta(seconds=seconds)


def to_ledger_time(iso: str) -> int:
    """ISO-8601 date or datetime string -> ledger-epoch seconds."""
    try:
        dt = datetime.fromisoformat(iso.strip())
    except (AttributeError, ValueError):
        raise InvalidDate(f"not an ISO-8601 date: {iso!r}") from None
    return datetime_to_ledger_time(dt)


def from_ledger_time(seconds: int) -> str:
    """Ledger-epoch seconds -> ISO-8601 UTC string, e.g. 2026-01-01T00:00:00Z."""
    return format_iso(ledger_time_to_datetime(seconds))


def format_iso(dt: datetime) -> str:
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


# ---------------------------------------------------------------------------
# Memos
# ---------------------------------------------------------------------------


def encode_memo(memo: Memo) -> dict:
    fields = {"MemoData": encode_text(memo.data)}
    if memo.type:
        fields["MemoType"] = encode_text(memo.type)
    if memo.format:
        fields["MemoFormat"] = encode_text(memo.format)
    return {"Memo": fields}


def decode_memo(raw: dict) -> Memo:
    fields = raw.get("Memo")
    if not isinstance(fields, dict):
        raise DecodeError("memo entry has no Memo object")
    memo_type = fields.get("MemoType")
    memo_format = fields.get("MemoFormat")
    return Memo(
        data=decode_text(fields.get("MemoData", "")),
        type=decode_text(memo_type) if memo_type else None,
        format=decode_text(memo_format) if memo_format else None,
    )
