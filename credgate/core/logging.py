"""Logging configuration for credgate.

WHAT GETS LOGGED
------------------
Every ledger transaction this service submits is logged once, at INFO on
success and WARNING on a non-success result code, with the transaction
type, acting account, hash and result code attached as structured fields
(see services/submission.py).  Ledger connectivity failures are ERROR.
Request lines carry request_id / method / path / status_code /
duration_ms (see middleware/request_context.py).

WHAT NEVER GETS LOGGED
------------------------
Account seeds.  LedgerAccount hides its seed from repr(), Settings hides
the account map, and no call site passes a seed or a signed blob to a
logger.  tests/api/test_log_secrets.py holds the line.

TWO FORMATTERS
----------------
  _ContainerFormatter  human-readable, single line, for local dev.
  _JsonFormatter       one JSON object per line, for log aggregation.
                       Request fields are top-level keys; ledger
                       fields sit under "ledger", so
                       `ledger.result_code == "tecNO_PERMISSION"` is a
                       filter, not a regex.

Set LOG_JSON=true in production to switch to JSON output.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    Timestamps are UTC with millisecond precision.  A submitted transaction
    gets its hash appended as `tx=<hash>`, and WARNING and above append
    [filename:lineno]; exc_info renders a trace.
    """

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-8s %(name)s  %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, UTC)
        return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        tx_hash = getattr(record, "tx_hash", None)
        if tx_hash:
            line += f"  tx={tx_hash}"
        if record.levelno >= logging.WARNING:
            line += f"  [{record.filename}:{record.lineno}]"
        return line


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter.

    Request fields from the middleware are top-level keys.  The fields a
    ledger submission attaches are grouped under "ledger", so a filter
    reads `ledger.result_code == "tecNO_PERMISSION"`.
    """

    _REQUEST_FIELDS = ("request_id", "method", "path", "status_code", "duration_ms")
    _LEDGER_FIELDS = ("account", "tx_type", "tx_hash", "result_code")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds")

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_present(record, self._REQUEST_FIELDS))

        ledger = _present(record, self._LEDGER_FIELDS)
        if ledger:
            entry["ledger"] = ledger

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _present(record: logging.LogRecord, fields: tuple[str, ...]) -> dict[str, object]:
    found: dict[str, object] = {}
    for key in fields:
        value = getattr(record, key, None)
        if value is not None:
            found[key] = value
    return found


# Third-party loggers held at WARNING or above.
_NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "httpcore",
    "httpx",
    "websockets",
    "xrpl",
)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger to write to stdout.

    Args:
        level_name: debug/info/warning/error
        json_format: emit JSON lines instead of human-readable lines
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
