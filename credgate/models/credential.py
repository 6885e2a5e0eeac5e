from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# Credential ledger entry flag: set once the subject has accepted.
LSF_ACCEPTED = 0x00010000

MAX_CREDENTIAL_TYPE_BYTES = 64
MAX_URI_BYTES = 256


@dataclass(frozen=True, slots=True)
class Memo:
    """Memo attached to a CredentialCreate (data, mime type, format)."""

    data: str
    type: str | None = None
    format: str | None = None


@dataclass(frozen=True, slots=True)
class IssueOptions:
    """Optional CredentialCreate fields, in human-readable form.

    expiration is an ISO-8601 string; it is converted to ledger time when
    the transaction is built.
    """

    expiration: str | None = None
    uri: str | None = None
    memo: Memo | None = None


@dataclass(frozen=True, slots=True)
class Credential:
    """A Credential ledger entry, decoded from its wire form.

    Uniquely identified by (issuer, subject, credential_type).  Content is
    immutable once issued; only `accepted` changes (pending -> accepted).
    `ledger_id` is the entry's index, the value a Payment cites in
    CredentialIDs.
    """

    issuer: str
    subject: str
    credential_type: str
    accepted: bool
    expiration: datetime | None = None
    uri: str | None = None
    memo: Memo | None = None
    ledger_id: str | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.issuer, self.subject, self.credential_type)

    def is_expired_at(self, now: datetime) -> bool:
        return self.expiration is not None and self.expiration <= now

    def is_valid_at(self, now: datetime) -> bool:
        """Usable as authorization evidence: accepted and not yet expired."""
        return self.accepted and not self.is_expired_at(now)
