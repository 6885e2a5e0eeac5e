"""Credential lifecycle: issue, accept, look up, revoke.

A credential moves through three states on the ledger:

    (absent) --issue--> pending --accept--> accepted
        ^                  |                    |
        +-----revoke-------+--------revoke------+

Issue is signed by the issuer, accept by the subject, and revoke by
either one.  Only an accepted, unexpired credential counts as evidence
in an authorization decision (services/authorization_service.py).

DECODING IS STRICT, LISTING IS TOLERANT
-----------------------------------------
Raw ledger entries are decoded into Credential values at this boundary.
A single entry that fails to decode (bad hex, out-of-range expiration,
missing field) is logged, counted and skipped: one bad entry must not
hide every other credential an account holds.

REVOKE RESOLUTION
-------------------
revoke() without a subject or issuer looks up the revoker's issued
credentials of that type and needs exactly one.  Zero or several is an
AmbiguousTarget error; it never picks one for you.  This is two
round-trips, not one atomic step: if someone else deletes the credential
in between, the ledger rejects the delete and RevocationFailed carries
its code.
"""

from __future__ import annotations

import logging

from credgate.core.errors import (
    AcceptanceFailed,
    AmbiguousTarget,
    DecodeError,
    EncodingError,
    IssuanceFailed,
    NotFoundError,
    RevocationFailed,
)
from credgate.core.metrics import LEDGER_DECODE_FAILURES, LEDGER_QUERIES
from credgate.ledger.client import CREDENTIAL, LedgerClient
from credgate.models.account import LedgerAccount
from credgate.models.credential import LSF_ACCEPTED, Credential, IssueOptions
from credgate.services.codec import (
    decode_memo,
    decode_text,
    encode_memo,
    encode_text,
    ledger_time_to_datetime,
    to_ledger_time,
)
from credgate.services.submission import submit_checked

logger = logging.getLogger(__name__)


def decode_credential(raw: dict) -> Credential:
    """Raw Credential ledger entry -> Credential.  DecodeError on bad data."""
    try:
        return _decode_credential(raw)
    except (TypeError, AttributeError) as e:
        # Non-string values where hex is expected.
        raise DecodeError(f"credential entry has a malformed field: {e}") from None


def _decode_credential(raw: dict) -> Credential:
    try:
        issuer = raw["Issuer"]
        subject = raw["Subject"]
        type_hex = raw["CredentialType"]
        flags = raw.get("Flags", 0)
    except (KeyError, TypeError):
        raise DecodeError("credential entry is missing required fields") from None
    if not isinstance(issuer, str) or not isinstance(subject, str):
        raise DecodeError("credential Issuer/Subject must be addresses")
    if not isinstance(type_hex, str) or not isinstance(flags, int):
        raise DecodeError("credential CredentialType/Flags have the wrong type")

    expiration = raw.get("Expiration")
    uri = raw.get("URI")
    memos = raw.get("Memos")
    memo = None
    if memos:
        if not isinstance(memos, list) or not isinstance(memos[0], dict):
            raise DecodeError("credential Memos is not a list of memo objects")
        memo = decode_memo(memos[0])

    return Credential(
        issuer=issuer,
        subject=subject,
        credential_type=decode_text(type_hex),
        accepted=bool(flags & LSF_ACCEPTED),
        expiration=ledger_time_to_datetime(expiration)
        if expiration is not None
        else None,
        uri=decode_text(uri) if uri else None,
        memo=memo,
        ledger_id=raw.get("index"),
    )


class CredentialManager:
    def __init__(self, ledger: LedgerClient) -> None:
        self._ledger = ledger

    async def issue(
        self,
        issuer: LedgerAccount,
        subject: str,
        credential_type: str,
        options: IssueOptions | None = None,
    ) -> str:
        """Create a pending credential for subject.  Returns the tx hash.

        Raises InvalidDate for an unparsable expiration (before anything is
        submitted) and IssuanceFailed when the ledger rejects the request.
        """
        options = options or IssueOptions()
        tx: dict = {
            "TransactionType": "CredentialCreate",
            "Account": issuer.address,
            "Subject": subject,
            "CredentialType": encode_text(credential_type),
        }
        if options.expiration is not None:
            tx["Expiration"] = to_ledger_time(options.expiration)
        if options.uri is not None:
            tx["URI"] = encode_text(options.uri)
        if options.memo is not None:
            tx["Memos"] = [encode_memo(options.memo)]

        return await submit_checked(self._ledger, tx, issuer, IssuanceFailed)

    async def accept(
        self, subject: LedgerAccount, issuer: str, credential_type: str
    ) -> str:
        tx = {
            "TransactionType": "CredentialAccept",
            "Account": subject.address,
            "Issuer": issuer,
            "CredentialType": encode_text(credential_type),
        }
        return await submit_checked(self._ledger, tx, subject, AcceptanceFailed)

    async def list(self, holder: str, subject: str | None = None) -> list[Credential]:
        """Credentials in holder's object set, optionally only for subject."""
        LEDGER_QUERIES.labels(object_type=CREDENTIAL).inc()
        raw_entries = await self._ledger.query(CREDENTIAL, holder, subject)

        credentials: list[Credential] = []
        for raw in raw_entries:
            try:
                credentials.append(decode_credential(raw))
            except EncodingError as e:
                LEDGER_DECODE_FAILURES.labels(object_type=CREDENTIAL).inc()
                logger.warning(
                    "Skipping undecodable credential %s held by %s: %s",
                    raw.get("index", "?") if isinstance(raw, dict) else "?",
                    holder,
                    e,
                )
        return credentials

    async def get(self, issuer: str, subject: str, credential_type: str) -> Credential:
        for cred in await self.list(issuer, subject=subject):
            if cred.issuer == issuer and cred.credential_type == credential_type:
                return cred
        raise NotFoundError(
            f"no {credential_type!r} credential from {issuer} to {subject}"
        )

    async def find_holders(self, issuer: str, credential_type: str) -> list[str]:
        """Subjects holding a credential of this type from issuer."""
        holders: list[str] = []
        for cred in await self.list(issuer):
            if (
                cred.issuer == issuer
                and cred.credential_type == credential_type
                and cred.subject not in holders
            ):
                holders.append(cred.subject)
        return holders

    async def revoke(
        self,
        revoker: LedgerAccount,
        credential_type: str,
        subject: str | None = None,
        issuer: str | None = None,
    ) -> str:
        if subject is None and issuer is None:
            candidates = await self.find_holders(revoker.address, credential_type)
            if len(candidates) != 1:
                raise AmbiguousTarget(credential_type, candidates)
            subject = candidates[0]

        tx = {
            "TransactionType": "CredentialDelete",
            "Account": revoker.address,
            "CredentialType": encode_text(credential_type),
        }
        if subject is not None:
            tx["Subject"] = subject
        if issuer is not None:
            tx["Issuer"] = issuer
        return await submit_checked(self._ledger, tx, revoker, RevocationFailed)
