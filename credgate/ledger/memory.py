"""In-memory ledger for tests and local development.

This is not a ledger implementation; it is a simulator of the slice of
ledger behaviour the core relies on, faithful enough that the managers'
result-code handling can be exercised without a network:

  CredentialCreate   temMALFORMED  empty / >64-byte type, >256-byte URI
                     tecEXPIRED    expiration already passed
                     tecDUPLICATE  (issuer, subject, type) already exists
                     issuer == subject is accepted immediately
  CredentialAccept   tecNO_ENTRY   nothing to accept
                     tecDUPLICATE  already accepted
                     tecEXPIRED    expired (the entry is removed)
  CredentialDelete   temMALFORMED  neither Subject nor Issuer
                     tecNO_ENTRY   nothing to delete
                     tecNO_PERMISSION  not issuer/subject, not expired
  AccountSet         SetFlag / ClearFlag 9 toggles deposit authorization
  DepositPreauth     temMALFORMED  not exactly one operation field, bad
                                   credential list
                     temCANNOT_PREAUTH_SELF
                     tecDUPLICATE / tecNO_ENTRY
  Payment            temBAD_AMOUNT, temREDUNDANT (payer is payee),
                     tecBAD_CREDENTIALS, tecEXPIRED,
                     tecNO_PERMISSION (deposit authorization)

Every transaction must be signed by the account named in its Account
field (tefBAD_AUTH otherwise).  The clock is injectable so expiry can be
tested deterministically.
"""

from __future__ import annotations

import copy
import hashlib
import json
from collections.abc import Callable
from datetime import UTC, datetime

from credgate.core.errors import EncodingError
from credgate.ledger.client import CREDENTIAL, DEPOSIT_PREAUTH, SubmitResult
from credgate.models.account import LedgerAccount
from credgate.models.credential import (
    LSF_ACCEPTED,
    MAX_CREDENTIAL_TYPE_BYTES,
    MAX_URI_BYTES,
)
from credgate.models.preauth import (
    ASF_DEPOSIT_AUTH,
    LSF_DEPOSIT_AUTH,
    MAX_AUTHORIZE_CREDENTIALS,
)
from credgate.services.codec import datetime_to_ledger_time, normalize_hex

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _hex_len_ok(value: object, max_bytes: int) -> bool:
    if not isinstance(value, str):
        return False
    try:
        raw = normalize_hex(value)
    except EncodingError:
        return False
    return 0 < len(raw) // 2 <= max_bytes


def _index(*parts: str) -> str:
    return hashlib.sha512(":".join(parts).encode()).hexdigest()[:64].upper()


class InMemoryLedger:
    """Satisfies the LedgerClient Protocol entirely in process memory."""

    def __init__(self, clock: Clock = _utcnow) -> None:
        self._clock = clock
        # (issuer, subject, CredentialType hex) -> Credential entry
        self._credentials: dict[tuple[str, str, str], dict] = {}
        # owner -> DepositPreauth entries
        self._preauths: dict[str, list[dict]] = {}
        self._flags: dict[str, int] = {}
        # Every submission, in order: (tx, result code).
        self.transactions: list[tuple[dict, str]] = []

    def reset(self) -> None:
        self._credentials.clear()
        self._preauths.clear()
        self._flags.clear()
        self.transactions.clear()

    def set_clock(self, clock: Clock) -> None:
        self._clock = clock

    def put_raw_credential(self, entry: dict) -> None:
        """Store a raw Credential entry as-is (for malformed-data tests)."""
        key = (entry.get("Issuer", ""), entry.get("Subject", ""), str(entry))
        self._credentials[key] = entry

    # ---- LedgerClient -----------------------------------------------------

    async def submit(self, tx: dict, signer: LedgerAccount) -> SubmitResult:
        tx = copy.deepcopy(tx)
        code = self._apply(tx, signer)
        self.transactions.append((tx, code))
        tx_hash = _index(str(len(self.transactions)), json.dumps(tx, sort_keys=True))
        return SubmitResult(hash=tx_hash, result_code=code)

    async def query(
        self, object_type: str, account: str, subject: str | None = None
    ) -> list[dict]:
        if object_type == CREDENTIAL:
            entries = [
                e
                for e in self._credentials.values()
                if account in (e.get("Issuer"), e.get("Subject"))
            ]
        elif object_type == DEPOSIT_PREAUTH:
            entries = list(self._preauths.get(account, []))
        else:
            entries = []
        if subject is not None:
            entries = [e for e in entries if e.get("Subject") == subject]
        return copy.deepcopy(entries)

    async def account_flags(self, address: str) -> int:
        return self._flags.get(address, 0)

    async def ping(self) -> bool:
        return True

    # ---- Transaction processing --------------------------------------------

    def _now(self) -> int:
        return datetime_to_ledger_time(self._clock())

    def _apply(self, tx: dict, signer: LedgerAccount) -> str:
        if tx.get("Account") != signer.address:
            return "tefBAD_AUTH"
        handler = {
            "CredentialCreate": self._credential_create,
            "CredentialAccept": self._credential_accept,
            "CredentialDelete": self._credential_delete,
            "AccountSet": self._account_set,
            "DepositPreauth": self._deposit_preauth,
            "Payment": self._payment,
        }.get(tx.get("TransactionType", ""))
        if handler is None:
            return "temUNKNOWN"
        return handler(tx)

    def _expired(self, entry: dict) -> bool:
        exp = entry.get("Expiration")
        return exp is not None and exp <= self._now()

    def _credential_create(self, tx: dict) -> str:
        issuer, subject = tx["Account"], tx.get("Subject")
        ctype = tx.get("CredentialType")
        if not subject or not _hex_len_ok(ctype, MAX_CREDENTIAL_TYPE_BYTES):
            return "temMALFORMED"
        if "URI" in tx and not _hex_len_ok(tx["URI"], MAX_URI_BYTES):
            return "temMALFORMED"
        if "Expiration" in tx and tx["Expiration"] <= self._now():
            return "tecEXPIRED"
        ctype = normalize_hex(ctype)
        key = (issuer, subject, ctype)
        if key in self._credentials:
            return "tecDUPLICATE"
        entry = {
            "LedgerEntryType": "Credential",
            "Issuer": issuer,
            "Subject": subject,
            "CredentialType": ctype,
            # Self-issued credentials need no separate acceptance.
            "Flags": LSF_ACCEPTED if issuer == subject else 0,
            "index": _index("credential", *key),
        }
        for field in ("Expiration", "URI", "Memos"):
            if field in tx:
                entry[field] = tx[field]
        self._credentials[key] = entry
        return "tesSUCCESS"

    def _credential_accept(self, tx: dict) -> str:
        issuer = tx.get("Issuer")
        ctype = tx.get("CredentialType")
        if not issuer or not _hex_len_ok(ctype, MAX_CREDENTIAL_TYPE_BYTES):
            return "temMALFORMED"
        key = (issuer, tx["Account"], normalize_hex(ctype))
        entry = self._credentials.get(key)
        if entry is None:
            return "tecNO_ENTRY"
        if entry["Flags"] & LSF_ACCEPTED:
            return "tecDUPLICATE"
        if self._expired(entry):
            del self._credentials[key]
            return "tecEXPIRED"
        entry["Flags"] |= LSF_ACCEPTED
        return "tesSUCCESS"

    def _credential_delete(self, tx: dict) -> str:
        account = tx["Account"]
        subject, issuer = tx.get("Subject"), tx.get("Issuer")
        ctype = tx.get("CredentialType")
        if not (subject or issuer) or not _hex_len_ok(
            ctype, MAX_CREDENTIAL_TYPE_BYTES
        ):
            return "temMALFORMED"
        key = (issuer or account, subject or account, normalize_hex(ctype))
        entry = self._credentials.get(key)
        if entry is None:
            return "tecNO_ENTRY"
        if account not in (key[0], key[1]) and not self._expired(entry):
            return "tecNO_PERMISSION"
        del self._credentials[key]
        return "tesSUCCESS"

    def _account_set(self, tx: dict) -> str:
        account = tx["Account"]
        flags = self._flags.get(account, 0)
        if tx.get("SetFlag") == ASF_DEPOSIT_AUTH:
            flags |= LSF_DEPOSIT_AUTH
        if tx.get("ClearFlag") == ASF_DEPOSIT_AUTH:
            flags &= ~LSF_DEPOSIT_AUTH
        self._flags[account] = flags
        return "tesSUCCESS"

    def _deposit_preauth(self, tx: dict) -> str:
        owner = tx["Account"]
        ops = [
            f
            for f in (
                "Authorize",
                "Unauthorize",
                "AuthorizeCredentials",
                "UnauthorizeCredentials",
            )
            if f in tx
        ]
        if len(ops) != 1:
            return "temMALFORMED"
        op = ops[0]
        entries = self._preauths.setdefault(owner, [])

        if op in ("Authorize", "Unauthorize"):
            target = tx[op]
            if target == owner:
                return "temCANNOT_PREAUTH_SELF"
            existing = [e for e in entries if e.get("Authorize") == target]
            if op == "Authorize":
                if existing:
                    return "tecDUPLICATE"
                entries.append(
                    {
                        "LedgerEntryType": "DepositPreauth",
                        "Account": owner,
                        "Authorize": target,
                        "index": _index("preauth", owner, target),
                    }
                )
            else:
                if not existing:
                    return "tecNO_ENTRY"
                entries.remove(existing[0])
            return "tesSUCCESS"

        pairs = self._credential_pairs(tx[op])
        if pairs is None:
            return "temMALFORMED"
        existing = [
            e
            for e in entries
            if "AuthorizeCredentials" in e
            and self._credential_pairs(e["AuthorizeCredentials"]) == pairs
        ]
        if op == "AuthorizeCredentials":
            if existing:
                return "tecDUPLICATE"
            entries.append(
                {
                    "LedgerEntryType": "DepositPreauth",
                    "Account": owner,
                    "AuthorizeCredentials": [
                        {"Credential": {"Issuer": i, "CredentialType": t}}
                        for i, t in sorted(pairs)
                    ],
                    "index": _index("preauth", owner, *sorted(map(str, pairs))),
                }
            )
        else:
            if not existing:
                return "tecNO_ENTRY"
            entries.remove(existing[0])
        return "tesSUCCESS"

    @staticmethod
    def _credential_pairs(raw: object) -> frozenset[tuple[str, str]] | None:
        if not isinstance(raw, list) or not 0 < len(raw) <= MAX_AUTHORIZE_CREDENTIALS:
            return None
        pairs = set()
        for item in raw:
            cred = item.get("Credential") if isinstance(item, dict) else None
            if not isinstance(cred, dict) or not cred.get("Issuer"):
                return None
            if not _hex_len_ok(cred.get("CredentialType"), MAX_CREDENTIAL_TYPE_BYTES):
                return None
            pair = (cred["Issuer"], normalize_hex(cred["CredentialType"]))
            if pair in pairs:
                return None
            pairs.add(pair)
        return frozenset(pairs)

    def _payment(self, tx: dict) -> str:
        payer, payee = tx["Account"], tx.get("Destination")
        amount = tx.get("Amount")
        if not payee or not isinstance(amount, str) or not amount.isdigit():
            return "temBAD_AMOUNT"
        if int(amount) <= 0:
            return "temBAD_AMOUNT"
        if payer == payee:
            return "temREDUNDANT"

        presented = []
        for cred_id in tx.get("CredentialIDs", []):
            entry = next(
                (e for e in self._credentials.values() if e.get("index") == cred_id),
                None,
            )
            if (
                entry is None
                or entry.get("Subject") != payer
                or not entry["Flags"] & LSF_ACCEPTED
            ):
                return "tecBAD_CREDENTIALS"
            if self._expired(entry):
                return "tecEXPIRED"
            presented.append((entry["Issuer"], entry["CredentialType"]))

        if not self._flags.get(payee, 0) & LSF_DEPOSIT_AUTH:
            return "tesSUCCESS"
        for entry in self._preauths.get(payee, []):
            if entry.get("Authorize") == payer:
                return "tesSUCCESS"
            if "AuthorizeCredentials" in entry:
                pairs = self._credential_pairs(entry["AuthorizeCredentials"]) or ()
                if any(p in pairs for p in presented):
                    return "tesSUCCESS"
        return "tecNO_PERMISSION"
