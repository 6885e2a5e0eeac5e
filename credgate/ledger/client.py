"""The narrow request interface the core uses to reach the ledger.

Everything the managers need from the ledger fits in four calls:

  submit(tx, signer)              sign + submit one transaction, wait for
                                  its final result code
  query(type, account, subject)   raw ledger entries an account owns
  account_flags(address)          AccountRoot Flags bitfield
  ping()                          connectivity check for /health

Two implementations satisfy this Protocol:

  InMemoryLedger   (ledger/memory.py)       tests and local dev
  XrplLedgerClient (ledger/xrpl_client.py)  a real rippled node via xrpl-py

Transactions are passed as plain dicts in the ledger's own JSON shape
(PascalCase keys, hex strings), so the managers build exactly what goes on
the wire and both implementations see the same thing.  Raw query results
are also plain dicts; turning them into typed models is the managers' job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from credgate.models.account import LedgerAccount

SUCCESS = "tesSUCCESS"

# account_objects type filters
CREDENTIAL = "credential"
DEPOSIT_PREAUTH = "deposit_preauth"


@dataclass(frozen=True, slots=True)
class SubmitResult:
    """Final outcome of a submitted transaction.

    result_code is passed through verbatim from the ledger (tesSUCCESS,
    tecNO_PERMISSION, ...).  No taxonomy beyond success / not success.
    """

    hash: str
    result_code: str

    @property
    def succeeded(self) -> bool:
        return self.result_code == SUCCESS


@runtime_checkable
class LedgerClient(Protocol):
    async def submit(self, tx: dict, signer: LedgerAccount) -> SubmitResult:
        """Sign tx as signer, submit it and wait for its final result."""
        ...

    async def query(
        self, object_type: str, account: str, subject: str | None = None
    ) -> list[dict]:
        """Ledger entries of object_type in account's owner directory.

        When subject is given, only entries whose Subject equals it.
        """
        ...

    async def account_flags(self, address: str) -> int:
        """AccountRoot Flags for address."""
        ...

    async def ping(self) -> bool:
        """True when the ledger is reachable."""
        ...
