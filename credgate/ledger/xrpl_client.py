"""XRP Ledger implementation of the LedgerClient Protocol, via xrpl-py.

SIGN, SUBMIT, WAIT
--------------------
submit() first runs xrpl-py's autofill_and_sign(), which fills in Fee /
Sequence / LastLedgerSequence and signs with the signer's wallet.  The hash
is known from the signed blob before anything is sent, so every
SubmitResult carries it, rejections included.  submit_and_wait() then
submits and polls until the transaction is in a validated ledger (or its
LastLedgerSequence has passed).  Fee and sequence handling are the
library's job, not ours.

RESULT CODES vs EXCEPTIONS
----------------------------
The core treats "the ledger said no" as DATA (a result code) and "we could
not talk to the ledger" as an EXCEPTION.  xrpl-py mixes the two, so this
adapter sorts them:

  validated tec*/tes*             -> SubmitResult(hash, code)
  rejected before validation
    (tem*/tef*/tel* prelim)       -> SubmitResult(hash, code parsed from the error)
  local model validation failure  -> SubmitResult("temMALFORMED")
  unfunded source account         -> SubmitResult("terNO_ACCOUNT")
  network / timeout / protocol    -> LedgerUnavailableError

A timed-out submission may still be applied later: the caller sees
LedgerUnavailableError and must treat the outcome as unknown.
"""

from __future__ import annotations

import asyncio
import logging
import re

import httpx
from xrpl.asyncio.clients import AsyncJsonRpcClient, AsyncWebsocketClient
from xrpl.asyncio.transaction import (
    XRPLReliableSubmissionException,
    autofill_and_sign,
    submit_and_wait,
)
from xrpl.clients import XRPLRequestFailureException
from xrpl.constants import XRPLException
from xrpl.models.exceptions import XRPLModelException
from xrpl.models.requests import (
    AccountInfo,
    AccountObjects,
    AccountObjectType,
    ServerInfo,
)
from xrpl.models.transactions.transaction import Transaction
from xrpl.wallet import Wallet

from credgate.core.errors import LedgerUnavailableError, NotFoundError
from credgate.ledger.client import SubmitResult
from credgate.models.account import LedgerAccount

logger = logging.getLogger(__name__)

_RESULT_CODE_RE = re.compile(r"\bte[cflmrs][A-Z_]+\b")
_PAGE_LIMIT = 200

_TRANSPORT_ERRORS = (httpx.HTTPError, OSError, TimeoutError, XRPLException)


def _code_from_error(message: str) -> str:
    match = _RESULT_CODE_RE.search(message)
    # No code means LastLedgerSequence passed without validation.
    return match.group(0) if match else "tefMAX_LEDGER"


class XrplLedgerClient:
    """Talks to a rippled node over websocket (ws://, wss://) or JSON-RPC."""

    def __init__(self, url: str, timeout: float = 30.0) -> None:
        self.url = url
        self._timeout = timeout
        if url.startswith(("ws://", "wss://")):
            self._client: AsyncWebsocketClient | AsyncJsonRpcClient = (
                AsyncWebsocketClient(url)
            )
        else:
            self._client = AsyncJsonRpcClient(url)

    @property
    def _is_websocket(self) -> bool:
        return isinstance(self._client, AsyncWebsocketClient)

    async def open(self) -> None:
        if self._is_websocket and not self._client.is_open():  # type: ignore[union-attr]
            await self._client.open()  # type: ignore[union-attr]

    async def close(self) -> None:
        if self._is_websocket and self._client.is_open():  # type: ignore[union-attr]
            await self._client.close()  # type: ignore[union-attr]

    async def _request(self, request):
        try:
            return await asyncio.wait_for(self._client.request(request), self._timeout)
        except _TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(f"ledger request failed: {e}") from e

    async def submit(self, tx: dict, signer: LedgerAccount) -> SubmitResult:
        tx_type = tx.get("TransactionType")
        try:
            transaction = Transaction.from_xrpl(tx)
        except XRPLModelException as e:
            logger.warning("Rejected malformed %s locally: %s", tx_type, e)
            return SubmitResult(hash="", result_code="temMALFORMED")

        wallet = Wallet.from_seed(signer.seed)
        tx_hash = ""
        try:
            signed = await asyncio.wait_for(
                autofill_and_sign(transaction, self._client, wallet),
                self._timeout,
            )
            tx_hash = signed.get_hash()
            response = await asyncio.wait_for(
                submit_and_wait(signed, self._client),
                self._timeout,
            )
        except XRPLReliableSubmissionException as e:
            return SubmitResult(hash=tx_hash, result_code=_code_from_error(str(e)))
        except XRPLRequestFailureException as e:
            if getattr(e, "error", None) == "actNotFound":
                return SubmitResult(hash=tx_hash, result_code="terNO_ACCOUNT")
            raise LedgerUnavailableError(f"{tx_type} submission failed: {e}") from e
        except _TRANSPORT_ERRORS as e:
            raise LedgerUnavailableError(
                f"{tx_type} submission failed, outcome unknown: {e}"
            ) from e

        result = response.result
        meta = result.get("meta")
        code = "unknown"
        if isinstance(meta, dict):
            code = meta.get("TransactionResult", code)
        return SubmitResult(hash=result.get("hash", tx_hash), result_code=code)

    async def query(
        self, object_type: str, account: str, subject: str | None = None
    ) -> list[dict]:
        entries: list[dict] = []
        marker = None
        while True:
            response = await self._request(
                AccountObjects(
                    account=account,
                    type=AccountObjectType(object_type),
                    ledger_index="validated",
                    limit=_PAGE_LIMIT,
                    marker=marker,
                )
            )
            if not response.is_successful():
                if response.result.get("error") == "actNotFound":
                    return []
                raise LedgerUnavailableError(
                    f"account_objects failed: {response.result.get('error')}"
                )
            entries.extend(response.result.get("account_objects", []))
            marker = response.result.get("marker")
            if marker is None:
                break

        if subject is not None:
            entries = [e for e in entries if e.get("Subject") == subject]
        return entries

    async def account_flags(self, address: str) -> int:
        response = await self._request(
            AccountInfo(account=address, ledger_index="validated")
        )
        if not response.is_successful():
            if response.result.get("error") == "actNotFound":
                raise NotFoundError(f"account {address} not found on ledger")
            raise LedgerUnavailableError(
                f"account_info failed: {response.result.get('error')}"
            )
        return int(response.result["account_data"].get("Flags", 0))

    async def ping(self) -> bool:
        try:
            response = await self._request(ServerInfo())
        except LedgerUnavailableError:
            return False
        return response.is_successful()
