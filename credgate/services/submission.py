"""Submit one transaction and log / count its outcome.

Every manager write goes through submit_checked() so that each
transaction produces exactly one log line and one metric sample, and a
non-success code turns into the caller's RejectionError subclass.
"""

from __future__ import annotations

import logging

from credgate.core.errors import LedgerUnavailableError, RejectionError
from credgate.core.metrics import LEDGER_SUBMISSIONS
from credgate.ledger.client import LedgerClient, SubmitResult
from credgate.models.account import LedgerAccount

logger = logging.getLogger(__name__)


async def submit(ledger: LedgerClient, tx: dict, signer: LedgerAccount) -> SubmitResult:
    """Submit tx and record the outcome; never raises on a result code."""
    tx_type = tx.get("TransactionType", "unknown")
    context = {"account": signer.name, "tx_type": tx_type}
    try:
        result = await ledger.submit(tx, signer)
    except LedgerUnavailableError:
        LEDGER_SUBMISSIONS.labels(transaction_type=tx_type, result="unavailable").inc()
        logger.error("%s by %s: ledger unavailable", tx_type, signer.name, extra=context)
        raise

    LEDGER_SUBMISSIONS.labels(
        transaction_type=tx_type, result=result.result_code
    ).inc()
    context.update(tx_hash=result.hash, result_code=result.result_code)
    if result.succeeded:
        logger.info("%s by %s: %s", tx_type, signer.name, result.result_code, extra=context)
    else:
        logger.warning(
            "%s by %s: %s", tx_type, signer.name, result.result_code, extra=context
        )
    return result


async def submit_checked(
    ledger: LedgerClient,
    tx: dict,
    signer: LedgerAccount,
    error_cls: type[RejectionError],
) -> str:
    """Submit tx; return its hash on tesSUCCESS, raise error_cls otherwise."""
    result = await submit(ledger, tx, signer)
    if not result.succeeded:
        raise error_cls(result.result_code)
    return result.hash
