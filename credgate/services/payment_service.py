"""Send XRP to a payee that may require credentials.

When the payee has deposit authorization on and accepts credential
holders, the Payment must cite the payer's credential by ledger id in
CredentialIDs.  send() finds that id with a pre-flight authorization
check unless the caller passes credential_ids explicitly (an empty list
means "cite nothing").

A refusal by the payee's rules is an expected outcome here, so
tecNO_PERMISSION / tecBAD_CREDENTIALS / tecEXPIRED come back as a denied
PaymentResult.  Any other non-success code raises PaymentFailed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from credgate.core.errors import EncodingError, PaymentFailed
from credgate.core.metrics import PAYMENTS
from credgate.ledger.client import LedgerClient
from credgate.models.account import LedgerAccount
from credgate.services.authorization_service import AuthorizationService
from credgate.services.submission import submit

DROPS_PER_XRP = 1_000_000
DENIAL_CODES = frozenset({"tecNO_PERMISSION", "tecBAD_CREDENTIALS", "tecEXPIRED"})


def xrp_to_drops(xrp: str) -> str:
    """Convert an XRP amount to drops, e.g. "1.5" -> "1500000".

    Decimal arithmetic throughout; zero, negatives and sub-drop precision
    are rejected.
    """
    try:
        value = Decimal(xrp)
    except (InvalidOperation, TypeError):
        raise EncodingError(f"not an XRP amount: {xrp!r}") from None
    if not value.is_finite():
        raise EncodingError(f"not an XRP amount: {xrp!r}")
    drops = value * DROPS_PER_XRP
    if drops <= 0 or drops != drops.to_integral_value():
        raise EncodingError(f"not a positive whole number of drops: {xrp!r}")
    return str(int(drops))


@dataclass(frozen=True, slots=True)
class PaymentResult:
    hash: str
    result_code: str
    delivered: bool
    denied: bool = False
    credential_ids: list[str] = field(default_factory=list)


class PaymentService:
    def __init__(self, ledger: LedgerClient, authorization: AuthorizationService) -> None:
        self._ledger = ledger
        self._authorization = authorization

    async def send(
        self,
        payer: LedgerAccount,
        payee: str,
        amount_drops: str,
        credential_ids: list[str] | None = None,
    ) -> PaymentResult:
        if credential_ids is None:
            decision = await self._authorization.can_receive_from(payer.address, payee)
            credential_ids = []
            if decision.credential is not None and decision.credential.ledger_id:
                credential_ids = [decision.credential.ledger_id]

        tx: dict = {
            "TransactionType": "Payment",
            "Account": payer.address,
            "Destination": payee,
            "Amount": amount_drops,
        }
        if credential_ids:
            tx["CredentialIDs"] = list(credential_ids)

        result = await submit(self._ledger, tx, payer)
        if result.succeeded:
            PAYMENTS.labels(outcome="delivered").inc()
            return PaymentResult(
                hash=result.hash,
                result_code=result.result_code,
                delivered=True,
                credential_ids=list(credential_ids),
            )
        if result.result_code in DENIAL_CODES:
            PAYMENTS.labels(outcome="denied").inc()
            return PaymentResult(
                hash=result.hash,
                result_code=result.result_code,
                delivered=False,
                denied=True,
                credential_ids=list(credential_ids),
            )
        PAYMENTS.labels(outcome="failed").inc()
        raise PaymentFailed(result.result_code)
