"""POST /v1/accounts/{account}/payments: send XRP, citing credentials.

The amount is given in XRP as a decimal string ("1", "0.25").  Leave
credential_ids out to have the matching credential found automatically;
send [] to cite none.  A payment the payee's rules refuse is a 200 with
denied=true and the ledger's code.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from credgate.api.dependencies import payment_service, raise_http, require_account
from credgate.core.errors import CredGateError
from credgate.models.account import LedgerAccount
from credgate.services.payment_service import xrp_to_drops

router = APIRouter(tags=["payments"])


class PaymentIn(BaseModel):
    destination: str
    amount: str = "1"
    credential_ids: list[str] | None = None


class PaymentOut(BaseModel):
    hash: str
    result_code: str
    delivered: bool
    denied: bool
    amount_drops: str
    credential_ids: list[str]


@router.post("/v1/accounts/{account}/payments", response_model=PaymentOut)
async def send_payment(
    body: PaymentIn,
    payer: Annotated[LedgerAccount, Depends(require_account)],
) -> PaymentOut:
    try:
        drops = xrp_to_drops(body.amount)
        result = await payment_service.send(
            payer, body.destination, drops, credential_ids=body.credential_ids
        )
    except CredGateError as e:
        raise_http(e)
    return PaymentOut(
        hash=result.hash,
        result_code=result.result_code,
        delivered=result.delivered,
        denied=result.denied,
        amount_drops=drops,
        credential_ids=result.credential_ids,
    )
