"""Pre-flight authorization check.

GET /v1/authorization?payer=&payee= answers whether payee would accept a
payment from payer right now.  A DENY is a normal 200 response with
allowed=false; only ledger faults produce error statuses.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from credgate.api.dependencies import authorization_service, raise_http, require_user
from credgate.core.errors import CredGateError
from credgate.models.principal import Principal

router = APIRouter(tags=["authorization"])


class MatchedRuleOut(BaseModel):
    issuer: str
    credential_type_hex: str
    credential_type: str | None


class AuthorizationOut(BaseModel):
    payer: str
    payee: str
    allowed: bool
    decision: str
    reason: str
    rule: MatchedRuleOut | None = None
    credential_id: str | None = None


@router.get("/v1/authorization", response_model=AuthorizationOut)
async def check_authorization(
    payer: Annotated[str, Query()],
    payee: Annotated[str, Query()],
    _principal: Annotated[Principal, Depends(require_user)],
) -> AuthorizationOut:
    try:
        result = await authorization_service.can_receive_from(payer, payee)
    except CredGateError as e:
        raise_http(e)

    rule = None
    if result.rule is not None:
        rule = MatchedRuleOut(
            issuer=result.rule.issuer,
            credential_type_hex=result.rule.credential_type,
            credential_type=result.rule.label,
        )
    return AuthorizationOut(
        payer=payer,
        payee=payee,
        allowed=result.allowed,
        decision=result.decision.value,
        reason=result.reason,
        rule=rule,
        credential_id=result.credential.ledger_id if result.credential else None,
    )
