"""Credential endpoints.

Writes are signed by a configured account named in the path:

  POST /v1/accounts/{account}/credentials          issue (issuer signs)
  POST /v1/accounts/{account}/credentials/accept   accept (subject signs)
  POST /v1/accounts/{account}/credentials/revoke   revoke (either signs)

Reads take any ledger address and need only a valid token:

  GET /v1/ledger/{address}/credentials[?subject=]
  GET /v1/ledger/{issuer}/credentials/{subject}/{credential_type}
  GET /v1/ledger/{issuer}/holders?credential_type=

Every write waits for the transaction to reach a validated ledger before
responding, so these calls take seconds against a real network.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from credgate.api.dependencies import (
    credential_manager,
    raise_http,
    require_account,
    require_user,
)
from credgate.core.config import SETTINGS
from credgate.core.errors import CredGateError
from credgate.models.account import LedgerAccount
from credgate.models.credential import Credential, IssueOptions, Memo
from credgate.models.principal import Principal
from credgate.services.codec import format_iso

router = APIRouter(tags=["credentials"])


class MemoIn(BaseModel):
    data: str
    type: str | None = None
    format: str | None = None


class IssueIn(BaseModel):
    subject: str
    credential_type: str = SETTINGS.credential_type
    expiration: str | None = Field(default=None, description="ISO-8601 date or datetime")
    uri: str | None = None
    memo: MemoIn | None = None


class AcceptIn(BaseModel):
    issuer: str
    credential_type: str = SETTINGS.credential_type


class RevokeIn(BaseModel):
    credential_type: str = SETTINGS.credential_type
    subject: str | None = None
    issuer: str | None = None


class TxOut(BaseModel):
    hash: str


class CredentialOut(BaseModel):
    issuer: str
    subject: str
    credential_type: str
    accepted: bool
    valid: bool
    expiration: str | None
    uri: str | None
    memo: MemoIn | None
    ledger_id: str | None

    @classmethod
    def from_credential(cls, cred: Credential, now: datetime) -> CredentialOut:
        return cls(
            issuer=cred.issuer,
            subject=cred.subject,
            credential_type=cred.credential_type,
            accepted=cred.accepted,
            valid=cred.is_valid_at(now),
            expiration=format_iso(cred.expiration) if cred.expiration else None,
            uri=cred.uri,
            memo=MemoIn(data=cred.memo.data, type=cred.memo.type, format=cred.memo.format)
            if cred.memo
            else None,
            ledger_id=cred.ledger_id,
        )


class HoldersOut(BaseModel):
    issuer: str
    credential_type: str
    holders: list[str]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


@router.post(
    "/v1/accounts/{account}/credentials",
    response_model=TxOut,
    status_code=status.HTTP_201_CREATED,
)
async def issue_credential(
    body: IssueIn,
    issuer: Annotated[LedgerAccount, Depends(require_account)],
) -> TxOut:
    options = IssueOptions(
        expiration=body.expiration,
        uri=body.uri,
        memo=Memo(data=body.memo.data, type=body.memo.type, format=body.memo.format)
        if body.memo
        else None,
    )
    try:
        tx_hash = await credential_manager.issue(
            issuer, body.subject, body.credential_type, options
        )
    except CredGateError as e:
        raise_http(e)
    return TxOut(hash=tx_hash)


@router.post("/v1/accounts/{account}/credentials/accept", response_model=TxOut)
async def accept_credential(
    body: AcceptIn,
    subject: Annotated[LedgerAccount, Depends(require_account)],
) -> TxOut:
    try:
        tx_hash = await credential_manager.accept(
            subject, body.issuer, body.credential_type
        )
    except CredGateError as e:
        raise_http(e)
    return TxOut(hash=tx_hash)


@router.post("/v1/accounts/{account}/credentials/revoke", response_model=TxOut)
async def revoke_credential(
    body: RevokeIn,
    revoker: Annotated[LedgerAccount, Depends(require_account)],
) -> TxOut:
    try:
        tx_hash = await credential_manager.revoke(
            revoker, body.credential_type, subject=body.subject, issuer=body.issuer
        )
    except CredGateError as e:
        raise_http(e)
    return TxOut(hash=tx_hash)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("/v1/ledger/{address}/credentials", response_model=list[CredentialOut])
async def list_credentials(
    address: str,
    _principal: Annotated[Principal, Depends(require_user)],
    subject: str | None = None,
) -> list[CredentialOut]:
    try:
        credentials = await credential_manager.list(address, subject=subject)
    except CredGateError as e:
        raise_http(e)
    now = datetime.now(UTC)
    return [CredentialOut.from_credential(c, now) for c in credentials]


@router.get(
    "/v1/ledger/{issuer}/credentials/{subject}/{credential_type}",
    response_model=CredentialOut,
)
async def get_credential(
    issuer: str,
    subject: str,
    credential_type: str,
    _principal: Annotated[Principal, Depends(require_user)],
) -> CredentialOut:
    try:
        cred = await credential_manager.get(issuer, subject, credential_type)
    except CredGateError as e:
        raise_http(e)
    return CredentialOut.from_credential(cred, datetime.now(UTC))


@router.get("/v1/ledger/{issuer}/holders", response_model=HoldersOut)
async def credential_holders(
    issuer: str,
    _principal: Annotated[Principal, Depends(require_user)],
    credential_type: Annotated[str, Query()] = SETTINGS.credential_type,
) -> HoldersOut:
    try:
        holders = await credential_manager.find_holders(issuer, credential_type)
    except CredGateError as e:
        raise_http(e)
    return HoldersOut(issuer=issuer, credential_type=credential_type, holders=holders)
