"""Deposit authorization endpoints.

  POST   /v1/accounts/{account}/deposit-auth                turn on
  DELETE /v1/accounts/{account}/deposit-auth                turn off
  POST   /v1/accounts/{account}/credential-rules            accept holders of a credential
  DELETE /v1/accounts/{account}/credential-rules?issuer=&credential_type=
  POST   /v1/accounts/{account}/address-rules               accept one sender
  DELETE /v1/accounts/{account}/address-rules/{address}

  GET    /v1/ledger/{address}/deposit-auth
  GET    /v1/ledger/{address}/credential-rules
  GET    /v1/ledger/{address}/address-rules

Credential types are given as readable labels and sent to the ledger as
hex; listings return both.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from credgate.api.dependencies import (
    preauth_manager,
    raise_http,
    require_account,
    require_user,
)
from credgate.core.config import SETTINGS
from credgate.core.errors import CredGateError
from credgate.models.account import LedgerAccount
from credgate.models.preauth import PreauthResult
from credgate.models.principal import Principal
from credgate.services.codec import encode_text

router = APIRouter(tags=["preauthorization"])


class DepositAuthOut(BaseModel):
    address: str
    enabled: bool
    changed: bool = False


class CredentialRuleIn(BaseModel):
    issuer: str
    credential_type: str = SETTINGS.credential_type


class CredentialRuleOut(BaseModel):
    issuer: str
    credential_type_hex: str
    credential_type: str | None


class AddressRuleIn(BaseModel):
    address: str


class PreauthOut(BaseModel):
    hash: str
    status: str
    address: str | None = None

    @classmethod
    def from_result(cls, result: PreauthResult) -> PreauthOut:
        return cls(hash=result.hash, status=result.status, address=result.address)


# ---------------------------------------------------------------------------
# Deposit authorization flag
# ---------------------------------------------------------------------------


@router.post("/v1/accounts/{account}/deposit-auth", response_model=DepositAuthOut)
async def enable_deposit_auth(
    account: Annotated[LedgerAccount, Depends(require_account)],
) -> DepositAuthOut:
    try:
        changed = await preauth_manager.ensure_deposit_auth_enabled(account)
    except CredGateError as e:
        raise_http(e)
    return DepositAuthOut(address=account.address, enabled=True, changed=changed)


@router.delete("/v1/accounts/{account}/deposit-auth", response_model=DepositAuthOut)
async def disable_deposit_auth(
    account: Annotated[LedgerAccount, Depends(require_account)],
) -> DepositAuthOut:
    try:
        changed = await preauth_manager.disable_deposit_auth(account)
    except CredGateError as e:
        raise_http(e)
    return DepositAuthOut(address=account.address, enabled=False, changed=changed)


@router.get("/v1/ledger/{address}/deposit-auth", response_model=DepositAuthOut)
async def read_deposit_auth(
    address: str,
    _principal: Annotated[Principal, Depends(require_user)],
) -> DepositAuthOut:
    try:
        enabled = await preauth_manager.is_deposit_auth_enabled(address)
    except CredGateError as e:
        raise_http(e)
    return DepositAuthOut(address=address, enabled=enabled)


# ---------------------------------------------------------------------------
# Credential rules
# ---------------------------------------------------------------------------


@router.post(
    "/v1/accounts/{account}/credential-rules",
    response_model=PreauthOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_credential_rule(
    body: CredentialRuleIn,
    account: Annotated[LedgerAccount, Depends(require_account)],
) -> PreauthOut:
    try:
        result = await preauth_manager.authorize_credential_type(
            account, body.issuer, encode_text(body.credential_type)
        )
    except CredGateError as e:
        raise_http(e)
    return PreauthOut.from_result(result)


@router.delete("/v1/accounts/{account}/credential-rules", response_model=PreauthOut)
async def remove_credential_rule(
    account: Annotated[LedgerAccount, Depends(require_account)],
    issuer: Annotated[str, Query()],
    credential_type: Annotated[str, Query()] = SETTINGS.credential_type,
) -> PreauthOut:
    try:
        result = await preauth_manager.unauthorize_credential_type(
            account, issuer, encode_text(credential_type)
        )
    except CredGateError as e:
        raise_http(e)
    return PreauthOut.from_result(result)


@router.get(
    "/v1/ledger/{address}/credential-rules", response_model=list[CredentialRuleOut]
)
async def list_credential_rules(
    address: str,
    _principal: Annotated[Principal, Depends(require_user)],
) -> list[CredentialRuleOut]:
    try:
        rules = await preauth_manager.list_credential_rules(address)
    except CredGateError as e:
        raise_http(e)
    return [
        CredentialRuleOut(
            issuer=r.issuer, credential_type_hex=r.credential_type, credential_type=r.label
        )
        for r in rules
    ]


# ---------------------------------------------------------------------------
# Address rules
# ---------------------------------------------------------------------------


@router.post(
    "/v1/accounts/{account}/address-rules",
    response_model=PreauthOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_address_rule(
    body: AddressRuleIn,
    account: Annotated[LedgerAccount, Depends(require_account)],
) -> PreauthOut:
    try:
        result = await preauth_manager.authorize_address(account, body.address)
    except CredGateError as e:
        raise_http(e)
    return PreauthOut.from_result(result)


@router.delete(
    "/v1/accounts/{account}/address-rules/{address}", response_model=PreauthOut
)
async def remove_address_rule(
    address: str,
    account: Annotated[LedgerAccount, Depends(require_account)],
) -> PreauthOut:
    try:
        result = await preauth_manager.unauthorize_address(account, address)
    except CredGateError as e:
        raise_http(e)
    return PreauthOut.from_result(result)


@router.get("/v1/ledger/{address}/address-rules", response_model=list[str])
async def list_address_rules(
    address: str,
    _principal: Annotated[Principal, Depends(require_user)],
) -> list[str]:
    try:
        return await preauth_manager.list_address_rules(address)
    except CredGateError as e:
        raise_http(e)
