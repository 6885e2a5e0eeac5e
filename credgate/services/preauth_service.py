"""Deposit authorization: who may send funds to an account.

An account with the lsfDepositAuth flag set only accepts payments from
senders that match one of its DepositPreauth rules:

  address-rule     DepositPreauth{Authorize: <address>}
                   that one sender, unconditionally

  credential-rule  DepositPreauth{AuthorizeCredentials: [{Issuer, Type}]}
                   any sender holding an accepted, unexpired credential
                   of that type from that issuer

Rules are independent ledger entries; installing one that exists is a
tecDUPLICATE rejection, removing one that does not is tecNO_ENTRY.  With
the flag cleared the rules are kept but not enforced.

Credential types are taken here in their wire form (hex) because that is
what the rule stores and what listings return.
"""

from __future__ import annotations

import logging

from credgate.core.errors import AccountSetFailed, PreauthFailed
from credgate.core.metrics import LEDGER_DECODE_FAILURES, LEDGER_QUERIES
from credgate.ledger.client import DEPOSIT_PREAUTH, LedgerClient
from credgate.models.account import LedgerAccount
from credgate.models.preauth import (
    ASF_DEPOSIT_AUTH,
    LSF_DEPOSIT_AUTH,
    CredentialRule,
    PreauthResult,
)
from credgate.services.codec import normalize_hex
from credgate.services.submission import submit_checked

logger = logging.getLogger(__name__)


class PreauthorizationManager:
    def __init__(self, ledger: LedgerClient) -> None:
        self._ledger = ledger

    # ---- Deposit authorization flag -----------------------------------------

    async def is_deposit_auth_enabled(self, address: str) -> bool:
        return bool(await self._ledger.account_flags(address) & LSF_DEPOSIT_AUTH)

    async def ensure_deposit_auth_enabled(self, account: LedgerAccount) -> bool:
        """Turn deposit authorization on.

        Returns True when this call submitted the change, False when the
        flag was already set (nothing is submitted).
        """
        if await self.is_deposit_auth_enabled(account.address):
            return False
        tx = {
            "TransactionType": "AccountSet",
            "Account": account.address,
            "SetFlag": ASF_DEPOSIT_AUTH,
        }
        await submit_checked(self._ledger, tx, account, AccountSetFailed)
        return True

    async def disable_deposit_auth(self, account: LedgerAccount) -> bool:
        """Turn deposit authorization off; False when it already was."""
        if not await self.is_deposit_auth_enabled(account.address):
            return False
        tx = {
            "TransactionType": "AccountSet",
            "Account": account.address,
            "ClearFlag": ASF_DEPOSIT_AUTH,
        }
        await submit_checked(self._ledger, tx, account, AccountSetFailed)
        return True

    # ---- Rules ----------------------------------------------------------------

    @staticmethod
    def _credentials_field(issuer: str, credential_type_hex: str) -> list[dict]:
        return [
            {
                "Credential": {
                    "Issuer": issuer,
                    "CredentialType": normalize_hex(credential_type_hex),
                }
            }
        ]

    async def authorize_credential_type(
        self, account: LedgerAccount, issuer: str, credential_type_hex: str
    ) -> PreauthResult:
        tx = {
            "TransactionType": "DepositPreauth",
            "Account": account.address,
            "AuthorizeCredentials": self._credentials_field(
                issuer, credential_type_hex
            ),
        }
        tx_hash = await submit_checked(self._ledger, tx, account, PreauthFailed)
        return PreauthResult(hash=tx_hash, status="tesSUCCESS")

    async def unauthorize_credential_type(
        self, account: LedgerAccount, issuer: str, credential_type_hex: str
    ) -> PreauthResult:
        tx = {
            "TransactionType": "DepositPreauth",
            "Account": account.address,
            "UnauthorizeCredentials": self._credentials_field(
                issuer, credential_type_hex
            ),
        }
        tx_hash = await submit_checked(self._ledger, tx, account, PreauthFailed)
        return PreauthResult(hash=tx_hash, status="tesSUCCESS")

    async def authorize_address(
        self, account: LedgerAccount, counterparty: str
    ) -> PreauthResult:
        tx = {
            "TransactionType": "DepositPreauth",
            "Account": account.address,
            "Authorize": counterparty,
        }
        tx_hash = await submit_checked(self._ledger, tx, account, PreauthFailed)
        return PreauthResult(hash=tx_hash, status="tesSUCCESS", address=counterparty)

    async def unauthorize_address(
        self, account: LedgerAccount, counterparty: str
    ) -> PreauthResult:
        tx = {
            "TransactionType": "DepositPreauth",
            "Account": account.address,
            "Unauthorize": counterparty,
        }
        tx_hash = await submit_checked(self._ledger, tx, account, PreauthFailed)
        return PreauthResult(hash=tx_hash, status="tesSUCCESS", address=counterparty)

    # ---- Queries --------------------------------------------------------------

    async def _entries(self, address: str) -> list[dict]:
        LEDGER_QUERIES.labels(object_type=DEPOSIT_PREAUTH).inc()
        return await self._ledger.query(DEPOSIT_PREAUTH, address)

    async def list_credential_rules(self, address: str) -> list[CredentialRule]:
        """Every (issuer, type) pair accepted by address, flattened."""
        rules: list[CredentialRule] = []
        for entry in await self._entries(address):
            items = entry.get("AuthorizeCredentials")
            if items is None:
                continue
            try:
                decoded = [
                    CredentialRule(
                        issuer=item["Credential"]["Issuer"],
                        credential_type=normalize_hex(
                            item["Credential"]["CredentialType"]
                        ),
                    )
                    for item in items
                ]
            except (KeyError, TypeError, ValueError) as e:
                LEDGER_DECODE_FAILURES.labels(object_type=DEPOSIT_PREAUTH).inc()
                logger.warning(
                    "Skipping undecodable preauth entry %s of %s: %s",
                    entry.get("index", "?"),
                    address,
                    e,
                )
                continue
            for rule in decoded:
                if rule not in rules:
                    rules.append(rule)
        return rules

    async def list_address_rules(self, address: str) -> list[str]:
        authorized: list[str] = []
        for entry in await self._entries(address):
            value = entry.get("Authorize")
            if isinstance(value, str) and value not in authorized:
                authorized.append(value)
        return authorized
