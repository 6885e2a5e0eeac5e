"""Pre-flight answer to "would payee accept funds from payer?".

Reads the payee's flag and rules and the payer's credentials, then
decides in this order:

  1. payee has deposit authorization off      ALLOW  deposit_auth_disabled
  2. payee has an address-rule for payer      ALLOW  address_rule
  3. payer holds an accepted, unexpired
     credential matching a credential-rule    ALLOW  credential_rule
  4. anything else                            DENY   no_matching_rule

Nothing is submitted.  The ledger makes the binding decision when the
payment lands; this mirrors it so a caller can find out (and learn which
credential to cite) before spending a fee.  Only issuer, type, acceptance
and expiry matter; URI and memo never do.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from credgate.core.metrics import AUTHORIZATION_DECISIONS
from credgate.models.decision import AuthorizationResult, Decision
from credgate.services.codec import encode_text
from credgate.services.credential_service import CredentialManager
from credgate.services.preauth_service import PreauthorizationManager

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AuthorizationService:
    def __init__(
        self,
        credentials: CredentialManager,
        preauth: PreauthorizationManager,
        clock: Clock = _utcnow,
    ) -> None:
        self._credentials = credentials
        self._preauth = preauth
        self._clock = clock

    async def can_receive_from(
        self, payer: str, payee: str, at: datetime | None = None
    ) -> AuthorizationResult:
        now = at or self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        result = await self._decide(payer, payee, now)
        AUTHORIZATION_DECISIONS.labels(
            decision=result.decision.value, reason=result.reason
        ).inc()
        logger.debug(
            "Authorization %s -> %s: %s (%s)",
            payer,
            payee,
            result.decision.value,
            result.reason,
        )
        return result

    async def _decide(self, payer: str, payee: str, now: datetime) -> AuthorizationResult:
        if not await self._preauth.is_deposit_auth_enabled(payee):
            return AuthorizationResult(Decision.ALLOW, "deposit_auth_disabled")
        if payer in await self._preauth.list_address_rules(payee):
            return AuthorizationResult(Decision.ALLOW, "address_rule")

        rules = await self._preauth.list_credential_rules(payee)
        if rules:
            held = await self._credentials.list(payer, subject=payer)
            for rule in rules:
                for cred in held:
                    if (
                        cred.issuer == rule.issuer
                        and encode_text(cred.credential_type) == rule.credential_type
                        and cred.is_valid_at(now)
                    ):
                        return AuthorizationResult(
                            Decision.ALLOW, "credential_rule", rule=rule, credential=cred
                        )

        return AuthorizationResult(Decision.DENY, "no_matching_rule")
