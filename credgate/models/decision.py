from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from credgate.models.credential import Credential
from credgate.models.preauth import CredentialRule

DecisionReason = Literal[
    "deposit_auth_disabled",
    "address_rule",
    "credential_rule",
    "no_matching_rule",
]


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True, slots=True)
class AuthorizationResult:
    """Why a payee would (or would not) accept funds from a payer.

    For credential_rule decisions, `rule` and `credential` identify the
    matching pair; the credential's ledger_id is what a Payment must cite.
    """

    decision: Decision
    reason: DecisionReason
    rule: CredentialRule | None = None
    credential: Credential | None = None

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW
