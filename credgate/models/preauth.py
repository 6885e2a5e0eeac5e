from __future__ import annotations

from dataclasses import dataclass

from credgate.core.errors import EncodingError
from credgate.services.codec import decode_text

# AccountRoot flag: incoming payments need preauthorization.
LSF_DEPOSIT_AUTH = 0x01000000
# AccountSet SetFlag/ClearFlag value that toggles LSF_DEPOSIT_AUTH.
ASF_DEPOSIT_AUTH = 9

# DepositPreauth accepts at most this many (issuer, type) pairs per rule.
MAX_AUTHORIZE_CREDENTIALS = 8


@dataclass(frozen=True, slots=True)
class CredentialRule:
    """Accept senders holding a credential of `credential_type` from `issuer`.

    credential_type is kept in its wire form (uppercase hex) because that is
    what the ledger compares; `label` is the readable form when it decodes.
    """

    issuer: str
    credential_type: str

    @property
    def label(self) -> str | None:
        try:
            return decode_text(self.credential_type)
        except EncodingError:
            return None


@dataclass(frozen=True, slots=True)
class PreauthResult:
    """Outcome of a DepositPreauth submission.

    address is set for address-rules, None for credential-rules.
    """

    hash: str
    status: str
    address: str | None = None
