"""Error taxonomy for credential-gate.

Every failure the core can raise is one of these.  Callers branch on the
CLASS, never on message text:

  EncodingError           malformed hex / date input.  Caller-fixable,
                          never worth retrying.
  RejectionError(code)    the ledger refused a submitted transaction.
                          The ledger's result code is carried verbatim.
  AmbiguousTarget         revoke-by-type found zero or several candidates.
  NotFoundError           an exactly-one lookup matched nothing.
  LedgerUnavailableError  transport / protocol failure talking to the ledger.

A DENIED authorization is not an error at all: the orchestrator returns a
DENY decision, and a payment refused with tecNO_PERMISSION comes back as a
normal PaymentResult.  Only system faults are raised.
"""

from __future__ import annotations

# Result codes that mean "the submission lost a race or was not applied
# yet", as opposed to "the ledger looked at it and said no".  A fresh
# submission (new sequence number) may succeed.
_RETRYABLE_CODES = frozenset({"tefPAST_SEQ", "tefMAX_LEDGER", "tefALREADY"})
_RETRYABLE_PREFIXES = ("ter", "tel")


class CredGateError(Exception):
    """Base class for all credential-gate errors."""


class EncodingError(CredGateError, ValueError):
    pass


class DecodeError(EncodingError):
    pass


class InvalidDate(EncodingError):
    pass


class RejectionError(CredGateError):
    """The ledger returned something other than tesSUCCESS."""

    action = "transaction"

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"{self.action} rejected by ledger: {code}")

    @property
    def retryable(self) -> bool:
        return self.code in _RETRYABLE_CODES or self.code.startswith(
            _RETRYABLE_PREFIXES
        )


class IssuanceFailed(RejectionError):
    action = "credential issuance"


class AcceptanceFailed(RejectionError):
    action = "credential acceptance"


class RevocationFailed(RejectionError):
    action = "credential revocation"


class PreauthFailed(RejectionError):
    action = "deposit preauthorization"


class AccountSetFailed(RejectionError):
    action = "account flag change"


class PaymentFailed(RejectionError):
    action = "payment"


class AmbiguousTarget(CredGateError):
    def __init__(self, credential_type: str, candidates: list[str]) -> None:
        self.credential_type = credential_type
        self.candidates = candidates
        if candidates:
            detail = f"{len(candidates)} subjects hold it: {', '.join(candidates)}"
        else:
            detail = "no issued credential of that type"
        super().__init__(
            f"cannot resolve revoke target for {credential_type!r}: {detail}"
        )


class NotFoundError(CredGateError, LookupError):
    pass


class LedgerUnavailableError(CredGateError):
    pass
