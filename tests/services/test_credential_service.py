from __future__ import annotations

import asyncio
import logging

import pytest
from prometheus_client import REGISTRY

from credgate.core.errors import (
    AcceptanceFailed,
    AmbiguousTarget,
    InvalidDate,
    IssuanceFailed,
    NotFoundError,
    RevocationFailed,
)
from credgate.models.credential import IssueOptions, Memo
from credgate.services.codec import encode_text, to_ledger_time

EXAM = "XRPLCommunityExamCertification"


def _sample(name: str, labels: dict) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels)
    return value if value is not None else 0.0


# ---- issue ----


def test_issue_creates_pending_credential(credentials, ledger, issuer, subject) -> None:
    tx_hash = asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    assert tx_hash

    (cred,) = asyncio.run(credentials.list(issuer.address))
    assert cred.issuer == issuer.address
    assert cred.subject == subject.address
    assert cred.credential_type == EXAM
    assert cred.accepted is False
    assert cred.ledger_id

    tx, code = ledger.transactions[-1]
    assert code == "tesSUCCESS"
    assert tx["TransactionType"] == "CredentialCreate"
    assert tx["CredentialType"] == encode_text(EXAM)


def test_issue_with_options(credentials, ledger, issuer, subject) -> None:
    options = IssueOptions(
        expiration="2026-12-31T00:00:00Z",
        uri="https://example.com/exam/1",
        memo=Memo(data="score: 92", type="text/plain"),
    )
    asyncio.run(credentials.issue(issuer, subject.address, EXAM, options))

    tx, _ = ledger.transactions[-1]
    assert tx["Expiration"] == to_ledger_time("2026-12-31T00:00:00Z")
    assert tx["URI"] == encode_text("https://example.com/exam/1")
    assert tx["Memos"][0]["Memo"]["MemoData"] == encode_text("score: 92")

    (cred,) = asyncio.run(credentials.list(subject.address))
    assert cred.uri == "https://example.com/exam/1"
    assert cred.memo == Memo(data="score: 92", type="text/plain")
    assert cred.expiration is not None
    assert cred.expiration.year == 2026


def test_issue_duplicate_fails_with_ledger_code(credentials, issuer, subject) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    with pytest.raises(IssuanceFailed) as exc_info:
        asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    assert exc_info.value.code == "tecDUPLICATE"
    assert exc_info.value.retryable is False


def test_issue_overlong_type_rejected_by_ledger(credentials, issuer, subject) -> None:
    with pytest.raises(IssuanceFailed) as exc_info:
        asyncio.run(credentials.issue(issuer, subject.address, "x" * 65))
    assert exc_info.value.code == "temMALFORMED"


def test_issue_bad_expiration_submits_nothing(credentials, ledger, issuer, subject) -> None:
    with pytest.raises(InvalidDate):
        asyncio.run(
            credentials.issue(
                issuer, subject.address, EXAM, IssueOptions(expiration="next tuesday")
            )
        )
    assert ledger.transactions == []


def test_issue_past_expiration_rejected(credentials, issuer, subject) -> None:
    with pytest.raises(IssuanceFailed) as exc_info:
        asyncio.run(
            credentials.issue(
                issuer, subject.address, EXAM, IssueOptions(expiration="2020-01-01")
            )
        )
    assert exc_info.value.code == "tecEXPIRED"


def test_self_issued_credential_is_accepted(credentials, issuer) -> None:
    asyncio.run(credentials.issue(issuer, issuer.address, EXAM))
    (cred,) = asyncio.run(credentials.list(issuer.address))
    assert cred.accepted is True


# ---- accept ----


def test_accept_sets_accepted_flag(credentials, issuer, subject) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.accept(subject, issuer.address, EXAM))
    cred = asyncio.run(credentials.get(issuer.address, subject.address, EXAM))
    assert cred.accepted is True


def test_accept_twice_fails(credentials, issuer, subject) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.accept(subject, issuer.address, EXAM))
    with pytest.raises(AcceptanceFailed) as exc_info:
        asyncio.run(credentials.accept(subject, issuer.address, EXAM))
    assert exc_info.value.code == "tecDUPLICATE"


def test_accept_without_credential_fails(credentials, issuer, subject) -> None:
    with pytest.raises(AcceptanceFailed) as exc_info:
        asyncio.run(credentials.accept(subject, issuer.address, EXAM))
    assert exc_info.value.code == "tecNO_ENTRY"


def test_accept_expired_credential_fails(credentials, clock, issuer, subject) -> None:
    asyncio.run(
        credentials.issue(
            issuer,
            subject.address,
            EXAM,
            IssueOptions(expiration="2026-03-02T00:00:00Z"),
        )
    )
    clock.advance(days=2)
    with pytest.raises(AcceptanceFailed) as exc_info:
        asyncio.run(credentials.accept(subject, issuer.address, EXAM))
    assert exc_info.value.code == "tecEXPIRED"


# ---- list / get / find_holders ----


def test_list_empty_for_unknown_account(credentials) -> None:
    assert asyncio.run(credentials.list("rNobody")) == []


def test_list_filters_by_subject(credentials, issuer, subject, verity) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.issue(issuer, verity.address, EXAM))
    listed = asyncio.run(credentials.list(issuer.address, subject=verity.address))
    assert [c.subject for c in listed] == [verity.address]


def test_list_skips_undecodable_entry(
    credentials, ledger, issuer, subject, caplog: pytest.LogCaptureFixture
) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    ledger.put_raw_credential(
        {
            "LedgerEntryType": "Credential",
            "Issuer": issuer.address,
            "Subject": subject.address,
            "CredentialType": "NOT-HEX",
            "Flags": 0,
            "index": "BAD",
        }
    )
    before = _sample("ledger_decode_failures_total", {"object_type": "credential"})

    with caplog.at_level(logging.WARNING):
        listed = asyncio.run(credentials.list(issuer.address))

    assert [c.credential_type for c in listed] == [EXAM]
    after = _sample("ledger_decode_failures_total", {"object_type": "credential"})
    assert after - before == 1
    assert any("BAD" in m for m in caplog.messages)


def test_list_skips_entry_with_out_of_range_expiration(
    credentials, ledger, issuer, subject
) -> None:
    ledger.put_raw_credential(
        {
            "Issuer": issuer.address,
            "Subject": subject.address,
            "CredentialType": encode_text(EXAM),
            "Flags": 0,
            "Expiration": -5,
        }
    )
    assert asyncio.run(credentials.list(issuer.address)) == []


def test_get_missing_raises_not_found(credentials, issuer, subject) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(credentials.get(issuer.address, subject.address, EXAM))


def test_get_matches_type_exactly(credentials, issuer, subject) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, "KYC"))
    with pytest.raises(NotFoundError):
        asyncio.run(credentials.get(issuer.address, subject.address, EXAM))


def test_find_holders(credentials, issuer, subject, verity, outsider) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.issue(issuer, verity.address, EXAM))
    asyncio.run(credentials.issue(issuer, outsider.address, "KYC"))
    # Issued to the issuer by someone else: not an issued credential.
    asyncio.run(credentials.issue(outsider, issuer.address, EXAM))

    holders = asyncio.run(credentials.find_holders(issuer.address, EXAM))
    assert sorted(holders) == sorted([subject.address, verity.address])


# ---- revoke ----


def test_revoke_by_issuer_with_subject(credentials, issuer, subject) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.revoke(issuer, EXAM, subject=subject.address))
    assert asyncio.run(credentials.list(issuer.address)) == []


def test_revoke_by_subject_with_issuer(credentials, issuer, subject) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.accept(subject, issuer.address, EXAM))
    asyncio.run(credentials.revoke(subject, EXAM, issuer=issuer.address))
    assert asyncio.run(credentials.list(subject.address)) == []


def test_revoke_resolves_single_candidate(credentials, ledger, issuer, subject) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.revoke(issuer, EXAM))
    tx, code = ledger.transactions[-1]
    assert code == "tesSUCCESS"
    assert tx["Subject"] == subject.address


def test_revoke_ambiguous_when_two_subjects(
    credentials, ledger, issuer, subject, verity
) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.issue(issuer, verity.address, EXAM))
    asyncio.run(credentials.accept(subject, issuer.address, EXAM))
    asyncio.run(credentials.accept(verity, issuer.address, EXAM))
    submitted = len(ledger.transactions)

    with pytest.raises(AmbiguousTarget) as exc_info:
        asyncio.run(credentials.revoke(issuer, EXAM))

    assert sorted(exc_info.value.candidates) == sorted([subject.address, verity.address])
    assert len(ledger.transactions) == submitted
    assert len(asyncio.run(credentials.list(issuer.address))) == 2


def test_revoke_ambiguous_when_no_candidate(credentials, issuer) -> None:
    with pytest.raises(AmbiguousTarget) as exc_info:
        asyncio.run(credentials.revoke(issuer, EXAM))
    assert exc_info.value.candidates == []


def test_revoke_missing_credential_fails(credentials, issuer, subject) -> None:
    with pytest.raises(RevocationFailed) as exc_info:
        asyncio.run(credentials.revoke(issuer, EXAM, subject=subject.address))
    assert exc_info.value.code == "tecNO_ENTRY"


def test_revoke_by_third_party_rejected(
    credentials, issuer, subject, outsider
) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    with pytest.raises(RevocationFailed) as exc_info:
        asyncio.run(
            credentials.revoke(
                outsider, EXAM, subject=subject.address, issuer=issuer.address
            )
        )
    assert exc_info.value.code == "tecNO_PERMISSION"


def test_reissue_after_revoke(credentials, issuer, subject) -> None:
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.revoke(issuer, EXAM, subject=subject.address))
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    (cred,) = asyncio.run(credentials.list(issuer.address))
    assert cred.accepted is False
