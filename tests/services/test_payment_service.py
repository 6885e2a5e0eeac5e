from __future__ import annotations

import asyncio

import pytest

from credgate.core.errors import EncodingError, PaymentFailed
from credgate.services.codec import encode_text
from credgate.services.payment_service import xrp_to_drops

EXAM = "XRPLCommunityExamCertification"


def _restrict(preauth, verity, issuer) -> None:
    asyncio.run(preauth.ensure_deposit_auth_enabled(verity))
    asyncio.run(
        preauth.authorize_credential_type(verity, issuer.address, encode_text(EXAM))
    )


# ---- xrp_to_drops ----


@pytest.mark.parametrize(
    ("xrp", "drops"),
    [("1", "1000000"), ("1.0", "1000000"), ("0.000001", "1"), ("25.5", "25500000")],
)
def test_xrp_to_drops(xrp: str, drops: str) -> None:
    assert xrp_to_drops(xrp) == drops


@pytest.mark.parametrize("bad", ["0", "-1", "0.0000001", "abc", "NaN", "Infinity", ""])
def test_xrp_to_drops_rejects(bad: str) -> None:
    with pytest.raises(EncodingError):
        xrp_to_drops(bad)


# ---- send ----


def test_payment_delivered_when_unrestricted(payments, ledger, subject, verity) -> None:
    result = asyncio.run(payments.send(subject, verity.address, "1000000"))
    assert result.delivered is True
    assert result.denied is False
    assert result.result_code == "tesSUCCESS"
    tx, _ = ledger.transactions[-1]
    assert "CredentialIDs" not in tx


def test_payment_attaches_matching_credential(
    payments, preauth, credentials, ledger, verity, issuer, subject
) -> None:
    _restrict(preauth, verity, issuer)
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.accept(subject, issuer.address, EXAM))
    cred = asyncio.run(credentials.get(issuer.address, subject.address, EXAM))

    result = asyncio.run(payments.send(subject, verity.address, "1000000"))

    assert result.delivered is True
    assert result.credential_ids == [cred.ledger_id]
    tx, _ = ledger.transactions[-1]
    assert tx["CredentialIDs"] == [cred.ledger_id]


def test_payment_denied_is_a_result_not_an_error(
    payments, preauth, verity, issuer, outsider
) -> None:
    _restrict(preauth, verity, issuer)
    result = asyncio.run(payments.send(outsider, verity.address, "1000000"))
    assert result.delivered is False
    assert result.denied is True
    assert result.result_code == "tecNO_PERMISSION"


def test_payment_with_pending_credential_cited_is_denied(
    payments, preauth, credentials, verity, issuer, subject
) -> None:
    _restrict(preauth, verity, issuer)
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    (cred,) = asyncio.run(credentials.list(subject.address))

    result = asyncio.run(
        payments.send(subject, verity.address, "1000000", credential_ids=[cred.ledger_id])
    )
    assert result.denied is True
    assert result.result_code == "tecBAD_CREDENTIALS"


def test_explicit_empty_credential_ids_cites_nothing(
    payments, preauth, credentials, verity, issuer, subject
) -> None:
    _restrict(preauth, verity, issuer)
    asyncio.run(credentials.issue(issuer, subject.address, EXAM))
    asyncio.run(credentials.accept(subject, issuer.address, EXAM))

    result = asyncio.run(
        payments.send(subject, verity.address, "1000000", credential_ids=[])
    )
    assert result.denied is True


def test_payment_other_rejection_raises(payments, subject, verity) -> None:
    with pytest.raises(PaymentFailed) as exc_info:
        asyncio.run(payments.send(subject, verity.address, "-5"))
    assert exc_info.value.code == "temBAD_AMOUNT"


def test_payment_to_self_is_rejected(payments, verity) -> None:
    with pytest.raises(PaymentFailed) as exc_info:
        asyncio.run(payments.send(verity, verity.address, "1000000"))
    assert exc_info.value.code == "temREDUNDANT"
