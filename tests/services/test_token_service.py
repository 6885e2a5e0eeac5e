from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from credgate.services import token_service


def test_round_trip_carries_roles_and_accounts() -> None:
    token = token_service.create_access_token(
        sub="ops", roles=["admin"], accounts=["issuer"]
    )
    claims = token_service.decode_access_token(token)
    assert claims["sub"] == "ops"
    assert claims["roles"] == ["admin"]
    assert claims["accounts"] == ["issuer"]
    assert claims["iss"] == claims["aud"] == "credgate"


def test_expired_token_rejected() -> None:
    now = datetime.now(UTC)
    token = jwt.encode(
        {
            "sub": "ops",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "iat": now - timedelta(hours=1),
            "exp": now - timedelta(minutes=1),
        },
        token_service._private_key,
        algorithm="ES256",
    )
    with pytest.raises(jwt.ExpiredSignatureError):
        token_service.decode_access_token(token)


def test_wrong_audience_rejected() -> None:
    now = datetime.now(UTC)
    token = jwt.encode(
        {
            "sub": "ops",
            "iss": token_service.ISSUER,
            "aud": "someone-else",
            "iat": now,
            "exp": now + timedelta(minutes=5),
        },
        token_service._private_key,
        algorithm="ES256",
    )
    with pytest.raises(jwt.InvalidAudienceError):
        token_service.decode_access_token(token)


def test_token_signed_by_other_key_rejected() -> None:
    other = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(UTC)
    token = jwt.encode(
        {
            "sub": "ops",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "iat": now,
            "exp": now + timedelta(minutes=5),
        },
        other,
        algorithm="ES256",
    )
    with pytest.raises(jwt.InvalidSignatureError):
        token_service.decode_access_token(token)


def test_use_public_key_disables_minting(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(token_service, "_private_key", token_service._private_key)
    monkeypatch.setattr(token_service, "_public_key", token_service._public_key)

    external = ec.generate_private_key(ec.SECP256R1())
    pem = external.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    token_service.use_public_key(pem.decode())

    with pytest.raises(RuntimeError):
        token_service.create_access_token(sub="ops")

    now = datetime.now(UTC)
    token = jwt.encode(
        {
            "sub": "ops",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "iat": now,
            "exp": now + timedelta(minutes=5),
        },
        external,
        algorithm="ES256",
    )
    assert token_service.decode_access_token(token)["sub"] == "ops"


def test_use_public_key_rejects_rsa(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(token_service, "_private_key", token_service._private_key)
    monkeypatch.setattr(token_service, "_public_key", token_service._public_key)
    rsa_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = rsa_key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    with pytest.raises(ValueError, match="EC"):
        token_service.use_public_key(pem.decode())
