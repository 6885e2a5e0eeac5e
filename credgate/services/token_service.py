"""JWT access token validation (ES256).

credgate does not log anyone in; an upstream identity provider issues the
tokens and this service only verifies them.  Production deployments set
JWT_PUBLIC_KEY to the provider's PEM public key.  Without it (dev/test)
an ephemeral key pair is generated on import so create_access_token()
can mint tokens locally.

Claims used:
  sub       caller id
  roles     ["admin"] may act as any configured account
  accounts  configured account names the caller may sign as
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

_private_key: ec.EllipticCurvePrivateKey | None = ec.generate_private_key(
    ec.SECP256R1()
)
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "credgate"
AUDIENCE = "credgate"
ACCESS_TOKEN_TTL_MIN = 15


def use_public_key(pem: str) -> None:
    """Verify tokens against an external key; local minting is disabled."""
    global _private_key, _public_key
    key = serialization.load_pem_public_key(pem.encode())
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError("JWT_PUBLIC_KEY must be an EC (P-256) public key")
    _public_key = key
    _private_key = None


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    accounts: list[str] | None = None,
) -> str:
    if _private_key is None:
        raise RuntimeError("tokens are issued externally when JWT_PUBLIC_KEY is set")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or [],
        "accounts": accounts or [],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    The algorithm is pinned to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat"]},
    )
