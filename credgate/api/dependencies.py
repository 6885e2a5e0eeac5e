from __future__ import annotations

import logging
from typing import Annotated, NoReturn

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from credgate.core.config import SETTINGS
from credgate.core.errors import (
    AmbiguousTarget,
    CredGateError,
    EncodingError,
    LedgerUnavailableError,
    NotFoundError,
    RejectionError,
)
from credgate.ledger.connection import ledger_client
from credgate.models.account import LedgerAccount
from credgate.models.principal import Principal
from credgate.repos.account_repo import InMemoryAccountRepo, load_accounts
from credgate.services import token_service
from credgate.services.authorization_service import AuthorizationService
from credgate.services.credential_service import CredentialManager
from credgate.services.payment_service import PaymentService
from credgate.services.preauth_service import PreauthorizationManager

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Wiring: one instance of each manager, sharing the configured ledger.
# ---------------------------------------------------------------------------

account_repo = InMemoryAccountRepo()
load_accounts(account_repo, SETTINGS.accounts)

credential_manager = CredentialManager(ledger_client)
preauth_manager = PreauthorizationManager(ledger_client)
authorization_service = AuthorizationService(credential_manager, preauth_manager)
payment_service = PaymentService(ledger_client, authorization_service)

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Authentication / authorization
# ---------------------------------------------------------------------------


def require_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
        accounts=frozenset(claims.get("accounts", [])),
    )
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


def require_account(
    account: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> LedgerAccount:
    """Resolve the {account} path parameter to a signing account.

    404 when no account of that name is configured, 403 when the caller
    may not sign as it.
    """
    resolved = account_repo.get(account)
    if resolved is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown account {account!r}",
        )
    if not principal.can_act_as(account):
        logger.warning(
            "Access denied: user=%s may not act as account=%s",
            principal.user_id,
            account,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not permitted to act as this account",
        )
    return resolved


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def raise_http(e: CredGateError) -> NoReturn:
    """Translate a core error into the matching HTTPException."""
    if isinstance(e, EncodingError):
        raise HTTPException(status_code=422, detail=str(e)) from None
    if isinstance(e, AmbiguousTarget):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "candidates": e.candidates},
        ) from None
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None
    if isinstance(e, RejectionError):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "code": e.code, "retryable": e.retryable},
        ) from None
    if isinstance(e, LedgerUnavailableError):
        logger.error("Ledger unavailable: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ledger unavailable",
        ) from None
    raise e
