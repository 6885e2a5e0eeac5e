from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from credgate.api.dependencies import account_repo
from credgate.ledger.connection import ledger_client
from credgate.ledger.memory import InMemoryLedger
from credgate.main import app
from credgate.models.account import LedgerAccount
from credgate.services import token_service
from credgate.services.authorization_service import AuthorizationService
from credgate.services.credential_service import CredentialManager
from credgate.services.payment_service import PaymentService
from credgate.services.preauth_service import PreauthorizationManager

# The in-memory ledger does not check address checksums; these only need
# to be distinct.
ISSUER = LedgerAccount("issuer", "rIssuerXXXXXXXXXXXXXXXXXXXXXXXXXX", "sIssuerSeed")
SUBJECT = LedgerAccount("subject", "rSubjectXXXXXXXXXXXXXXXXXXXXXXXXX", "sSubjectSeed")
VERITY = LedgerAccount("verity", "rVerityXXXXXXXXXXXXXXXXXXXXXXXXXX", "sVeritySeed")
OUTSIDER = LedgerAccount("outsider", "rOutsiderXXXXXXXXXXXXXXXXXXXXXXXX", "sOutsiderSeed")

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_ledger() -> None:
    """Empty the app's in-memory ledger between tests."""
    assert isinstance(ledger_client, InMemoryLedger)
    ledger_client.reset()
    ledger_client.set_clock(lambda: datetime.now(UTC))


@pytest.fixture(autouse=True)
def reset_accounts() -> None:
    """Replace configured accounts with the four test accounts."""
    account_repo.clear()
    for account in (ISSUER, SUBJECT, VERITY, OUTSIDER):
        account_repo.add(account)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def issuer() -> LedgerAccount:
    return ISSUER


@pytest.fixture
def subject() -> LedgerAccount:
    return SUBJECT


@pytest.fixture
def verity() -> LedgerAccount:
    return VERITY


@pytest.fixture
def outsider() -> LedgerAccount:
    return OUTSIDER


# ---------------------------------------------------------------------------
# Core objects for service-level tests (fresh ledger, fixed clock)
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(clock: FakeClock) -> InMemoryLedger:
    return InMemoryLedger(clock=clock)


@pytest.fixture
def credentials(ledger: InMemoryLedger) -> CredentialManager:
    return CredentialManager(ledger)


@pytest.fixture
def preauth(ledger: InMemoryLedger) -> PreauthorizationManager:
    return PreauthorizationManager(ledger)


@pytest.fixture
def authorization(
    credentials: CredentialManager,
    preauth: PreauthorizationManager,
    clock: FakeClock,
) -> AuthorizationService:
    return AuthorizationService(credentials, preauth, clock=clock)


@pytest.fixture
def payments(
    ledger: InMemoryLedger, authorization: AuthorizationService
) -> PaymentService:
    return PaymentService(ledger, authorization)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
    accounts: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(
        sub=username, roles=roles, accounts=accounts
    )


@pytest.fixture
def token() -> str:
    """Token with no roles and no accounts: may read, may not sign."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    return mint_token(username="test-admin", roles=["admin"])


@pytest.fixture
def auth() -> dict[str, str]:
    """Authorization header for an admin caller."""
    return {"Authorization": f"Bearer {mint_token('test-admin', roles=['admin'])}"}


@pytest.fixture
def mint():
    """The mint_token helper, for tests that need specific claims."""
    return mint_token
