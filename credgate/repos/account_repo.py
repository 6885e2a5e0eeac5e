from __future__ import annotations

from typing import Protocol

from xrpl.wallet import Wallet

from credgate.models.account import LedgerAccount


class AccountRepo(Protocol):
    def get(self, name: str) -> LedgerAccount | None: ...
    def add(self, account: LedgerAccount) -> None: ...
    def list_names(self) -> list[str]: ...


class InMemoryAccountRepo:
    """Signing accounts known to this process, keyed by configuration name."""

    def __init__(self) -> None:
        self._by_name: dict[str, LedgerAccount] = {}

    def get(self, name: str) -> LedgerAccount | None:
        return self._by_name.get(name)

    def add(self, account: LedgerAccount) -> None:
        if account.name in self._by_name:
            raise ValueError(f"account {account.name!r} already exists")
        self._by_name[account.name] = account

    def list_names(self) -> list[str]:
        return sorted(self._by_name)

    def clear(self) -> None:
        self._by_name.clear()


def account_from_seed(name: str, seed: str) -> LedgerAccount:
    """Derive the classic address for a seed."""
    try:
        wallet = Wallet.from_seed(seed)
    except Exception:
        # The library's message may echo the seed.
        raise ValueError(f"LEDGER_ACCOUNTS has an invalid seed for {name!r}") from None
    return LedgerAccount(name=name, address=wallet.classic_address, seed=seed)


def load_accounts(repo: AccountRepo, seeds: dict[str, str]) -> None:
    for name, seed in seeds.items():
        repo.add(account_from_seed(name, seed))
