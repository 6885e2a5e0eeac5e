from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated API caller extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system.

        user_id:  subject from the JWT
        roles:    platform roles; only "admin" is checked
        accounts: names of configured signing accounts this caller may
                  submit transactions as ("accounts" claim)

    Admins may act as any configured account.
    """

    user_id: str
    roles: frozenset[str]
    accounts: frozenset[str] = frozenset()

    def is_admin(self) -> bool:
        return "admin" in self.roles

    def can_act_as(self, account_name: str) -> bool:
        return self.is_admin() or account_name in self.accounts
