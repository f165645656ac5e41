"""
LP share ledger.

Balances are global per account, not scoped to a pool: shares minted in
two different pools add up to one number.  Withdrawing against a pool can
therefore burn shares that were earned in another one.
"""

from __future__ import annotations

from relayswap_core import safe_math
from relayswap_core.errors import InsufficientBalance


class LPLedger:
    """Account -> LP share count."""

    def __init__(self):
        self._balances: dict[str, int] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def credit(self, account: str, shares: int) -> int:
        new_balance = safe_math.add(self.balance_of(account), shares)
        self._balances[account] = new_balance
        return new_balance

    def debit(self, account: str, shares: int) -> int:
        held = self.balance_of(account)
        if held < shares:
            raise InsufficientBalance(
                f"{account} holds {held} LP shares, needs {shares}"
            )
        new_balance = held - shares
        if new_balance == 0:
            del self._balances[account]
        else:
            self._balances[account] = new_balance
        return new_balance

    def total(self) -> int:
        return sum(self._balances.values())

    def holders(self) -> dict[str, int]:
        return dict(self._balances)

    def snapshot(self) -> dict[str, int]:
        return dict(self._balances)

    def restore(self, state: dict[str, int]) -> None:
        self._balances = dict(state)
