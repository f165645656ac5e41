"""
Token transfer capability for RelaySwap.

The engine never owns token balances; it moves value through a per-asset
``TokenLedger`` capability.  ``InMemoryToken`` is the bundled
implementation: a journaled balance map that supports snapshot/restore so
the exchange can roll a whole operation back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class TokenLedger(Protocol):
    """Minimal contract every tradable asset must satisfy."""
    asset_id: str
    name: str
    symbol: str
    decimals: int

    def transfer(self, amount: int, sender: str, recipient: str,
                 memo: Optional[bytes] = None) -> tuple[bool, str]:
        ...

    def balance_of(self, account: str) -> int:
        ...


@runtime_checkable
class Journaled(Protocol):
    """Ledgers that can be rolled back as part of an atomic operation."""

    def snapshot(self) -> Any:
        ...

    def restore(self, state: Any) -> None:
        ...


@dataclass
class TransferRecord:
    """One committed transfer, kept for auditing."""
    sender: str
    recipient: str
    amount: int
    memo: Optional[bytes] = None

    def to_dict(self) -> dict:
        return {
            "sender": self.sender,
            "recipient": self.recipient,
            "amount": self.amount,
            "memo": self.memo.hex() if self.memo else None,
        }


@dataclass
class InMemoryToken:
    """Fungible token with integer balances held in process memory."""
    asset_id: str
    name: str = ""
    symbol: str = ""
    decimals: int = 6
    balances: dict[str, int] = field(default_factory=dict)
    history: list[TransferRecord] = field(default_factory=list)
    total_supply: int = 0

    def __post_init__(self):
        if not self.name:
            self.name = self.asset_id
        if not self.symbol:
            self.symbol = self.asset_id.upper()

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def mint(self, account: str, amount: int) -> None:
        """Credit *amount* new units to *account*."""
        if amount <= 0:
            raise ValueError("Mint amount must be positive")
        self.balances[account] = self.balances.get(account, 0) + amount
        self.total_supply += amount

    def transfer(self, amount: int, sender: str, recipient: str,
                 memo: Optional[bytes] = None) -> tuple[bool, str]:
        if amount <= 0:
            return False, "Amount must be positive"
        if sender == recipient:
            return False, "Sender and recipient are the same"
        held = self.balances.get(sender, 0)
        if held < amount:
            return False, f"Insufficient {self.symbol} balance: {held} < {amount}"
        self.balances[sender] = held - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        self.history.append(TransferRecord(sender, recipient, amount, memo))
        return True, "Transferred"

    # ---- journaling ----

    def snapshot(self) -> tuple[dict[str, int], int, int]:
        return dict(self.balances), len(self.history), self.total_supply

    def restore(self, state: tuple[dict[str, int], int, int]) -> None:
        balances, history_len, total_supply = state
        self.balances = dict(balances)
        del self.history[history_len:]
        self.total_supply = total_supply

    def to_dict(self) -> dict:
        return {
            "asset_id": self.asset_id,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "holders": len([b for b in self.balances.values() if b > 0]),
        }
