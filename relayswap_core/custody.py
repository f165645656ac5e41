"""
Pool custody: routes value between accounts and the custodial account
through each asset's transfer capability.
"""

from __future__ import annotations

import logging
from typing import Optional

from relayswap_core.errors import NotAuthorized, TransferFailed, UnknownAsset
from relayswap_core.token import Journaled, TokenLedger

logger = logging.getLogger("relayswap.custody")

DEFAULT_CUSTODY_ACCOUNT = "relayswap-custody"
REFUND_MEMO = b"rollback-refund"


class AssetCustody:
    """Registered assets plus the single account that holds pool reserves."""

    def __init__(self, custody_account: str = DEFAULT_CUSTODY_ACCOUNT):
        self.custody_account = custody_account
        self._assets: dict[str, TokenLedger] = {}
        # Completed transfers on tokens that cannot snapshot themselves.
        self._journal: list[tuple[str, int, str, str]] = []

    def register(self, token: TokenLedger) -> None:
        if token.asset_id in self._assets:
            raise ValueError(f"Asset {token.asset_id} already registered")
        self._assets[token.asset_id] = token
        logger.debug("Registered asset %s (%s)", token.asset_id, token.symbol)

    def get(self, asset_id: str) -> TokenLedger:
        token = self._assets.get(asset_id)
        if token is None:
            raise UnknownAsset(f"Asset {asset_id} is not registered")
        return token

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._assets

    def assets(self) -> list[TokenLedger]:
        return list(self._assets.values())

    def require_not_custody(self, account: str) -> None:
        if account == self.custody_account:
            raise NotAuthorized("The custody account cannot act as a caller")

    def pull(self, asset_id: str, account: str, amount: int,
             memo: Optional[bytes] = None) -> None:
        """Move *amount* of *asset_id* from *account* into custody."""
        self._transfer(asset_id, amount, account, self.custody_account, memo)

    def push(self, asset_id: str, account: str, amount: int,
             memo: Optional[bytes] = None) -> None:
        """Move *amount* of *asset_id* from custody to *account*."""
        self._transfer(asset_id, amount, self.custody_account, account, memo)

    def _transfer(self, asset_id: str, amount: int, sender: str,
                  recipient: str, memo: Optional[bytes]) -> None:
        token = self.get(asset_id)
        ok, msg = token.transfer(amount, sender, recipient, memo)
        if not ok:
            raise TransferFailed(
                f"{asset_id} transfer of {amount} from {sender} to {recipient} failed: {msg}"
            )
        if not isinstance(token, Journaled):
            self._journal.append((asset_id, amount, sender, recipient))

    # ---- journaling ----

    def snapshot(self) -> tuple[dict[str, object], int]:
        """
        Capture every journaled token plus a mark into the transfer journal.

        Tokens without ``snapshot``/``restore`` are rolled back by sending
        each transfer made after the mark back the other way.
        """
        states = {
            asset_id: token.snapshot()
            for asset_id, token in self._assets.items()
            if isinstance(token, Journaled)
        }
        return states, len(self._journal)

    def restore(self, state: tuple[dict[str, object], int]) -> None:
        states, mark = state
        for asset_id, token_state in states.items():
            self._assets[asset_id].restore(token_state)

        failures = []
        for asset_id, amount, sender, recipient in reversed(self._journal[mark:]):
            ok, msg = self._assets[asset_id].transfer(amount, recipient, sender, REFUND_MEMO)
            if not ok:
                logger.error(
                    "Refund of %d %s from %s to %s failed: %s",
                    amount, asset_id, recipient, sender, msg,
                )
                failures.append(f"{amount} {asset_id} to {sender}")
        del self._journal[mark:]
        if failures:
            raise TransferFailed("Rollback could not refund " + ", ".join(failures))

    def commit(self, state: tuple[dict[str, object], int]) -> None:
        _, mark = state
        # Only the outermost commit settles the journal.
        if mark == 0:
            self._journal.clear()
