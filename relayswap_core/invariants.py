"""
Post-operation invariant checks for RelaySwap.

  - Reserves and share counts are never negative
  - A swap never lowers the touched pool's constant product
  - Shares outstanding across all pools equal the sum of LP balances

The exchange captures a snapshot before each operation and verifies
afterwards.  If any invariant fails the operation is rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ExchangeSnapshot:
    """Pool products and share totals before an operation."""
    products: dict[tuple[str, str], int] = field(default_factory=dict)
    total_pool_shares: int = 0
    total_lp_balances: int = 0


class InvariantChecker:
    """
    Captures a pre-operation snapshot of the exchange and validates
    invariants after the operation is applied.
    """

    def __init__(self):
        self._snapshot: ExchangeSnapshot | None = None

    def capture(self, registry, ledger) -> None:
        snap = ExchangeSnapshot(
            total_pool_shares=registry.total_shares(),
            total_lp_balances=ledger.total(),
        )
        for pool in registry.pools():
            snap.products[pool.pair_key()] = pool.invariant
        self._snapshot = snap

    def verify(self, registry, ledger,
               swapped_pair: tuple[str, str] | None = None) -> tuple[bool, str]:
        """
        Verify all invariants against the current state.
        Returns (passed, error_message).
        """
        if self._snapshot is None:
            return True, ""

        for pool in registry.pools():
            if pool.reserve_a < 0 or pool.reserve_b < 0 or pool.total_shares < 0:
                return False, f"Negative pool field in {pool.asset_a}/{pool.asset_b}"

        for account, shares in ledger.holders().items():
            if shares < 0:
                return False, f"Negative LP balance for {account}"

        if swapped_pair is not None:
            pool = registry.lookup(*swapped_pair)
            before = self._snapshot.products.get(swapped_pair)
            if pool is not None and before is not None and pool.invariant < before:
                return False, (
                    f"Constant product decreased for {swapped_pair[0]}/{swapped_pair[1]}: "
                    f"{before} -> {pool.invariant}"
                )

        pool_shares = registry.total_shares()
        lp_shares = ledger.total()
        if pool_shares != lp_shares:
            return False, f"Share mismatch: pools={pool_shares} balances={lp_shares}"

        return True, ""

    def reset(self) -> None:
        self._snapshot = None
