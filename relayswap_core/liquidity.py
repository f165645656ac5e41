"""
Liquidity engine: add and remove liquidity against ordered-pair pools.

  - First deposit for a pair creates the pool and mints
    ``isqrt(desired_a * desired_b)`` shares (two-step approximation).
  - Later deposits are matched to the current reserve ratio, constrained
    by whichever side the caller under-supplied.
  - Withdrawals return a pro-rata slice of both reserves.
"""

from __future__ import annotations

from relayswap_core import safe_math
from relayswap_core.custody import AssetCustody
from relayswap_core.errors import (
    IdenticalAssets,
    InsufficientBalance,
    InsufficientLiquidity,
    PoolNotFound,
    Slippage,
    ZeroAmount,
)
from relayswap_core.lp_ledger import LPLedger
from relayswap_core.registry import Pool, PoolRegistry

ADD_MEMO = b"add-liquidity"
REMOVE_MEMO = b"remove-liquidity"


def optimal_amounts(pool: Pool, desired_a: int,
                    desired_b: int) -> tuple[int, int, int]:
    """
    Match a deposit to the pool ratio.
    Returns (final_a, final_b, minted_shares).
    """
    if pool.reserve_a == 0 or pool.reserve_b == 0:
        raise InsufficientLiquidity(
            f"Pool {pool.asset_a}/{pool.asset_b} has an empty reserve"
        )
    optimal_b = safe_math.div(safe_math.mul(desired_a, pool.reserve_b), pool.reserve_a)
    if optimal_b <= desired_b:
        final_a, final_b = desired_a, optimal_b
        minted = safe_math.div(safe_math.mul(final_a, pool.total_shares), pool.reserve_a)
    else:
        optimal_a = safe_math.div(safe_math.mul(desired_b, pool.reserve_a), pool.reserve_b)
        final_a, final_b = optimal_a, desired_b
        minted = safe_math.div(safe_math.mul(final_b, pool.total_shares), pool.reserve_b)
    return final_a, final_b, minted


class LiquidityEngine:
    """Mutates pools and LP balances for deposits and withdrawals."""

    def __init__(self, registry: PoolRegistry, ledger: LPLedger,
                 custody: AssetCustody):
        self.registry = registry
        self.ledger = ledger
        self.custody = custody

    def add_liquidity(self, asset_a: str, asset_b: str,
                      desired_a: int, desired_b: int,
                      min_a: int, min_b: int,
                      caller: str) -> tuple[int, int, int]:
        for name, value in (("desired_a", desired_a), ("desired_b", desired_b),
                            ("min_a", min_a), ("min_b", min_b)):
            safe_math.check_u128(value, name)
        if asset_a == asset_b:
            raise IdenticalAssets(f"Cannot pool {asset_a} against itself")
        if desired_a == 0 or desired_b == 0:
            raise ZeroAmount("Both desired amounts must be positive")

        pool = self.registry.lookup(asset_a, asset_b)
        if pool is None:
            minted = safe_math.isqrt(safe_math.mul(desired_a, desired_b))
            if minted == 0:
                raise InsufficientLiquidity("Initial deposit mints no shares")
            self.custody.pull(asset_a, caller, desired_a, ADD_MEMO)
            self.custody.pull(asset_b, caller, desired_b, ADD_MEMO)
            self.registry.create(asset_a, asset_b, desired_a, desired_b, minted)
            self.ledger.credit(caller, minted)
            return desired_a, desired_b, minted

        final_a, final_b, minted = optimal_amounts(pool, desired_a, desired_b)
        if final_a < min_a or final_b < min_b:
            raise Slippage(
                f"Deposit ({final_a}, {final_b}) below minimum ({min_a}, {min_b})"
            )
        updated = pool.with_changes(
            reserve_a=safe_math.add(pool.reserve_a, final_a),
            reserve_b=safe_math.add(pool.reserve_b, final_b),
            total_shares=safe_math.add(pool.total_shares, minted),
        )
        self.custody.pull(asset_a, caller, final_a, ADD_MEMO)
        self.custody.pull(asset_b, caller, final_b, ADD_MEMO)
        self.registry.update(asset_a, asset_b, updated)
        self.ledger.credit(caller, minted)
        return final_a, final_b, minted

    def remove_liquidity(self, asset_a: str, asset_b: str, shares: int,
                         min_a: int, min_b: int,
                         caller: str) -> tuple[int, int]:
        for name, value in (("shares", shares), ("min_a", min_a), ("min_b", min_b)):
            safe_math.check_u128(value, name)
        pool = self.registry.lookup(asset_a, asset_b)
        if pool is None:
            raise PoolNotFound(f"No pool for {asset_a}/{asset_b}")
        if shares == 0:
            raise ZeroAmount("Shares must be positive")
        # Balance is global, so the check does not prove the shares came from this pool.
        held = self.ledger.balance_of(caller)
        if held < shares:
            raise InsufficientBalance(f"{caller} holds {held} LP shares, needs {shares}")

        if pool.total_shares == 0:
            raise InsufficientLiquidity(f"Pool {asset_a}/{asset_b} has no shares outstanding")
        amount_a = safe_math.div(safe_math.mul(shares, pool.reserve_a), pool.total_shares)
        amount_b = safe_math.div(safe_math.mul(shares, pool.reserve_b), pool.total_shares)
        if amount_a < min_a or amount_b < min_b:
            raise Slippage(
                f"Withdrawal ({amount_a}, {amount_b}) below minimum ({min_a}, {min_b})"
            )
        updated = pool.with_changes(
            reserve_a=safe_math.sub(pool.reserve_a, amount_a),
            reserve_b=safe_math.sub(pool.reserve_b, amount_b),
            total_shares=safe_math.sub(pool.total_shares, shares),
        )
        self.ledger.debit(caller, shares)
        self.registry.update(asset_a, asset_b, updated)
        self.custody.push(asset_a, caller, amount_a, REMOVE_MEMO)
        self.custody.push(asset_b, caller, amount_b, REMOVE_MEMO)
        return amount_a, amount_b
