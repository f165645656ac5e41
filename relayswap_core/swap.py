"""
Constant-product swap engine.

Formula (30 bps fee, retained in the pool):

    amount_out = (in * 9970 * reserve_out) / (reserve_in * 10000 + in * 9970)
"""

from __future__ import annotations

from relayswap_core import safe_math
from relayswap_core.custody import AssetCustody
from relayswap_core.errors import (
    IdenticalAssets,
    InsufficientLiquidity,
    PoolNotFound,
    Slippage,
    ZeroAmount,
)
from relayswap_core.registry import PoolRegistry

FEE_BPS = 30
BPS_DENOMINATOR = 10_000
SWAP_MEMO = b"swap"


def quote(reserve_in: int, reserve_out: int, amount_in: int) -> int:
    """Output amount for *amount_in* against the given reserves."""
    if amount_in == 0 or reserve_in == 0 or reserve_out == 0:
        return 0
    amount_in_with_fee = safe_math.mul(amount_in, BPS_DENOMINATOR - FEE_BPS)
    numerator = safe_math.mul(amount_in_with_fee, reserve_out)
    denominator = safe_math.add(
        safe_math.mul(reserve_in, BPS_DENOMINATOR), amount_in_with_fee,
    )
    return safe_math.div(numerator, denominator)


class SwapEngine:
    """Applies swaps to pools on behalf of an already-authorized account."""

    def __init__(self, registry: PoolRegistry, custody: AssetCustody):
        self.registry = registry
        self.custody = custody

    def get_amount_out(self, asset_in: str, asset_out: str, amount_in: int) -> int:
        pool = self.registry.lookup(asset_in, asset_out)
        if pool is None:
            raise PoolNotFound(f"No pool for {asset_in}/{asset_out}")
        return quote(pool.reserve_a, pool.reserve_b, safe_math.check_u128(amount_in, "amount_in"))

    def execute_swap(self, asset_in: str, asset_out: str, amount_in: int,
                     min_amount_out: int,
                     authorized_account: str) -> tuple[int, int]:
        """
        Sell *amount_in* of *asset_in* for *asset_out* through the
        ``(asset_in, asset_out)`` pool.  Returns (amount_in, amount_out).
        """
        safe_math.check_u128(amount_in, "amount_in")
        safe_math.check_u128(min_amount_out, "min_amount_out")
        pool = self.registry.lookup(asset_in, asset_out)
        if pool is None:
            raise PoolNotFound(f"No pool for {asset_in}/{asset_out}")
        if asset_in == asset_out:
            raise IdenticalAssets(f"Cannot swap {asset_in} for itself")
        if amount_in == 0:
            raise ZeroAmount("Swap amount must be positive")

        reserve_in, reserve_out = pool.reserve_a, pool.reserve_b
        amount_out = quote(reserve_in, reserve_out, amount_in)
        if amount_out < min_amount_out:
            raise Slippage(f"Output {amount_out} below minimum {min_amount_out}")
        # Strict: draining a reserve completely is never allowed.
        if not (amount_in < reserve_in and amount_out < reserve_out):
            raise InsufficientLiquidity(
                f"Swap {amount_in} -> {amount_out} exceeds reserves ({reserve_in}, {reserve_out})"
            )

        self.custody.pull(asset_in, authorized_account, amount_in, SWAP_MEMO)
        self.registry.update(asset_in, asset_out, pool.with_changes(
            reserve_a=safe_math.add(reserve_in, amount_in),
            reserve_b=safe_math.sub(reserve_out, amount_out),
        ))
        self.custody.push(asset_out, authorized_account, amount_out, SWAP_MEMO)
        return amount_in, amount_out
