"""
Pool registry for RelaySwap.

Pools are keyed by the ORDERED asset pair: ``("X", "Y")`` and ``("Y", "X")``
are two unrelated pools with independent reserves.  Records are immutable
``Pool`` values; a mutation is a ``update`` with a replacement record.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, replace

from relayswap_core.errors import PoolExists, PoolNotFound


@dataclass(frozen=True)
class Pool:
    """Reserves and outstanding LP shares for one ordered asset pair."""
    asset_a: str
    asset_b: str
    reserve_a: int = 0
    reserve_b: int = 0
    total_shares: int = 0

    @property
    def invariant(self) -> int:
        """Return the constant product k = reserve_a * reserve_b."""
        return self.reserve_a * self.reserve_b

    @property
    def pool_id(self) -> str:
        raw = f"{self.asset_a}/{self.asset_b}"
        return hashlib.sha256(raw.encode()).hexdigest()[:40]

    def pair_key(self) -> tuple[str, str]:
        return self.asset_a, self.asset_b

    def with_changes(self, **changes: int) -> Pool:
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "pool_id": self.pool_id,
            "asset_a": self.asset_a,
            "asset_b": self.asset_b,
            "reserve_a": self.reserve_a,
            "reserve_b": self.reserve_b,
            "total_shares": self.total_shares,
        }


class PoolRegistry:
    """Exact-key storage of pools by ordered asset pair."""

    def __init__(self):
        self._pools: dict[tuple[str, str], Pool] = {}

    def __len__(self) -> int:
        return len(self._pools)

    def __contains__(self, pair: tuple[str, str]) -> bool:
        return pair in self._pools

    def lookup(self, asset_a: str, asset_b: str) -> Pool | None:
        return self._pools.get((asset_a, asset_b))

    def create(self, asset_a: str, asset_b: str, reserve_a: int,
               reserve_b: int, total_shares: int) -> Pool:
        key = (asset_a, asset_b)
        if key in self._pools:
            raise PoolExists(f"Pool {asset_a}/{asset_b} already exists")
        pool = Pool(asset_a, asset_b, reserve_a, reserve_b, total_shares)
        self._pools[key] = pool
        return pool

    def update(self, asset_a: str, asset_b: str, new_pool: Pool) -> Pool:
        key = (asset_a, asset_b)
        if key not in self._pools:
            raise PoolNotFound(f"No pool for {asset_a}/{asset_b}")
        if new_pool.pair_key() != key:
            raise ValueError("Replacement pool must keep the same asset pair")
        self._pools[key] = new_pool
        return new_pool

    def pools(self) -> list[Pool]:
        return list(self._pools.values())

    def total_shares(self) -> int:
        return sum(p.total_shares for p in self._pools.values())

    # ---- journaling ----

    def snapshot(self) -> dict[tuple[str, str], Pool]:
        # Pool records are frozen, a shallow copy is a full snapshot.
        return dict(self._pools)

    def restore(self, state: dict[tuple[str, str], Pool]) -> None:
        self._pools = dict(state)
