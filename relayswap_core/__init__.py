"""
RelaySwap - a constant-product AMM exchange with gasless delegated swaps.

Key features:
- Ordered-pair liquidity pools with proportional LP-share accounting
- Constant-product pricing with a 30 bps fee retained in the pool
- Meta-transactions authorized by recoverable secp256k1 signatures
- One-shot nonce replay protection per account
- All-or-nothing operations with post-operation invariant checks
"""

__version__ = "0.1.0"
__all__ = [
    "errors",
    "safe_math",
    "crypto_utils",
    "token",
    "custody",
    "registry",
    "lp_ledger",
    "liquidity",
    "swap",
    "meta_tx",
    "events",
    "invariants",
    "exchange",
    "relayer",
    "wallet",
    "config",
    "logging_config",
    "cli",
]
