"""
Shared pytest fixtures for the RelaySwap test suite.
"""

import hashlib

import pytest

from relayswap_core.exchange import Exchange
from relayswap_core.token import InMemoryToken
from relayswap_core.wallet import Wallet


def _fixed_key(label: str) -> bytes:
    return hashlib.sha256(f"relayswap-test-{label}".encode()).digest()


@pytest.fixture
def tokens():
    """Three registered-ready assets with generous balances for test accounts."""
    result = {}
    for asset_id in ("X", "Y", "Z"):
        token = InMemoryToken(asset_id=asset_id, decimals=6)
        for account in ("rAlice", "rBob"):
            token.mint(account, 1_000_000)
        result[asset_id] = token
    return result


@pytest.fixture
def exchange(tokens):
    """Empty exchange with X, Y and Z registered."""
    ex = Exchange(custody_account="rCustody")
    for token in tokens.values():
        ex.register_asset(token)
    return ex


@pytest.fixture
def seeded(exchange):
    """Exchange with Alice's X/Y pool at (1000, 4000)."""
    exchange.add_liquidity("X", "Y", 1000, 4000, 0, 0, "rAlice")
    return exchange


@pytest.fixture
def alice_wallet():
    """Deterministic signing wallet for Alice."""
    return Wallet(_fixed_key("alice"))


@pytest.fixture
def mallory_wallet():
    return Wallet(_fixed_key("mallory"))


@pytest.fixture
def funded_signer(seeded, tokens, alice_wallet):
    """Exchange plus a wallet whose address holds X and Y."""
    tokens["X"].mint(alice_wallet.address, 10_000)
    tokens["Y"].mint(alice_wallet.address, 10_000)
    return seeded, alice_wallet
