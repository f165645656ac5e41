"""
Meta-transaction authorization for delegated ("gasless") swaps.

A signer authorizes a swap offline by signing the digest

    SHA-256( u128(nonce) || u128(amount_in) || u128(min_amount_out) )

with secp256k1.  A relayer submits the signed intent; the authorizer
recovers the signer key, checks it against the supplied public key and
consumes the account's nonce slot.  The authorized principal is always the
signing account, never the relayer.

Nonce slots record presence, not value: once an account has authorized one
delegated swap, every later attempt for that account is rejected, whatever
nonce it carries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from relayswap_core import safe_math
from relayswap_core.crypto_utils import (
    COMPRESSED_PUBKEY_LENGTH,
    SIGNATURE_LENGTH,
    hash256,
    recover_public_key,
)
from relayswap_core.errors import InvalidNonce, InvalidSignature


def swap_message(nonce: int, amount_in: int, min_amount_out: int) -> bytes:
    """Canonical byte string signed for a delegated swap."""
    return (
        safe_math.encode_uint(nonce)
        + safe_math.encode_uint(amount_in)
        + safe_math.encode_uint(min_amount_out)
    )


def swap_digest(nonce: int, amount_in: int, min_amount_out: int) -> bytes:
    return hash256(swap_message(nonce, amount_in, min_amount_out))


@dataclass(frozen=True)
class SignedSwapIntent:
    """A swap request signed offline, ready for a relayer to submit."""
    account: str
    asset_in: str
    asset_out: str
    amount_in: int
    min_amount_out: int
    nonce: int
    signature: bytes
    public_key: bytes

    def digest(self) -> bytes:
        return swap_digest(self.nonce, self.amount_in, self.min_amount_out)

    def to_dict(self) -> dict:
        return {
            "account": self.account,
            "asset_in": self.asset_in,
            "asset_out": self.asset_out,
            "amount_in": self.amount_in,
            "min_amount_out": self.min_amount_out,
            "nonce": self.nonce,
            "signature": self.signature.hex(),
            "public_key": self.public_key.hex(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> SignedSwapIntent:
        return cls(
            account=d["account"],
            asset_in=d["asset_in"],
            asset_out=d["asset_out"],
            amount_in=int(d["amount_in"]),
            min_amount_out=int(d["min_amount_out"]),
            nonce=int(d["nonce"]),
            signature=bytes.fromhex(d["signature"]),
            public_key=bytes.fromhex(d["public_key"]),
        )


class NonceRegistry:
    """Account -> the one nonce it consumed."""

    def __init__(self):
        self._used: dict[str, int] = {}

    def has_record(self, account: str) -> bool:
        return account in self._used

    def get(self, account: str) -> Optional[int]:
        return self._used.get(account)

    def record(self, account: str, nonce: int) -> None:
        if account in self._used:
            raise InvalidNonce(f"Account {account} already consumed nonce {self._used[account]}")
        self._used[account] = nonce

    def is_nonce_used(self, account: str, nonce: int) -> bool:
        """True only if the stored nonce for *account* equals *nonce*."""
        return self._used.get(account) == nonce

    def snapshot(self) -> dict[str, int]:
        return dict(self._used)

    def restore(self, state: dict[str, int]) -> None:
        self._used = dict(state)


class MetaTxAuthorizer:
    """Gates delegated swaps behind a signature and a one-shot nonce slot."""

    def __init__(self, nonces: NonceRegistry):
        self.nonces = nonces

    def authorize(self, asset_in: str, asset_out: str, amount_in: int,
                  min_amount_out: int, nonce: int, signature: bytes,
                  public_key: bytes, account: str) -> str:
        """
        Validate a signed swap request and return the authorized account.

        Assets are not part of the signed message; SwapEngine validates
        them once authorization has succeeded.
        """
        if self.nonces.has_record(account):
            raise InvalidNonce(
                f"Account {account} already used its delegated swap (nonce {self.nonces.get(account)})"
            )
        safe_math.check_u128(nonce, "nonce")
        self.nonces.record(account, nonce)

        if len(signature) != SIGNATURE_LENGTH:
            raise InvalidSignature(f"Signature must be {SIGNATURE_LENGTH} bytes")
        if len(public_key) != COMPRESSED_PUBKEY_LENGTH:
            raise InvalidSignature(f"Public key must be {COMPRESSED_PUBKEY_LENGTH} bytes")
        digest = swap_digest(nonce, amount_in, min_amount_out)
        recovered = recover_public_key(digest, signature)
        if recovered is None:
            raise InvalidSignature("Could not recover a public key from signature")
        if recovered != public_key:
            raise InvalidSignature("Recovered key does not match supplied public key")
        return account

    def authorize_intent(self, intent: SignedSwapIntent) -> str:
        return self.authorize(
            intent.asset_in, intent.asset_out, intent.amount_in,
            intent.min_amount_out, intent.nonce, intent.signature,
            intent.public_key, intent.account,
        )
