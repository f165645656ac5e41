"""
Wallet management for RelaySwap.

A wallet wraps a secp256k1 key-pair and provides:
  - Address derivation
  - Signing of delegated swap intents (recoverable signatures)
  - Serialisable import / export (encrypted with passphrase)
"""

from __future__ import annotations

import hashlib
import os

from Crypto.Cipher import AES
from ecdsa import SECP256k1, SigningKey

from relayswap_core.crypto_utils import (
    generate_keypair,
    hash160,
    public_key_from_private,
    sign_recoverable,
)
from relayswap_core.meta_tx import SignedSwapIntent, swap_digest

_KDF_ITERATIONS = 600_000
_SEED_SALT = b"RelaySwap/seed/main/v1"


def derive_address(public_key: bytes) -> str:
    """Account identifier for a compressed public key."""
    return "r" + hash160(public_key).hex()


class Wallet:
    """User-facing wallet that signs swap intents for relayers to submit."""

    def __init__(self, private_key: bytes, public_key: bytes | None = None,
                 address: str | None = None):
        if len(private_key) != 32:
            raise ValueError("Private key must be 32 bytes")
        self.private_key = private_key
        self.public_key = public_key or public_key_from_private(private_key)
        self.address = address or derive_address(self.public_key)

    # ---- factory methods ----

    @classmethod
    def create(cls) -> Wallet:
        """Generate a brand-new wallet."""
        priv, pub = generate_keypair()
        return cls(priv, pub)

    @classmethod
    def from_seed(cls, seed: str) -> Wallet:
        """
        Derive a wallet deterministically from a seed phrase.

        Uses PBKDF2-HMAC-SHA256 with 600 000 iterations; the derived bytes are
        reduced into the valid secp256k1 scalar range.
        """
        raw = hashlib.pbkdf2_hmac("sha256", seed.encode("utf-8"), _SEED_SALT, _KDF_ITERATIONS)
        scalar = int.from_bytes(raw, "big") % (SECP256k1.order - 1) + 1
        sk = SigningKey.from_secret_exponent(scalar, curve=SECP256k1)
        return cls(sk.to_string())

    # ---- signing ----

    def sign_digest(self, digest: bytes) -> bytes:
        return sign_recoverable(self.private_key, digest)

    def sign_swap(self, asset_in: str, asset_out: str, amount_in: int,
                  min_amount_out: int, nonce: int) -> SignedSwapIntent:
        """Sign a delegated swap for this wallet's address."""
        signature = self.sign_digest(swap_digest(nonce, amount_in, min_amount_out))
        return SignedSwapIntent(
            account=self.address,
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=amount_in,
            min_amount_out=min_amount_out,
            nonce=nonce,
            signature=signature,
            public_key=self.public_key,
        )

    # ---- serialisation ----

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "public_key": self.public_key.hex(),
            "private_key": self.private_key.hex(),
        }

    def export_encrypted(self, passphrase: str) -> dict:
        """
        Export wallet as an encrypted JSON-compatible dict.

        AES-256-GCM authenticated encryption, key from PBKDF2-HMAC-SHA256.
        """
        salt = os.urandom(16)
        key = hashlib.pbkdf2_hmac("sha256", passphrase.encode("utf-8"), salt, _KDF_ITERATIONS)
        ciphertext, nonce, tag = self._aes_gcm_encrypt(key, self.private_key)
        return {
            "version": 1,
            "address": self.address,
            "public_key": self.public_key.hex(),
            "encrypted_private_key": ciphertext.hex(),
            "nonce": nonce.hex(),
            "tag": tag.hex(),
            "salt": salt.hex(),
            "kdf": "pbkdf2-hmac-sha256",
            "kdf_iterations": _KDF_ITERATIONS,
        }

    @classmethod
    def import_encrypted(cls, data: dict, passphrase: str) -> Wallet:
        """Import from an encrypted export. Raises ValueError on a wrong passphrase."""
        salt = bytes.fromhex(data["salt"])
        iterations = data.get("kdf_iterations", _KDF_ITERATIONS)
        key = hashlib.pbkdf2_hmac("sha256", passphrase.encode("utf-8"), salt, iterations)
        priv = cls._aes_gcm_decrypt(
            key,
            bytes.fromhex(data["nonce"]),
            bytes.fromhex(data["encrypted_private_key"]),
            bytes.fromhex(data["tag"]),
        )
        wallet = cls(priv)
        if wallet.public_key.hex() != data["public_key"]:
            raise ValueError("Decrypted key does not match exported public key")
        return wallet

    # ---- AES-256-GCM authenticated encryption ----

    @staticmethod
    def _aes_gcm_encrypt(key: bytes, data: bytes) -> tuple[bytes, bytes, bytes]:
        """Encrypt *data* with AES-256-GCM. Returns (ciphertext, nonce, tag)."""
        nonce = os.urandom(12)
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
        ciphertext, tag = cipher.encrypt_and_digest(data)
        return ciphertext, nonce, tag

    @staticmethod
    def _aes_gcm_decrypt(key: bytes, nonce: bytes, ciphertext: bytes, tag: bytes) -> bytes:
        """Decrypt and verify AES-256-GCM ciphertext. Raises ValueError on tamper."""
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
        return cipher.decrypt_and_verify(ciphertext, tag)

    def __repr__(self) -> str:
        return f"Wallet({self.address})"
