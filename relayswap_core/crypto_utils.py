"""
Cryptographic helpers for RelaySwap.

  - SHA-256 / Hash160 digests
  - secp256k1 key-pair generation and public-key compression
  - Recoverable ECDSA signatures (65 bytes: r || s || recovery id)
  - Public-key recovery from a digest and a recoverable signature
"""

from __future__ import annotations

import hashlib

from Crypto.Hash import RIPEMD160
from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError
from ecdsa.numbertheory import Error as NumberTheoryError
from ecdsa.util import sigdecode_string, sigencode_string_canonize

SIGNATURE_LENGTH = 65
COMPRESSED_PUBKEY_LENGTH = 33
DIGEST_LENGTH = 32

_CURVE_ORDER = SECP256k1.order


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def hash256(data: bytes) -> bytes:
    """Message digest used for meta-transaction authorization."""
    return sha256(data)


def hash160(data: bytes) -> bytes:
    """RIPEMD-160 of SHA-256, used for address derivation."""
    return RIPEMD160.new(sha256(data)).digest()


def generate_keypair() -> tuple[bytes, bytes]:
    """Return (32-byte private key, 33-byte compressed public key)."""
    sk = SigningKey.generate(curve=SECP256k1)
    return sk.to_string(), sk.get_verifying_key().to_string("compressed")


def public_key_from_private(private_key: bytes) -> bytes:
    """Compressed public key for a raw 32-byte private key."""
    sk = SigningKey.from_string(private_key, curve=SECP256k1)
    return sk.get_verifying_key().to_string("compressed")


def _normalize_recovery_id(v: int) -> int:
    # Accept both raw (0/1) and Ethereum-style (27/28) recovery ids.
    if v >= 27:
        v -= 27
    return v


def sign_recoverable(private_key: bytes, digest: bytes) -> bytes:
    """
    Sign a 32-byte digest and return a 65-byte recoverable signature.

    The signature is deterministic (RFC 6979) with a low-s value, followed
    by the recovery id that selects the signer among the candidate keys.
    """
    if len(digest) != DIGEST_LENGTH:
        raise ValueError(f"Digest must be {DIGEST_LENGTH} bytes")
    sk = SigningKey.from_string(private_key, curve=SECP256k1)
    rs = sk.sign_digest_deterministic(
        digest, hashfunc=hashlib.sha256, sigencode=sigencode_string_canonize,
    )
    expected = sk.get_verifying_key().to_string("compressed")
    candidates = VerifyingKey.from_public_key_recovery_with_digest(
        rs, digest, SECP256k1, hashfunc=hashlib.sha256,
        sigdecode=sigdecode_string,
    )
    for recovery_id, vk in enumerate(candidates):
        if vk.to_string("compressed") == expected:
            return rs + bytes([recovery_id])
    raise ValueError("Could not determine recovery id for signature")


def recover_public_key(digest: bytes, signature: bytes) -> bytes | None:
    """
    Recover the 33-byte compressed signer key from a recoverable signature.

    Returns None when the inputs are malformed or no key can be recovered.
    Recovery ids 2 and 3 (r >= curve order) are not supported.
    """
    if len(digest) != DIGEST_LENGTH or len(signature) != SIGNATURE_LENGTH:
        return None
    recovery_id = _normalize_recovery_id(signature[64])
    if recovery_id not in (0, 1):
        return None

    rs = bytes(signature[:64])
    r = int.from_bytes(rs[:32], "big")
    s = int.from_bytes(rs[32:], "big")
    if not (0 < r < _CURVE_ORDER and 0 < s < _CURVE_ORDER):
        return None

    try:
        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            rs, digest, SECP256k1, hashfunc=hashlib.sha256,
            sigdecode=sigdecode_string,
        )
    except (NumberTheoryError, MalformedPointError, ValueError, RuntimeError):
        # No curve point with x == r, or the recovered point is invalid.
        return None
    if recovery_id >= len(candidates):
        return None
    return candidates[recovery_id].to_string("compressed")


def verify_recoverable(public_key: bytes, digest: bytes, signature: bytes) -> bool:
    """True if *signature* over *digest* recovers to *public_key*."""
    recovered = recover_public_key(digest, signature)
    return recovered is not None and recovered == public_key
