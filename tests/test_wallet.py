"""
Test suite for relayswap_core.wallet — Wallet management.

Covers:
  - Wallet.create() and Wallet.from_seed()
  - Swap intent signing
  - to_dict, export_encrypted, import_encrypted round-trips
"""

import unittest

from relayswap_core.crypto_utils import recover_public_key
from relayswap_core.wallet import Wallet, derive_address


class TestWalletCreate(unittest.TestCase):

    def test_create_generates_keys(self):
        w = Wallet.create()
        self.assertEqual(len(w.private_key), 32)
        self.assertEqual(len(w.public_key), 33)

    def test_create_derives_address(self):
        w = Wallet.create()
        self.assertTrue(w.address.startswith("r"))
        self.assertEqual(w.address, derive_address(w.public_key))

    def test_create_unique(self):
        self.assertNotEqual(Wallet.create().address, Wallet.create().address)

    def test_rejects_bad_key_length(self):
        with self.assertRaises(ValueError):
            Wallet(b"\x01" * 31)


class TestWalletFromSeed(unittest.TestCase):

    def test_deterministic(self):
        w1 = Wallet.from_seed("test-seed-123")
        w2 = Wallet.from_seed("test-seed-123")
        self.assertEqual(w1.address, w2.address)
        self.assertEqual(w1.private_key, w2.private_key)

    def test_different_seeds(self):
        self.assertNotEqual(Wallet.from_seed("seed_a").address,
                            Wallet.from_seed("seed_b").address)


class TestWalletSigning(unittest.TestCase):

    def test_sign_swap_fields(self):
        w = Wallet.create()
        intent = w.sign_swap("X", "Y", 500, 450, nonce=9)
        self.assertEqual(intent.account, w.address)
        self.assertEqual(intent.public_key, w.public_key)
        self.assertEqual(len(intent.signature), 65)

    def test_signature_recovers_wallet_key(self):
        w = Wallet.create()
        intent = w.sign_swap("X", "Y", 500, 450, nonce=9)
        self.assertEqual(recover_public_key(intent.digest(), intent.signature), w.public_key)

    def test_signing_is_deterministic(self):
        w = Wallet.create()
        a = w.sign_swap("X", "Y", 1, 1, nonce=1)
        b = w.sign_swap("X", "Y", 1, 1, nonce=1)
        self.assertEqual(a.signature, b.signature)


class TestWalletExport(unittest.TestCase):

    def test_to_dict(self):
        w = Wallet.create()
        d = w.to_dict()
        self.assertEqual(d["address"], w.address)
        self.assertEqual(bytes.fromhex(d["private_key"]), w.private_key)

    def test_encrypted_round_trip(self):
        w = Wallet.create()
        exported = w.export_encrypted("correct horse")
        self.assertNotIn("private_key", exported)
        restored = Wallet.import_encrypted(exported, "correct horse")
        self.assertEqual(restored.private_key, w.private_key)
        self.assertEqual(restored.address, w.address)

    def test_wrong_passphrase(self):
        w = Wallet.create()
        exported = w.export_encrypted("right")
        with self.assertRaises(ValueError):
            Wallet.import_encrypted(exported, "wrong")


if __name__ == "__main__":
    unittest.main()
