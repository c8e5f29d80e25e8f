"""
Tests for the bundled wallet (the signing capability the ledger consumes)
"""

import pytest

from coin_ledger.keys import KeyIdentity
from coin_ledger.signatures import SignatureVerifier
from coin_ledger.wallet import Wallet, generate_private_key, sample_signature, sign_with


class TestWallet:
    """Test key generation and signing"""

    def test_generate_named_keys(self):
        wallet = Wallet.generate(["C1", "C2", "C3"], "ed25519")

        assert wallet.key_names() == ["C1", "C2", "C3"]
        assert len(wallet) == 3
        assert len({wallet.public_key(name) for name in wallet.key_names()}) == 3

    def test_public_key_is_stable(self):
        wallet = Wallet.generate(["A1"], "ecdsa")

        assert isinstance(wallet.public_key("A1"), KeyIdentity)
        assert wallet.public_key("A1") == wallet.public_key("A1")

    def test_sign_and_verify(self):
        wallet = Wallet.generate(["A1"], "ed25519")
        signature = wallet.sign_message(b"message", "A1")

        assert SignatureVerifier().verify(wallet.public_key("A1"), signature, b"message")

    def test_unknown_key_name(self):
        wallet = Wallet.generate(["A1"], "ed25519")

        with pytest.raises(KeyError, match="No key named Z9"):
            wallet.sign_message(b"message", "Z9")

    def test_duplicate_key_name(self):
        wallet = Wallet.generate(["A1"], "ed25519")

        with pytest.raises(ValueError, match="already exists"):
            wallet.add_key("A1", generate_private_key("ed25519"))

    def test_unsupported_algorithm(self):
        with pytest.raises(ValueError, match="Unsupported key algorithm"):
            Wallet.generate(["A1"], "dsa")

    def test_sign_with_unsupported_key(self):
        with pytest.raises(ValueError, match="Unsupported private key type"):
            sign_with(object(), b"message")

    def test_default_algorithm_from_config(self, monkeypatch):
        from coin_ledger import config as config_module

        monkeypatch.setenv("COIN_LEDGER_KEY_ALGORITHM", "ed25519")
        config_module.reload_config()
        try:
            wallet = Wallet.generate(["A1"])
            # Ed25519 SubjectPublicKeyInfo is 44 bytes
            assert len(wallet.public_key("A1").der) == 44
        finally:
            monkeypatch.undo()
            config_module.reload_config()

    def test_to_public_key_map(self):
        wallet = Wallet.generate(["A1", "A2"], "ed25519")
        names = wallet.to_public_key_map()

        assert names.get_user(wallet.public_key("A2")) == "A2"
        assert names.get_public_key("A1") == wallet.public_key("A1")

    def test_sample_signature_signs_integer_one(self):
        wallet = Wallet.generate(["A1"], "ed25519")
        signature = sample_signature(wallet, "A1")

        assert SignatureVerifier().verify(wallet.public_key("A1"), signature, b"\x00\x00\x00\x01")
