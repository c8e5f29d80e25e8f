"""
Wallet Module

Named key pairs that produce signatures for transaction inputs. The ledger
only consumes the ``sign(message, key_name)`` capability and the public keys;
key storage is not part of settlement.
"""

import logging
from typing import Dict, Iterable, List, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from .config import get_config
from .keys import KeyIdentity, PublicKeyMap

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("rsa", "ecdsa", "ed25519")


def generate_private_key(algorithm: str, rsa_key_size: int = 2048):
    """Factory for private keys of a supported algorithm"""
    algorithm = algorithm.lower()

    if algorithm == "rsa":
        return rsa.generate_private_key(public_exponent=65537, key_size=rsa_key_size)
    elif algorithm == "ecdsa":
        return ec.generate_private_key(ec.SECP256K1())
    elif algorithm == "ed25519":
        return ed25519.Ed25519PrivateKey.generate()
    else:
        raise ValueError(
            f"Unsupported key algorithm '{algorithm}', expected one of {', '.join(SUPPORTED_ALGORITHMS)}"
        )


def sign_with(private_key, message: bytes) -> bytes:
    """Sign ``message`` with the scheme SignatureVerifier expects for the key type"""
    if isinstance(private_key, rsa.RSAPrivateKey):
        return private_key.sign(message, padding.PKCS1v15(), hashes.SHA256())
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        return private_key.sign(message, ec.ECDSA(hashes.SHA256()))
    if isinstance(private_key, ed25519.Ed25519PrivateKey):
        return private_key.sign(message)
    raise ValueError(f"Unsupported private key type {type(private_key).__name__}")


class Wallet:
    """Private keys indexed by name"""

    def __init__(self):
        self._keys: Dict[str, object] = {}

    @classmethod
    def generate(cls, names: Iterable[str], algorithm: Optional[str] = None) -> 'Wallet':
        """
        Create a wallet with a fresh key pair for each name

        Args:
            names: Key names, e.g. ["A1", "A2"]
            algorithm: rsa, ecdsa or ed25519; defaults to the configured algorithm
        """
        config = get_config()
        algorithm = algorithm or config.key_algorithm

        wallet = cls()
        for name in names:
            wallet.add_key(name, generate_private_key(algorithm, config.rsa_key_size))

        logger.debug(f"Generated wallet with {len(wallet)} {algorithm} keys")
        return wallet

    def add_key(self, name: str, private_key) -> None:
        if name in self._keys:
            raise ValueError(f"Key name {name} already exists in wallet")
        self._keys[name] = private_key

    def sign_message(self, message: bytes, key_name: str) -> bytes:
        """
        Raises:
            KeyError: If the wallet holds no key with that name
        """
        if key_name not in self._keys:
            raise KeyError(f"No key named {key_name} in wallet")
        return sign_with(self._keys[key_name], message)

    def __call__(self, message: bytes, key_name: str) -> bytes:
        return self.sign_message(message, key_name)

    def public_key(self, key_name: str) -> KeyIdentity:
        return KeyIdentity.from_public_key(self._keys[key_name].public_key())

    def key_names(self) -> List[str]:
        return list(self._keys)

    def to_public_key_map(self) -> PublicKeyMap:
        return PublicKeyMap({name: self.public_key(name) for name in self._keys})

    def __len__(self) -> int:
        return len(self._keys)


def sample_signature(wallet: Wallet, key_name: str) -> bytes:
    """
    A genuine signature over the integer 1 (4 bytes, big-endian). It is well
    formed but never verifies for a transaction message, which makes it a
    stand-in when a signature is needed that cannot be computed from the data.
    """
    return wallet.sign_message((1).to_bytes(4, "big"), key_name)
