"""
Account Identity Module

Accounts are identified by their public key. KeyIdentity wraps the DER
(SubjectPublicKeyInfo) encoding so that identities compare, hash and sort
structurally, independent of which key object produced them.
"""

import hashlib
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes


@dataclass(frozen=True, order=True)
class KeyIdentity:
    """
    Immutable account identifier (a public key).
    Equality, hashing and ordering are over the encoded key bytes.
    """
    der: bytes

    def __post_init__(self):
        if not isinstance(self.der, (bytes, bytearray)):
            raise ValueError("KeyIdentity requires the DER-encoded public key as bytes")
        if not self.der:
            raise ValueError("KeyIdentity cannot be empty")
        object.__setattr__(self, 'der', bytes(self.der))

    @classmethod
    def from_public_key(cls, public_key: PublicKeyTypes) -> 'KeyIdentity':
        """Create identity from a cryptography public key object"""
        der = public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        )
        return cls(der)

    @classmethod
    def from_hex(cls, value: str) -> 'KeyIdentity':
        return cls(bytes.fromhex(value))

    def load_public_key(self) -> PublicKeyTypes:
        """
        Load the public key object back from its encoding.

        Raises:
            ValueError: If the bytes are not a valid public key
            cryptography.exceptions.UnsupportedAlgorithm: If the key type is unknown
        """
        return serialization.load_der_public_key(self.der)

    @property
    def hex(self) -> str:
        return self.der.hex()

    @property
    def fingerprint(self) -> str:
        """Short SHA-256 fingerprint for logs and reports"""
        return hashlib.sha256(self.der).hexdigest()[:16]

    def __repr__(self) -> str:
        return f"KeyIdentity({self.fingerprint})"


class PublicKeyMap:
    """
    Bidirectional mapping between human-readable key names and identities.
    Used only for reporting; the ledger never relies on names.
    """

    def __init__(self, entries: Optional[Dict[str, KeyIdentity]] = None):
        self._by_name: Dict[str, KeyIdentity] = {}
        self._by_key: Dict[KeyIdentity, str] = {}
        for name, key in (entries or {}).items():
            self.add(name, key)

    def add(self, name: str, key: KeyIdentity) -> None:
        """Register a name; a re-registered name replaces the previous key"""
        previous = self._by_name.get(name)
        if previous is not None and previous != key:
            del self._by_key[previous]
        self._by_name[name] = key
        self._by_key[key] = name

    def merge(self, other: 'PublicKeyMap') -> None:
        for name, key in other.items():
            self.add(name, key)

    def get_public_key(self, name: str) -> KeyIdentity:
        """
        Raises:
            KeyError: If no key is registered under the name
        """
        return self._by_name[name]

    def get_user(self, key: KeyIdentity) -> str:
        """Name for a key, falling back to its fingerprint"""
        return self._by_key.get(key, key.fingerprint)

    def names(self) -> List[str]:
        return list(self._by_name)

    def items(self) -> Iterator:
        return iter(list(self._by_name.items()))

    def __contains__(self, item) -> bool:
        if isinstance(item, KeyIdentity):
            return item in self._by_key
        return item in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def __call__(self, key: KeyIdentity) -> str:
        return self.get_user(key)
