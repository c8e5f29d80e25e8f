"""
Signature Verification Module

Builds the canonical message an input signs and verifies input signatures
against the account key they debit. Signing and verifying derive the message
through the same function, so any change to the amount, the sender or the
ordered output list invalidates the signature.

Verification is a trust boundary: forged, malformed or undecodable material
yields False, never an exception.
"""

import json
import threading
from typing import Any, Callable, Dict, Iterable

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from .keys import KeyIdentity
from .logging_config import get_logger, log_action

logger = get_logger(__name__)

# sign(message, key_name) -> signature
Signer = Callable[[bytes, str], bytes]


def canonical_bytes(data: Any) -> bytes:
    """Deterministic JSON encoding (sorted keys, compact separators)"""
    return json.dumps(data, sort_keys=True, separators=(',', ':')).encode('utf-8')


def message_to_sign(sender: KeyIdentity, amount: int, outputs: Iterable) -> bytes:
    """
    Canonical message for an input debiting ``sender`` by ``amount`` and
    authorizing ``outputs`` (any iterable of TxOutput, order preserved).
    """
    return canonical_bytes({
        "sender": sender.hex,
        "amount": int(amount),
        "outputs": [[output.recipient.hex, int(output.amount)] for output in outputs],
    })


class SignatureVerifier:
    """Verifies signatures for RSA, ECDSA and Ed25519 account keys"""

    def __init__(self):
        self._verified_count = 0
        self._rejected_count = 0
        self._stats_lock = threading.Lock()

    def verify(self, sender: KeyIdentity, signature: bytes, message: bytes) -> bool:
        """
        Check ``signature`` over ``message`` against the sender's public key.

        Returns:
            True only for an authentic signature; False for anything else
        """
        if not isinstance(signature, (bytes, bytearray)) or not signature:
            return self._reject(sender, "signature missing or not bytes")

        try:
            public_key = sender.load_public_key()
            if isinstance(public_key, rsa.RSAPublicKey):
                public_key.verify(bytes(signature), message, padding.PKCS1v15(), hashes.SHA256())
            elif isinstance(public_key, ec.EllipticCurvePublicKey):
                public_key.verify(bytes(signature), message, ec.ECDSA(hashes.SHA256()))
            elif isinstance(public_key, Ed25519PublicKey):
                public_key.verify(bytes(signature), message)
            else:
                return self._reject(sender, f"unsupported key type {type(public_key).__name__}")
        except InvalidSignature:
            return self._reject(sender, "signature does not match")
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            return self._reject(sender, f"malformed key or signature: {e}")

        with self._stats_lock:
            self._verified_count += 1
        return True

    def verify_input(self, tx_input, outputs: Iterable) -> bool:
        """Verify a signed input against the output list it authorizes"""
        message = message_to_sign(tx_input.sender, tx_input.amount, outputs)
        return self.verify(tx_input.sender, tx_input.signature, message)

    def get_verification_stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return {
                "verified_count": self._verified_count,
                "rejected_count": self._rejected_count
            }

    def _reject(self, sender: KeyIdentity, reason: str) -> bool:
        with self._stats_lock:
            self._rejected_count += 1
        log_action(
            logger, "debug", f"Signature rejected: {reason}",
            action="reject_signature", account=sender.fingerprint
        )
        return False


# Shared instance used when callers do not pass their own verifier
default_verifier = SignatureVerifier()
