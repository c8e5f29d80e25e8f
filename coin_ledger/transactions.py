"""
Transaction Data Model

Value-transfer records: an input debits one account and carries the
sender's signature, an output credits one account. A transaction is an
ordered pair of input and output lists applied as one unit.

Records are immutable. Conservation and signatures are checked at
validation time by the ledger, not at construction; construction only
rejects malformed values (negative or non-integer amounts, wrong types).
"""

import hashlib
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .keys import KeyIdentity
from .signatures import (
    Signer, SignatureVerifier, canonical_bytes, default_verifier, message_to_sign
)


def _check_amount(amount: Any, what: str) -> None:
    # bool is an int subclass but never a valid amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{what} amount must be an integer, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"{what} amount cannot be negative: {amount}")


def _check_key(key: Any, what: str) -> None:
    if not isinstance(key, KeyIdentity):
        raise ValueError(f"{what} must be a KeyIdentity, got {type(key).__name__}")


def _default_resolve(key: KeyIdentity) -> str:
    return key.fingerprint


@dataclass(frozen=True)
class TxOutput:
    """Credit of ``amount`` to ``recipient``"""
    recipient: KeyIdentity
    amount: int

    def __post_init__(self):
        _check_key(self.recipient, "Output recipient")
        _check_amount(self.amount, "Output")

    def to_dict(self) -> Dict[str, Any]:
        return {"recipient": self.recipient.hex, "amount": self.amount}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TxOutput':
        return cls(KeyIdentity.from_hex(data["recipient"]), data["amount"])


@dataclass(frozen=True)
class TxInput:
    """
    Signed claim debiting ``amount`` from ``sender``.
    The signature is untrusted until verified against an output list.
    """
    sender: KeyIdentity
    amount: int
    signature: bytes

    def __post_init__(self):
        _check_key(self.sender, "Input sender")
        _check_amount(self.amount, "Input")
        if not isinstance(self.signature, (bytes, bytearray)):
            raise ValueError("Input signature must be bytes")
        object.__setattr__(self, 'signature', bytes(self.signature))

    def check_signature(self, outputs: Iterable[TxOutput],
                        verifier: Optional[SignatureVerifier] = None) -> bool:
        """Check this input's signature against the outputs it authorizes"""
        return (verifier or default_verifier).verify_input(self, outputs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender.hex,
            "amount": self.amount,
            "signature": self.signature.hex()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TxInput':
        return cls(
            KeyIdentity.from_hex(data["sender"]),
            data["amount"],
            bytes.fromhex(data["signature"])
        )


@dataclass(frozen=True)
class TxInputUnsigned:
    """An input before signing: who is debited and by how much"""
    sender: KeyIdentity
    amount: int

    def __post_init__(self):
        _check_key(self.sender, "Input sender")
        _check_amount(self.amount, "Input")

    def message_to_sign(self, outputs: Iterable[TxOutput]) -> bytes:
        return message_to_sign(self.sender, self.amount, outputs)

    def sign(self, outputs: Iterable[TxOutput], signer: Signer, key_name: str) -> TxInput:
        """
        Sign this input over ``outputs`` with the signer's key ``key_name``.

        Args:
            outputs: Output list the input authorizes
            signer: Callable ``sign(message, key_name) -> signature``
            key_name: Name of the signing key in the signer's wallet
        """
        outputs = list(outputs)
        signature = signer(self.message_to_sign(outputs), key_name)
        return TxInput(self.sender, self.amount, signature)


class TxOutputList:
    """Ordered, immutable list of outputs"""

    def __init__(self, outputs: Iterable[TxOutput] = ()):
        self._outputs: Tuple[TxOutput, ...] = tuple(outputs)
        for output in self._outputs:
            if not isinstance(output, TxOutput):
                raise ValueError(f"TxOutputList entries must be TxOutput, got {type(output).__name__}")

    @classmethod
    def of(cls, *entries: Tuple[KeyIdentity, int]) -> 'TxOutputList':
        """Build from ``(recipient, amount)`` pairs"""
        return cls(TxOutput(recipient, amount) for recipient, amount in entries)

    def total_amount(self) -> int:
        return sum(output.amount for output in self._outputs)

    def to_list(self) -> List[TxOutput]:
        return list(self._outputs)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [output.to_dict() for output in self._outputs]

    def __iter__(self) -> Iterator[TxOutput]:
        return iter(self._outputs)

    def __len__(self) -> int:
        return len(self._outputs)

    def __getitem__(self, index: int) -> TxOutput:
        return self._outputs[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, TxOutputList):
            return NotImplemented
        return self._outputs == other._outputs

    def __hash__(self) -> int:
        return hash(self._outputs)

    def __repr__(self) -> str:
        return f"TxOutputList({list(self._outputs)!r})"


class TxInputList:
    """Ordered, immutable list of signed inputs"""

    def __init__(self, inputs: Iterable[TxInput] = ()):
        self._inputs: Tuple[TxInput, ...] = tuple(inputs)
        for tx_input in self._inputs:
            if not isinstance(tx_input, TxInput):
                raise ValueError(f"TxInputList entries must be TxInput, got {type(tx_input).__name__}")

    @classmethod
    def of(cls, *entries: Tuple[KeyIdentity, int, bytes]) -> 'TxInputList':
        """Build from ``(sender, amount, signature)`` triples"""
        return cls(TxInput(sender, amount, signature) for sender, amount, signature in entries)

    def total_amount(self) -> int:
        return sum(tx_input.amount for tx_input in self._inputs)

    def aggregate(self) -> Dict[KeyIdentity, int]:
        """
        Total claimed per account, in first-appearance order.
        Two inputs debiting the same key for 15 each aggregate to 30.
        """
        claims: Dict[KeyIdentity, int] = {}
        for tx_input in self._inputs:
            claims[tx_input.sender] = claims.get(tx_input.sender, 0) + tx_input.amount
        return claims

    def to_account_balance(self):
        """The aggregate claims as a Ledger"""
        from .ledger import Ledger
        return Ledger(self.aggregate())

    def check_signatures(self, outputs: Iterable[TxOutput],
                         verifier: Optional[SignatureVerifier] = None) -> bool:
        """True if every input's signature verifies against ``outputs``"""
        outputs = list(outputs)
        verifier = verifier or default_verifier
        return all(verifier.verify_input(tx_input, outputs) for tx_input in self._inputs)

    def to_list(self) -> List[TxInput]:
        return list(self._inputs)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [tx_input.to_dict() for tx_input in self._inputs]

    def __iter__(self) -> Iterator[TxInput]:
        return iter(self._inputs)

    def __len__(self) -> int:
        return len(self._inputs)

    def __getitem__(self, index: int) -> TxInput:
        return self._inputs[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, TxInputList):
            return NotImplemented
        return self._inputs == other._inputs

    def __hash__(self) -> int:
        return hash(self._inputs)

    def __repr__(self) -> str:
        return f"TxInputList({list(self._inputs)!r})"


@dataclass(frozen=True)
class Transaction:
    """
    Atomic transfer: every input is debited and every output credited,
    or nothing happens.
    """
    inputs: TxInputList
    outputs: TxOutputList

    def __post_init__(self):
        if not isinstance(self.inputs, TxInputList):
            object.__setattr__(self, 'inputs', TxInputList(self.inputs))
        if not isinstance(self.outputs, TxOutputList):
            object.__setattr__(self, 'outputs', TxOutputList(self.outputs))

    def is_amount_valid(self, strict: bool = False) -> bool:
        """
        Outputs may not exceed inputs. Any surplus is not credited anywhere.
        With ``strict`` the totals must match exactly.
        """
        if strict:
            return self.outputs.total_amount() == self.inputs.total_amount()
        return self.outputs.total_amount() <= self.inputs.total_amount()

    def is_signature_valid(self, verifier: Optional[SignatureVerifier] = None) -> bool:
        """Every input must be signed over this transaction's own outputs"""
        return self.inputs.check_signatures(self.outputs, verifier)

    @property
    def transaction_id(self) -> str:
        """SHA-256 over the canonical encoding, signatures included"""
        return hashlib.sha256(canonical_bytes(self.to_dict())).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputs": self.inputs.to_dicts(),
            "outputs": self.outputs.to_dicts()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            TxInputList(TxInput.from_dict(item) for item in data["inputs"]),
            TxOutputList(TxOutput.from_dict(item) for item in data["outputs"])
        )

    def describe(self, resolve: Optional[Callable[[KeyIdentity], str]] = None) -> List[str]:
        """Human-readable lines listing inputs then outputs"""
        resolve = resolve or _default_resolve
        lines = ["Transaction inputs:"]
        for tx_input in self.inputs:
            lines.append(f"  {resolve(tx_input.sender)} spends {tx_input.amount}")
        lines.append("Transaction outputs:")
        for output in self.outputs:
            lines.append(f"  {resolve(output.recipient)} receives {output.amount}")
        return lines
