"""
Coin Ledger

An account-based ledger for a minimal cryptocurrency model: integer balances
keyed by public key, signed transactions, and a validate-then-apply pipeline
that never lets a forged or overdrawn transaction touch the balances.
"""

from .keys import KeyIdentity, PublicKeyMap
from .transactions import (
    TxInput, TxInputUnsigned, TxOutput, TxInputList, TxOutputList, Transaction
)
from .signatures import SignatureVerifier, message_to_sign
from .ledger import (
    Ledger, AccountBalance, ValidationResult, ValidatedTransaction, RejectionReason
)
from .journal import TransactionJournal, JournalEntry, EntryKind
from .exceptions import LedgerError, PreconditionViolation

__version__ = "1.0.0"

__all__ = [
    "KeyIdentity", "PublicKeyMap",
    "TxInput", "TxInputUnsigned", "TxOutput", "TxInputList", "TxOutputList", "Transaction",
    "SignatureVerifier", "message_to_sign",
    "Ledger", "AccountBalance", "ValidationResult", "ValidatedTransaction", "RejectionReason",
    "TransactionJournal", "JournalEntry", "EntryKind",
    "LedgerError", "PreconditionViolation",
]
