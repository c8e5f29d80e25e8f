"""
Ledger exceptions.

Rejected transactions are reported as data (booleans or ValidationResult);
exceptions are reserved for broken calling contracts.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .ledger import ValidationResult


class LedgerError(ValueError):
    """Base class for ledger errors"""


class PreconditionViolation(LedgerError):
    """
    Raised when an operation is called without its precondition holding,
    e.g. applying a transaction that was never validated against this ledger.
    """

    def __init__(self, message: str, result: Optional["ValidationResult"] = None):
        super().__init__(message)
        self.result = result
