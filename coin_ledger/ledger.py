"""
Account Balance Ledger

Authoritative mapping from account key to integer balance. Transactions are
validated against the current balances (conservation, signatures, sufficient
funds) and then applied as a unit: every input debited, every output credited.

Accounts are never removed once created, and enumeration follows first
insertion so reports are deterministic. Validation and application run under
one lock so two transactions cannot both pass against the same pre-debit
balance.
"""

import sys
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .exceptions import PreconditionViolation
from .keys import KeyIdentity
from .logging_config import get_logger, log_action
from .signatures import SignatureVerifier, default_verifier
from .transactions import Transaction, TxInputList, TxOutputList


class RejectionReason(Enum):
    """Why a transaction failed validation"""
    AMOUNT_MISMATCH = "amount_mismatch"          # Outputs exceed inputs
    BAD_SIGNATURE = "bad_signature"              # An input is not signed over the outputs
    INSUFFICIENT_FUNDS = "insufficient_funds"    # Aggregate claims exceed balances


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a transaction; truthy iff valid"""
    valid: bool
    reason: Optional[RejectionReason] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def accepted(cls) -> 'ValidationResult':
        return cls(True)

    @classmethod
    def rejected(cls, reason: RejectionReason, message: str) -> 'ValidationResult':
        return cls(False, reason, message)


@dataclass(frozen=True)
class ValidatedTransaction:
    """
    Proof that ``transaction`` passed validation on a specific ledger at a
    specific state version. Only Ledger.approve() should create these.
    """
    transaction: Transaction
    ledger_id: str
    version: int


class Ledger:
    """
    Balances keyed by account identity, with validate/apply for transactions
    """

    def __init__(
        self,
        seed: Optional[Mapping[KeyIdentity, int]] = None,
        journal=None,
        verifier: Optional[SignatureVerifier] = None,
        strict_conservation: bool = False
    ):
        """
        Args:
            seed: Initial balances, taken as-is (no validation)
            journal: Optional TransactionJournal. It receives the opening
                balances now, then every balance write and applied transaction
            verifier: Signature verifier, defaults to the shared instance
            strict_conservation: Require outputs to equal inputs exactly
        """
        # dict keeps first-insertion order and overwrites keep their position
        self._balances: Dict[KeyIdentity, int] = dict(seed or {})
        self._journal = journal
        self._verifier = verifier or default_verifier
        self.strict_conservation = strict_conservation
        self._ledger_id = str(uuid.uuid4())
        self._version = 0
        self._lock = threading.RLock()
        self.logger = get_logger("coin_ledger.ledger")

        if self._journal is not None:
            self._journal.record_opening(self._balances, ledger_id=self._ledger_id)

    @property
    def journal(self):
        return self._journal

    @property
    def ledger_id(self) -> str:
        return self._ledger_id

    @property
    def version(self) -> int:
        """Incremented on every mutation"""
        return self._version

    @contextmanager
    def atomic(self):
        """Hold the ledger lock across several operations"""
        with self._lock:
            yield self

    # Account access

    def balance(self, key: KeyIdentity) -> int:
        """Current balance, 0 for an unknown account (no entry is created)"""
        return self._balances.get(key, 0)

    def has_account(self, key: KeyIdentity) -> bool:
        return key in self._balances

    def add_account(self, key: KeyIdentity, amount: int) -> None:
        """Create an account, or overwrite the balance of an existing one"""
        self._adjust({key: amount}, "add_account")

    def set_balance(self, key: KeyIdentity, amount: int) -> None:
        """Set a balance unconditionally; administrative, may go negative"""
        self._adjust({key: amount}, "set_balance")

    def increment(self, key: KeyIdentity, amount: int) -> None:
        with self._lock:
            self._adjust({key: self.balance(key) + amount}, "increment")

    def decrement(self, key: KeyIdentity, amount: int) -> None:
        """No underflow guard here; callers gate debits behind validation"""
        with self._lock:
            self._adjust({key: self.balance(key) - amount}, "decrement")

    def can_deduct(self, key: KeyIdentity, amount: int) -> bool:
        return self.balance(key) >= amount

    def can_deduct_all(self, other: Union['Ledger', Mapping[KeyIdentity, int]]) -> bool:
        """
        Check that every amount in ``other`` (a Ledger or a mapping of
        aggregate claims) can be deducted from this ledger.
        """
        claims = other.snapshot() if isinstance(other, Ledger) else other
        with self._lock:
            for key, amount in claims.items():
                if self.balance(key) < amount:
                    return False
            return True

    def can_deduct_inputs(self, inputs: TxInputList) -> bool:
        """Batch sufficiency check over the aggregate claims of ``inputs``"""
        return self.can_deduct_all(inputs.aggregate())

    # Raw application

    def apply_inputs(self, inputs: TxInputList) -> None:
        """
        Debit every input.

        Performs no bounds check: the caller must already have confirmed the
        inputs are deductible, otherwise balances can go negative.
        """
        with self._lock:
            self._adjust(self._debited(inputs), "apply_inputs")

    def apply_outputs(self, outputs: TxOutputList) -> None:
        """Credit every output, creating unseen accounts"""
        with self._lock:
            self._adjust(self._credited(outputs), "apply_outputs")

    def _debited(self, inputs: TxInputList) -> Dict[KeyIdentity, int]:
        """Balances after debiting ``inputs``, in first-touch order"""
        balances: Dict[KeyIdentity, int] = {}
        for tx_input in inputs:
            key = tx_input.sender
            balances[key] = balances.get(key, self.balance(key)) - tx_input.amount
        return balances

    def _credited(self, outputs: TxOutputList) -> Dict[KeyIdentity, int]:
        """Balances after crediting ``outputs``, in first-touch order"""
        balances: Dict[KeyIdentity, int] = {}
        for output in outputs:
            key = output.recipient
            balances[key] = balances.get(key, self.balance(key)) + output.amount
        return balances

    def _write(self, balances: Mapping[KeyIdentity, int]) -> None:
        for key, amount in balances.items():
            self._balances[key] = amount
            self._version += 1

    def _adjust(self, balances: Mapping[KeyIdentity, int], action: str) -> None:
        """Write balances outside of a transaction and journal them"""
        if not balances:
            return
        with self._lock:
            self._write(balances)
            if self._journal is not None:
                self._journal.record_adjustment(balances, action, ledger_id=self._ledger_id)

    # Validation

    def check_transaction(self, tx: Transaction) -> ValidationResult:
        """
        Validate ``tx`` against the current balances without mutating them.

        Checks, in order: outputs do not exceed inputs, every input is signed
        over the transaction's outputs, aggregate claims are deductible.
        """
        with self._lock:
            if not tx.is_amount_valid(strict=self.strict_conservation):
                relation = "must equal" if self.strict_conservation else "exceed"
                return ValidationResult.rejected(
                    RejectionReason.AMOUNT_MISMATCH,
                    f"Outputs ({tx.outputs.total_amount()}) {relation} inputs "
                    f"({tx.inputs.total_amount()})"
                )

            for index, tx_input in enumerate(tx.inputs):
                if not self._verifier.verify_input(tx_input, tx.outputs):
                    return ValidationResult.rejected(
                        RejectionReason.BAD_SIGNATURE,
                        f"Input {index} from {tx_input.sender.fingerprint} is not validly signed"
                    )

            for key, amount in tx.inputs.aggregate().items():
                if not self.can_deduct(key, amount):
                    return ValidationResult.rejected(
                        RejectionReason.INSUFFICIENT_FUNDS,
                        f"Account {key.fingerprint} has {self.balance(key)}, "
                        f"inputs claim {amount}"
                    )

            return ValidationResult.accepted()

    def validate_transaction(self, tx: Transaction) -> bool:
        return self.check_transaction(tx).valid

    def approve(self, tx: Transaction) -> Optional[ValidatedTransaction]:
        """
        Validate ``tx`` and return a token for apply_transaction(), or None
        if the transaction is rejected. The token is invalidated by any
        later mutation of this ledger.
        """
        with self._lock:
            if not self.check_transaction(tx):
                return None
            return ValidatedTransaction(tx, self._ledger_id, self._version)

    # Application

    def apply_transaction(self, tx: Union[ValidatedTransaction, Transaction]) -> None:
        """
        Debit all inputs then credit all outputs.

        Accepts a token from approve(), or a bare Transaction which is
        re-validated first.

        Raises:
            PreconditionViolation: The token belongs to another ledger or is
                stale, or the bare transaction does not validate. The ledger
                is left unchanged.
        """
        with self._lock:
            if isinstance(tx, ValidatedTransaction):
                if tx.ledger_id != self._ledger_id:
                    self._violation("Validation token was issued by a different ledger")
                if tx.version != self._version:
                    self._violation(
                        f"Validation token is stale: issued at version {tx.version}, "
                        f"ledger is at version {self._version}"
                    )
                transaction = tx.transaction
            elif isinstance(tx, Transaction):
                result = self.check_transaction(tx)
                if not result:
                    self._violation(f"Cannot apply invalid transaction: {result.message}", result)
                transaction = tx
            else:
                raise TypeError(f"Expected Transaction or ValidatedTransaction, got {type(tx).__name__}")

            self._apply(transaction)

    def process_transaction(self, tx: Transaction) -> ValidationResult:
        """
        Validate and, if valid, apply ``tx`` under one lock.
        A rejection is returned, not raised, and leaves the ledger unchanged.
        """
        with self._lock:
            result = self.check_transaction(tx)
            if not result:
                log_action(
                    self.logger, "info", f"Transaction rejected: {result.reason.value}",
                    action="reject_transaction", ledger_id=self._ledger_id,
                    transaction_id=tx.transaction_id,
                    details={"reason": result.reason.value, "detail": result.message}
                )
                return result

            self._apply(tx)
            return result

    def _apply(self, tx: Transaction) -> None:
        # Credits are computed after the debits land; an account may be on both sides
        self._write(self._debited(tx.inputs))
        self._write(self._credited(tx.outputs))

        if self._journal is not None:
            self._journal.record(tx, ledger_id=self._ledger_id)

        log_action(
            self.logger, "info", "Transaction applied",
            action="apply_transaction", ledger_id=self._ledger_id,
            transaction_id=tx.transaction_id,
            details={
                "input_total": tx.inputs.total_amount(),
                "output_total": tx.outputs.total_amount(),
                "accounts_debited": len(tx.inputs.aggregate()),
                "outputs": len(tx.outputs)
            }
        )

    def _violation(self, message: str, result: Optional[ValidationResult] = None) -> None:
        log_action(
            self.logger, "warning", message, action="precondition_violated",
            ledger_id=self._ledger_id
        )
        raise PreconditionViolation(message, result)

    # Enumeration and reporting

    def enumerate(self) -> List[Tuple[KeyIdentity, int]]:
        """(key, balance) pairs in first-insertion order"""
        with self._lock:
            return list(self._balances.items())

    def keys(self) -> List[KeyIdentity]:
        with self._lock:
            return list(self._balances)

    def snapshot(self) -> Dict[KeyIdentity, int]:
        """Ordered copy of the balances"""
        with self._lock:
            return dict(self._balances)

    def total(self) -> int:
        """Sum of all balances"""
        with self._lock:
            return sum(self._balances.values())

    def report_lines(self, resolve: Optional[Callable[[KeyIdentity], str]] = None) -> List[str]:
        """
        One line per account in insertion order, e.g.
        ``The balance for Alice is 20``. ``resolve`` maps keys to names
        (a PublicKeyMap works); unknown keys show their fingerprint.
        """
        resolve = resolve or (lambda key: key.fingerprint)
        return [
            f"The balance for {resolve(key)} is {amount}"
            for key, amount in self.enumerate()
        ]

    def print_report(self, resolve: Optional[Callable[[KeyIdentity], str]] = None, file=None) -> None:
        file = file or sys.stdout
        for line in self.report_lines(resolve):
            print(line, file=file)

    def __len__(self) -> int:
        return len(self._balances)

    def __iter__(self) -> Iterator[KeyIdentity]:
        return iter(self.keys())

    def __contains__(self, key) -> bool:
        return self.has_account(key)

    def __repr__(self) -> str:
        return f"Ledger(accounts={len(self._balances)}, total={self.total()})"


# Alternative name for the ledger
AccountBalance = Ledger


def create_ledger(
    seed: Optional[Mapping[KeyIdentity, int]] = None,
    verifier: Optional[SignatureVerifier] = None
) -> Ledger:
    """Create a ledger configured from LedgerConfig (journal, conservation mode)"""
    from .config import get_config
    from .journal import TransactionJournal

    config = get_config()
    journal = TransactionJournal() if config.journal_enabled else None
    return Ledger(
        seed=seed,
        journal=journal,
        verifier=verifier,
        strict_conservation=config.strict_conservation
    )
