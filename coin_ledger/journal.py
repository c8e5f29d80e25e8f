"""
Transaction Journal Module

Hash-chained, append-only record of everything that changed a ledger, with
SHA-256 for tamper detection. A journal attached to a ledger starts with the
ledger's opening balances, then holds one entry per administrative balance
write and one per applied transaction, so replaying it from an empty state
reproduces the ledger.

A journal belongs to a single ledger.
"""

import hashlib
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import PreconditionViolation
from .keys import KeyIdentity
from .logging_config import get_logger, log_action
from .signatures import SignatureVerifier, canonical_bytes
from .transactions import Transaction


class EntryKind(Enum):
    """What a journal entry records"""
    OPENING = "opening"            # Balances the ledger held when the journal was attached
    ADJUSTMENT = "adjustment"      # Balance writes outside a transaction
    TRANSACTION = "transaction"    # A validated transaction that was applied


def _balance_rows(balances: Mapping[KeyIdentity, int]) -> List[List[Any]]:
    return [[key.hex, amount] for key, amount in balances.items()]


@dataclass
class JournalEntry:
    """
    One change to the ledger, chained to the entry before it.

    ``payload`` is ``Transaction.to_dict()`` for transaction entries and
    ``{"action", "balances": [[key hex, balance], ...]}`` for opening and
    adjustment entries, where each balance is the value after the write.
    """
    sequence: int
    kind: EntryKind
    payload: Dict[str, Any]
    recorded_at: datetime
    previous_hash: str
    current_hash: str = ""
    transaction_id: Optional[str] = None

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this entry
        Hash includes all fields except current_hash
        """
        hash_data = {
            'sequence': self.sequence,
            'kind': self.kind.value,
            'transaction_id': self.transaction_id,
            'payload': self.payload,
            'recorded_at': self.recorded_at.isoformat(),
            'previous_hash': self.previous_hash
        }
        return hashlib.sha256(canonical_bytes(hash_data)).hexdigest()

    def verify_hash(self) -> bool:
        return self.current_hash == self.calculate_hash()

    def to_transaction(self) -> Transaction:
        if self.kind != EntryKind.TRANSACTION:
            raise ValueError(f"Journal entry {self.sequence} is a {self.kind.value} entry")
        return Transaction.from_dict(self.payload)

    def balances(self) -> Dict[KeyIdentity, int]:
        """Balances written by an opening or adjustment entry, in write order"""
        if self.kind == EntryKind.TRANSACTION:
            raise ValueError(f"Journal entry {self.sequence} is a transaction entry")
        return {KeyIdentity.from_hex(key): amount for key, amount in self.payload['balances']}


class TransactionJournal:
    """
    Append-only journal of ledger changes
    """

    def __init__(self):
        self._entries: List[JournalEntry] = []
        self._last_hash: str = ""
        self._lock = threading.Lock()
        self.logger = get_logger("coin_ledger.journal")

    def record(self, tx: Transaction, ledger_id: Optional[str] = None) -> JournalEntry:
        """
        Append an applied transaction

        Args:
            tx: Transaction that has just been applied
            ledger_id: Ledger it was applied to, for logging

        Returns:
            Created JournalEntry
        """
        return self._append(
            EntryKind.TRANSACTION, tx.to_dict(), ledger_id, transaction_id=tx.transaction_id
        )

    def record_opening(self, balances: Mapping[KeyIdentity, int],
                       ledger_id: Optional[str] = None) -> JournalEntry:
        """Append the balances a ledger held when this journal was attached"""
        return self._append(
            EntryKind.OPENING, {'action': 'open', 'balances': _balance_rows(balances)}, ledger_id
        )

    def record_adjustment(self, balances: Mapping[KeyIdentity, int], action: str,
                          ledger_id: Optional[str] = None) -> JournalEntry:
        """Append balances written outside a transaction (after the write)"""
        return self._append(
            EntryKind.ADJUSTMENT, {'action': action, 'balances': _balance_rows(balances)}, ledger_id
        )

    def _append(self, kind: EntryKind, payload: Dict[str, Any], ledger_id: Optional[str],
                transaction_id: Optional[str] = None) -> JournalEntry:
        with self._lock:
            entry = JournalEntry(
                sequence=len(self._entries),
                kind=kind,
                payload=payload,
                recorded_at=datetime.now(timezone.utc),
                previous_hash=self._last_hash,
                transaction_id=transaction_id
            )
            entry.current_hash = entry.calculate_hash()

            self._entries.append(entry)
            self._last_hash = entry.current_hash

        log_action(
            self.logger, "debug", f"Journal {kind.value} entry recorded",
            action=f"record_{kind.value}", ledger_id=ledger_id, transaction_id=transaction_id,
            details={"sequence": entry.sequence, "hash": entry.current_hash}
        )
        return entry

    def entries(self, kind: Optional[EntryKind] = None) -> List[JournalEntry]:
        """All entries in order, or only those of ``kind``"""
        with self._lock:
            return [entry for entry in self._entries if kind is None or entry.kind == kind]

    @property
    def latest_hash(self) -> str:
        return self._last_hash

    def __len__(self) -> int:
        return len(self._entries)

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_entries': 0,
            'hash_errors': [],
            'chain_breaks': []
        }

        entries = self.entries()
        result['total_entries'] = len(entries)

        previous_hash = ""
        for position, entry in enumerate(entries):
            if not entry.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'sequence': entry.sequence,
                    'position': position,
                    'expected_hash': entry.calculate_hash(),
                    'actual_hash': entry.current_hash
                })

            if entry.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'sequence': entry.sequence,
                    'position': position,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': entry.previous_hash
                })
            previous_hash = entry.current_hash

        return result

    def replay(
        self,
        seed: Optional[Mapping[KeyIdentity, int]] = None,
        verifier: Optional[SignatureVerifier] = None,
        strict_conservation: bool = False
    ):
        """
        Rebuild a ledger by applying every entry in order. Opening and
        adjustment entries write their balances; transaction entries are
        re-validated and applied.

        Args:
            seed: Starting balances, only needed for a journal that was not
                attached to a ledger (no opening entry)
            verifier: Signature verifier for re-validation
            strict_conservation: Conservation mode the journal was recorded under

        Returns:
            A new Ledger without a journal attached

        Raises:
            PreconditionViolation: A recorded transaction does not validate
                against the replayed state
        """
        from .ledger import Ledger

        ledger = Ledger(seed=seed, verifier=verifier, strict_conservation=strict_conservation)
        entries = self.entries()
        for entry in entries:
            if entry.kind != EntryKind.TRANSACTION:
                for key, amount in entry.balances().items():
                    ledger.set_balance(key, amount)
                continue

            tx = entry.to_transaction()
            token = ledger.approve(tx)
            if token is None:
                result = ledger.check_transaction(tx)
                raise PreconditionViolation(
                    f"Journal entry {entry.sequence} does not replay: {result.message}",
                    result
                )
            ledger.apply_transaction(token)

        log_action(
            self.logger, "info", "Journal replayed",
            action="replay_journal", ledger_id=ledger.ledger_id,
            details={"entries": len(entries), "accounts": len(ledger)}
        )
        return ledger
