"""
Test suite for the transaction data model

Tests construction checks, aggregation of claims, totals, conservation and
signature validity at the transaction level.
"""

import pytest

from coin_ledger.keys import PublicKeyMap
from coin_ledger.transactions import (
    Transaction, TxInput, TxInputList, TxInputUnsigned, TxOutput, TxOutputList
)
from coin_ledger.wallet import Wallet, sample_signature


class TestRecords:
    """Test TxInput / TxOutput construction"""

    def setup_method(self):
        self.wallet = Wallet.generate(["A1", "B1"], "ed25519")
        self.a1 = self.wallet.public_key("A1")
        self.b1 = self.wallet.public_key("B1")

    def test_valid_records(self):
        tx_input = TxInput(self.a1, 15, b"sig")
        output = TxOutput(self.b1, 0)

        assert tx_input.sender == self.a1
        assert tx_input.amount == 15
        assert tx_input.signature == b"sig"
        assert output.recipient == self.b1
        assert output.amount == 0

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            TxInput(self.a1, -1, b"sig")
        with pytest.raises(ValueError, match="cannot be negative"):
            TxOutput(self.b1, -5)

    @pytest.mark.parametrize("amount", [1.5, "10", True, None])
    def test_non_integer_amount_rejected(self, amount):
        with pytest.raises(ValueError, match="must be an integer"):
            TxOutput(self.b1, amount)

    def test_signature_must_be_bytes(self):
        with pytest.raises(ValueError, match="signature must be bytes"):
            TxInput(self.a1, 1, "sig")

    def test_key_type_checked(self):
        with pytest.raises(ValueError, match="must be a KeyIdentity"):
            TxOutput("B1", 10)

    def test_records_are_immutable(self):
        output = TxOutput(self.b1, 10)
        with pytest.raises(AttributeError):
            output.amount = 20


class TestLists:
    """Test input/output lists and aggregation"""

    def setup_method(self):
        self.wallet = Wallet.generate(["A1", "B1", "C1"], "ed25519")
        self.a1 = self.wallet.public_key("A1")
        self.b1 = self.wallet.public_key("B1")
        self.c1 = self.wallet.public_key("C1")

    def test_totals(self):
        inputs = TxInputList.of((self.a1, 15, b"s"), (self.b1, 5, b"s"))
        outputs = TxOutputList.of((self.c1, 12), (self.a1, 3))

        assert inputs.total_amount() == 20
        assert outputs.total_amount() == 15
        assert TxInputList().total_amount() == 0

    def test_aggregate_sums_repeated_keys(self):
        inputs = TxInputList.of(
            (self.a1, 15, b"s"), (self.b1, 5, b"s"), (self.a1, 15, b"s")
        )

        aggregate = inputs.aggregate()

        assert aggregate == {self.a1: 30, self.b1: 5}
        assert list(aggregate) == [self.a1, self.b1]

    def test_to_account_balance(self):
        inputs = TxInputList.of((self.a1, 15, b"s"), (self.a1, 15, b"s"))

        projection = inputs.to_account_balance()

        assert projection.balance(self.a1) == 30
        assert len(projection) == 1

    def test_order_preserved(self):
        outputs = TxOutputList.of((self.c1, 1), (self.a1, 2), (self.b1, 3))

        assert [o.recipient for o in outputs] == [self.c1, self.a1, self.b1]
        assert outputs[1].amount == 2
        assert len(outputs) == 3

    def test_equality(self):
        assert TxOutputList.of((self.a1, 1)) == TxOutputList.of((self.a1, 1))
        assert TxOutputList.of((self.a1, 1)) != TxOutputList.of((self.a1, 2))

    def test_rejects_wrong_entry_types(self):
        with pytest.raises(ValueError, match="must be TxOutput"):
            TxOutputList([TxInput(self.a1, 1, b"s")])
        with pytest.raises(ValueError, match="must be TxInput"):
            TxInputList([TxOutput(self.a1, 1)])

    def test_check_signatures_against_output_list(self):
        outputs = TxOutputList.of((self.b1, 10), (self.c1, 20))
        signed = TxInputList([TxInputUnsigned(self.a1, 30).sign(outputs, self.wallet, "A1")])
        other = TxOutputList.of((self.b1, 20), (self.c1, 10))

        assert signed.check_signatures(outputs)
        assert not signed.check_signatures(other)

    def test_empty_input_list_checks_vacuously(self):
        assert TxInputList().check_signatures(TxOutputList.of((self.a1, 1)))


class TestTransaction:
    """Test transaction-level checks"""

    def setup_method(self):
        self.alice = Wallet.generate(["A1", "A2"], "ed25519")
        self.bob = Wallet.generate(["B2"], "ed25519")
        self.carol = Wallet.generate(["C2"], "ed25519")
        self.a1 = self.alice.public_key("A1")
        self.a2 = self.alice.public_key("A2")
        self.b2 = self.bob.public_key("B2")
        self.c2 = self.carol.public_key("C2")

        self.outputs = TxOutputList.of((self.b2, 10), (self.c2, 10), (self.a2, 15))
        self.tx = Transaction(
            TxInputList([TxInputUnsigned(self.a1, 35).sign(self.outputs, self.alice, "A1")]),
            self.outputs
        )

    def test_amount_valid_when_balanced(self):
        assert self.tx.is_amount_valid()
        assert self.tx.is_amount_valid(strict=True)

    def test_amount_valid_with_surplus(self):
        outputs = TxOutputList.of((self.b2, 10))
        tx = Transaction(TxInputList.of((self.a1, 35, b"s")), outputs)

        assert tx.is_amount_valid()
        assert not tx.is_amount_valid(strict=True)

    def test_amount_invalid_when_outputs_exceed_inputs(self):
        tx = Transaction(TxInputList.of((self.a1, 5, b"s")), TxOutputList.of((self.b2, 6)))
        assert not tx.is_amount_valid()

    def test_signature_valid(self):
        assert self.tx.is_signature_valid()

    def test_signature_invalid_with_sample_signature(self):
        tx = Transaction(
            TxInputList.of((self.a1, 35, sample_signature(self.alice, "A1"))),
            self.outputs
        )
        assert not tx.is_signature_valid()

    def test_signature_invalid_when_outputs_replaced(self):
        tampered = Transaction(self.tx.inputs, TxOutputList.of((self.b2, 35)))
        assert not tampered.is_signature_valid()

    def test_one_bad_input_invalidates_transaction(self):
        outputs = TxOutputList.of((self.a2, 20))
        good = TxInputUnsigned(self.b2, 10).sign(outputs, self.bob, "B2")
        bad = TxInput(self.c2, 10, sample_signature(self.carol, "C2"))

        tx = Transaction(TxInputList([good, bad]), outputs)

        assert not tx.is_signature_valid()

    def test_accepts_plain_lists(self):
        tx = Transaction(list(self.tx.inputs), list(self.outputs))

        assert isinstance(tx.inputs, TxInputList)
        assert tx == self.tx

    def test_transaction_id_covers_signatures(self):
        forged = Transaction(TxInputList.of((self.a1, 35, b"other")), self.outputs)

        assert len(self.tx.transaction_id) == 64
        assert self.tx.transaction_id != forged.transaction_id

    def test_dict_round_trip_keeps_signature_valid(self):
        restored = Transaction.from_dict(self.tx.to_dict())

        assert restored == self.tx
        assert restored.is_signature_valid()

    def test_describe(self):
        names = PublicKeyMap()
        names.merge(self.alice.to_public_key_map())
        names.merge(self.bob.to_public_key_map())
        names.merge(self.carol.to_public_key_map())

        assert self.tx.describe(names) == [
            "Transaction inputs:",
            "  A1 spends 35",
            "Transaction outputs:",
            "  B2 receives 10",
            "  C2 receives 10",
            "  A2 receives 15",
        ]
