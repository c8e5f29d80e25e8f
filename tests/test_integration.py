"""
Integration test: the full demo scenario

Wallets, administrative balance changes, deductibility and signature checks,
two transactions, and a journal replay.
"""

import io

from coin_ledger.demo import run_demo


class TestDemoScenario:
    """Run the scenario end to end and check every outcome"""

    def setup_method(self):
        self.out = io.StringIO()
        self.results = run_demo(algorithm="ed25519", out=self.out)
        self.ledger = self.results["ledger"]
        self.names = self.results["names"]

    def test_checks(self):
        assert self.results["txil1_deductible"] is True
        assert self.results["txil2_deductible"] is False
        assert self.results["signed_input_valid"] is True
        assert self.results["forged_input_valid"] is False
        assert self.results["tx1"] is True
        assert self.results["tx2"] is True
        assert self.results["replay_matches"] is True

    def test_final_balances(self):
        assert self.ledger.report_lines(self.names) == [
            "The balance for A1 is 0",
            "The balance for A2 is 15",
            "The balance for B1 is 5",
            "The balance for B2 is 0",
            "The balance for C1 is 10",
            "The balance for C2 is 0",
            "The balance for C3 is 5",
            "The balance for D1 is 15",
        ]
        assert self.ledger.total() == 50

    def test_journal(self):
        journal = self.ledger.journal

        assert len(journal) == 2
        assert journal.verify_integrity()['valid']

    def test_output(self):
        text = self.out.getvalue()

        assert "can txil1 be deducted? True" in text
        assert "can txil2 be deducted? False" in text
        assert "Signatures approved and the transaction is valid" in text
        assert text.rstrip().endswith("Replayed ledger matches: True")
