"""
Demo scenario: four wallets, administrative balance changes, deductibility
checks, signature checks and two transactions applied to a ledger.
"""

import sys
from typing import Any, Dict, Optional, TextIO

from .ledger import Ledger, create_ledger
from .keys import PublicKeyMap
from .transactions import Transaction, TxInputList, TxInputUnsigned, TxOutputList
from .wallet import Wallet, sample_signature


def run_demo(algorithm: Optional[str] = None, out: Optional[TextIO] = None) -> Dict[str, Any]:
    """
    Run the scenario, printing each step to ``out``.

    Returns:
        Dictionary with the outcome of every check plus the final ledger
        and the name map used for reporting
    """
    out = out or sys.stdout
    results: Dict[str, Any] = {}

    def step(title: str) -> None:
        print(f"\n{title}", file=out)

    def show(ledger: Ledger, names: PublicKeyMap) -> None:
        ledger.print_report(names, file=out)

    step("Create wallets for Alice (A1, A2), Bob (B1, B2), Carol (C1, C2, C3) and David (D1)")
    alice = Wallet.generate(["A1", "A2"], algorithm)
    bob = Wallet.generate(["B1", "B2"], algorithm)
    carol = Wallet.generate(["C1", "C2", "C3"], algorithm)
    david = Wallet.generate(["D1"], algorithm)

    names = PublicKeyMap()
    for wallet in (alice, bob, carol, david):
        names.merge(wallet.to_public_key_map())

    a1, a2 = names.get_public_key("A1"), names.get_public_key("A2")
    b1, b2 = names.get_public_key("B1"), names.get_public_key("B2")
    c1, c2, c3 = (names.get_public_key(n) for n in ("C1", "C2", "C3"))
    d1 = names.get_public_key("D1")

    example_signature = sample_signature(alice, "A1")

    step("Open every account with balance 0")
    ledger = create_ledger()
    for key in (a1, a2, b1, b2, c1, c2, c3, d1):
        ledger.add_account(key, 0)
    show(ledger, names)

    step("Set the balance for A1 to 20")
    ledger.set_balance(a1, 20)
    show(ledger, names)

    step("Add 15 to the balance for B1")
    ledger.increment(b1, 15)
    show(ledger, names)

    step("Subtract 5 from the balance for B1")
    ledger.decrement(b1, 5)
    show(ledger, names)

    step("Set the balance for C1 to 10")
    ledger.set_balance(c1, 10)
    show(ledger, names)

    step("Can inputs A1:15, B1:5 be deducted?")
    txil1 = TxInputList.of((a1, 15, example_signature), (b1, 5, example_signature))
    results["txil1_deductible"] = ledger.can_deduct_inputs(txil1)
    print(f"can txil1 be deducted? {results['txil1_deductible']}", file=out)

    step("Can inputs A1:15, A1:15 be deducted?")
    txil2 = TxInputList.of((a1, 15, example_signature), (a1, 15, example_signature))
    results["txil2_deductible"] = ledger.can_deduct_inputs(txil2)
    print(f"can txil2 be deducted? {results['txil2_deductible']}", file=out)

    step("Deduct A1:15, B1:5 from the ledger")
    ledger.apply_inputs(txil1)
    show(ledger, names)

    step("Credit A1 twice with 15")
    ledger.apply_outputs(TxOutputList.of((a1, 15), (a1, 15)))
    show(ledger, names)

    step("A1 spends 30, signed over outputs B2:10, C1:20")
    txol2 = TxOutputList.of((b2, 10), (c1, 20))
    signed = TxInputList([TxInputUnsigned(a1, 30).sign(txol2, alice, "A1")])
    results["signed_input_valid"] = signed.check_signatures(txol2)
    print(f"Is the signature valid for the signed input? {results['signed_input_valid']}", file=out)

    step("A1 spends 30 with the example signature")
    forged = TxInputList.of((a1, 30, example_signature))
    results["forged_input_valid"] = forged.check_signatures(txol2)
    print(f"Is the signature valid for the signed input? {results['forged_input_valid']}", file=out)

    step("Transaction tx1: A1 spends 35, B2 gets 10, C2 gets 10, change of 15 to A2")
    outputs = TxOutputList.of((b2, 10), (c2, 10), (a2, 15))
    tx1 = Transaction(
        TxInputList([TxInputUnsigned(a1, 35).sign(outputs, alice, "A1")]),
        outputs
    )
    for line in tx1.describe(names):
        print(line, file=out)
    results["tx1"] = _settle(ledger, tx1, names, out)

    step("Transaction tx2: B2 and C2 each spend 10, D1 gets 15, change of 5 to C3")
    outputs = TxOutputList.of((d1, 15), (c3, 5))
    tx2 = Transaction(
        TxInputList([
            TxInputUnsigned(b2, 10).sign(outputs, bob, "B2"),
            TxInputUnsigned(c2, 10).sign(outputs, carol, "C2"),
        ]),
        outputs
    )
    for line in tx2.describe(names):
        print(line, file=out)
    results["tx2"] = _settle(ledger, tx2, names, out)

    if ledger.journal is not None:
        step("Rebuild the ledger by replaying its journal")
        replayed = ledger.journal.replay(strict_conservation=ledger.strict_conservation)
        results["replay_matches"] = replayed.snapshot() == ledger.snapshot()
        print(f"Replayed ledger matches: {results['replay_matches']}", file=out)

    results["ledger"] = ledger
    results["names"] = names
    return results


def _settle(ledger: Ledger, tx: Transaction, names: PublicKeyMap, out: TextIO) -> bool:
    token = ledger.approve(tx)
    if token is None:
        result = ledger.check_transaction(tx)
        print(f"Transaction is invalid: {result.message}", file=out)
        return False

    print("Signatures approved and the transaction is valid", file=out)
    ledger.apply_transaction(token)
    print("Updated balances:", file=out)
    ledger.print_report(names, file=out)
    return True


def main() -> None:
    from .config import get_config
    from .logging_config import setup_logging

    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format)
    run_demo()


if __name__ == "__main__":
    main()
