"""
test_ledger.py - Unit tests for AccountLedger

Tests:
- Reads for unknown accounts
- Credits, debits and underflow protection
- Aggregates in deterministic order
- Event log and snapshot/restore
"""

import pytest

from cdp_ledger import (
    AccountLedger, build_registry,
    CollateralDeposited, DebtMinted,
    InsufficientBalance, UnsupportedAsset,
)


@pytest.fixture
def ledger():
    return AccountLedger(build_registry(["WETH", "WBTC"], ["ETH/USD", "BTC/USD"]), verbose=False)


class TestReads:

    def test_unknown_account_is_zero(self, ledger):
        assert ledger.collateral_balance("nobody", "WETH") == 0
        assert ledger.minted_debt("nobody") == 0
        assert ledger.accounts() == ()

    def test_unregistered_asset(self, ledger):
        with pytest.raises(UnsupportedAsset):
            ledger.collateral_balance("alice", "DOGE")

    def test_collateral_balances_in_registry_order(self, ledger):
        ledger.credit_collateral("alice", "WBTC", 5)
        assert list(ledger.collateral_balances("alice").items()) == [("WETH", 0), ("WBTC", 5)]

    def test_accounts_sorted(self, ledger):
        ledger.increase_debt("carol", 1)
        ledger.credit_collateral("alice", "WETH", 1)
        ledger.credit_collateral("bob", "WETH", 1)
        assert ledger.accounts() == ("alice", "bob", "carol")


class TestMutations:

    def test_credit_and_debit(self, ledger):
        assert ledger.credit_collateral("alice", "WETH", 10) == 10
        assert ledger.credit_collateral("alice", "WETH", 5) == 15
        assert ledger.debit_collateral("alice", "WETH", 15) == 0

    def test_debit_underflow(self, ledger):
        ledger.credit_collateral("alice", "WETH", 10)
        with pytest.raises(InsufficientBalance):
            ledger.debit_collateral("alice", "WETH", 11)
        assert ledger.collateral_balance("alice", "WETH") == 10

    def test_debit_unknown_account(self, ledger):
        with pytest.raises(InsufficientBalance):
            ledger.debit_collateral("nobody", "WETH", 1)

    def test_debt_round_trip(self, ledger):
        ledger.increase_debt("alice", 100)
        assert ledger.decrease_debt("alice", 40) == 60
        with pytest.raises(InsufficientBalance):
            ledger.decrease_debt("alice", 61)
        assert ledger.minted_debt("alice") == 60

    def test_repaid_account_is_kept(self, ledger):
        ledger.increase_debt("alice", 1)
        ledger.decrease_debt("alice", 1)
        assert ledger.accounts() == ("alice",)

    def test_totals(self, ledger):
        ledger.credit_collateral("alice", "WETH", 3)
        ledger.credit_collateral("bob", "WETH", 4)
        ledger.credit_collateral("bob", "WBTC", 9)
        ledger.increase_debt("alice", 10)
        ledger.increase_debt("bob", 20)
        assert ledger.total_collateral("WETH") == 7
        assert ledger.total_collateral("WBTC") == 9
        assert ledger.total_debt() == 30


class TestEventsAndSnapshots:

    def test_emit_appends(self, ledger):
        event = CollateralDeposited(account="alice", asset="WETH", amount=1)
        ledger.emit(event)
        assert ledger.event_log == [event]

    def test_verbose_emit_prints(self, capsys):
        ledger = AccountLedger(build_registry(["WETH"], ["ETH/USD"]), verbose=True)
        ledger.emit(DebtMinted(account="alice", amount=5))
        assert "DebtMinted" in capsys.readouterr().out

    def test_restore_undoes_everything(self, ledger):
        ledger.credit_collateral("alice", "WETH", 10)
        ledger.emit(CollateralDeposited(account="alice", asset="WETH", amount=10))
        snap = ledger.snapshot()

        ledger.debit_collateral("alice", "WETH", 4)
        ledger.credit_collateral("bob", "WBTC", 1)
        ledger.increase_debt("alice", 7)
        ledger.emit(DebtMinted(account="alice", amount=7))

        ledger.restore(snap)
        assert ledger.collateral_balance("alice", "WETH") == 10
        assert ledger.minted_debt("alice") == 0
        assert ledger.accounts() == ("alice",)
        assert len(ledger.event_log) == 1

    def test_snapshot_is_isolated(self, ledger):
        ledger.credit_collateral("alice", "WETH", 10)
        snap = ledger.snapshot()
        ledger.credit_collateral("alice", "WETH", 1)
        assert snap.collateral["alice"]["WETH"] == 10
