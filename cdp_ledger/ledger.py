"""
ledger.py - Account Ledger

The AccountLedger is the single source of truth for solvency computation.
It stores, per account, one collateral balance for every registered asset
and one minted-debt balance.

Key responsibilities:
    - Implements the AccountView protocol for read-only valuation code
    - Applies credits and debits, refusing any that would go below zero
    - Records every notification in an ordered event log
    - Takes and restores snapshots so callers can commit all-or-nothing

Only CollateralManager, DebtManager and LiquidationEngine write to it.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .core import (
    CollateralRegistry, Event,
    InsufficientBalance,
)


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """Opaque copy of ledger state taken at the start of a unit of work."""
    collateral: Dict[str, Dict[str, int]]
    debt: Dict[str, int]
    event_count: int


class AccountLedger:
    """
    Per-account collateral and debt balances.

    Accounts come into existence on their first write and are never removed;
    a fully repaid account stays behind as a dormant record of zeros.

    Thread Safety:
        Not thread-safe. The engine serializes every mutation.
    """

    def __init__(self, registry: CollateralRegistry, verbose: bool = True):
        """
        Create an empty ledger.

        Args:
            registry: Collateral assets that balances may be held in
            verbose: Print each notification as it is emitted
        """
        self.registry = registry
        self.verbose = verbose
        self._collateral: Dict[str, Dict[str, int]] = defaultdict(dict)
        self._debt: Dict[str, int] = {}
        self.event_log: List[Event] = []

    # ========================================================================
    # AccountView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    def collateral_balance(self, account: str, asset: str) -> int:
        """
        Return the collateral an account holds in one asset.

        Returns 0 for accounts that were never written.

        Raises:
            UnsupportedAsset: If the asset is not registered
        """
        self.registry.require(asset)
        return self._collateral.get(account, {}).get(asset, 0)

    def minted_debt(self, account: str) -> int:
        """Return the account's outstanding debt (0 for unknown accounts)."""
        return self._debt.get(account, 0)

    def accounts(self) -> Tuple[str, ...]:
        """Return every account ever written, sorted for determinism."""
        return tuple(sorted(set(self._collateral) | set(self._debt)))

    def collateral_balances(self, account: str) -> Dict[str, int]:
        """Return the account's balance in every registered asset, in registry order."""
        held = self._collateral.get(account, {})
        return {symbol: held.get(symbol, 0) for symbol in self.registry.symbols}

    def total_debt(self) -> int:
        return sum(self._debt[a] for a in sorted(self._debt))

    def total_collateral(self, asset: str) -> int:
        """Sum of all accounts' balances in one asset."""
        self.registry.require(asset)
        return sum(self._collateral[a].get(asset, 0) for a in sorted(self._collateral))

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def credit_collateral(self, account: str, asset: str, amount: int) -> int:
        """Add to an account's collateral. Returns the new balance."""
        self.registry.require(asset)
        new_balance = self._collateral[account].get(asset, 0) + amount
        self._collateral[account][asset] = new_balance
        return new_balance

    def debit_collateral(self, account: str, asset: str, amount: int) -> int:
        """
        Remove collateral from an account. Returns the new balance.

        Raises:
            InsufficientBalance: If the account holds less than amount
        """
        self.registry.require(asset)
        current = self._collateral.get(account, {}).get(asset, 0)
        if amount > current:
            raise InsufficientBalance(
                f"{account} {asset}: cannot redeem {amount}, balance is {current}"
            )
        self._collateral[account][asset] = current - amount
        return current - amount

    def increase_debt(self, account: str, amount: int) -> int:
        new_debt = self._debt.get(account, 0) + amount
        self._debt[account] = new_debt
        return new_debt

    def decrease_debt(self, account: str, amount: int) -> int:
        """
        Reduce an account's debt. Returns the remaining debt.

        Raises:
            InsufficientBalance: If amount exceeds the outstanding debt
        """
        current = self._debt.get(account, 0)
        if amount > current:
            raise InsufficientBalance(
                f"{account}: cannot burn {amount}, minted debt is {current}"
            )
        self._debt[account] = current - amount
        return current - amount

    def emit(self, event: Event) -> None:
        """Record a notification at the point of the state change."""
        self.event_log.append(event)
        if self.verbose:
            print(f"📣 {event}")

    # ========================================================================
    # SNAPSHOTS
    # ========================================================================

    def snapshot(self) -> LedgerSnapshot:
        """Capture all balances and the event log position."""
        return LedgerSnapshot(
            collateral={a: dict(b) for a, b in self._collateral.items()},
            debt=dict(self._debt),
            event_count=len(self.event_log),
        )

    def restore(self, snap: LedgerSnapshot) -> None:
        """
        Put the ledger back exactly as it was when snap was taken.

        Events emitted after the snapshot are discarded along with the
        balance changes they described.
        """
        self._collateral = defaultdict(dict, {a: dict(b) for a, b in snap.collateral.items()})
        self._debt = dict(snap.debt)
        del self.event_log[snap.event_count:]

    def __repr__(self):
        return f"AccountLedger({len(self.accounts())} accounts, {len(self.event_log)} events)"
