"""
tokens.py - In-memory collaborators

Reference implementations of the interfaces the engine consumes:

- CollateralToken: a fungible token with balances and allowances that also
  acts as CollateralCustody for the engine's vault
- Stablecoin: the synthetic asset, implementing IssuanceAuthority

Failures that a real token reports (insufficient balance or allowance) come
back as False. Arguments that no real call could carry (non-positive
amounts, empty account ids) raise ValueError.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, Tuple

from .core import ENGINE_VAULT


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError(f"amount must be a positive int, got {amount!r}")


def _check_account(account: str) -> None:
    if not account or not account.strip():
        raise ValueError("account id cannot be empty")


class _FungibleBalances:
    """Balances, allowances and supply shared by both token types."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        self.balances: Dict[str, int] = defaultdict(int)
        self.allowances: Dict[Tuple[str, str], int] = defaultdict(int)
        self.total_supply = 0

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set (not add to) what spender may pull from owner."""
        _check_account(owner)
        _check_account(spender)
        if amount < 0:
            raise ValueError(f"allowance cannot be negative, got {amount}")
        self.allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        _check_account(recipient)
        _check_amount(amount)
        if self.balances.get(sender, 0) < amount:
            return False
        self.balances[sender] -= amount
        self.balances[recipient] += amount
        return True

    def _spend_allowance_and_transfer(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        _check_amount(amount)
        if self.allowances.get((owner, spender), 0) < amount:
            return False
        if not self.transfer(owner, recipient, amount):
            return False
        self.allowances[(owner, spender)] -= amount
        return True

    def _mint(self, to: str, amount: int) -> None:
        _check_account(to)
        _check_amount(amount)
        self.balances[to] += amount
        self.total_supply += amount


class CollateralToken(_FungibleBalances):
    """
    Collateral asset with engine custody.

    Owners approve the vault, then the engine pulls with transfer_in() and
    pays out with transfer_out().

    Example:
        weth = CollateralToken("WETH")
        weth.mint("alice", 10 * 10**18)
        weth.approve("alice", ENGINE_VAULT, 10 * 10**18)
    """

    def __init__(self, symbol: str, vault: str = ENGINE_VAULT):
        super().__init__(symbol)
        self.vault = vault

    def mint(self, to: str, amount: int) -> None:
        """Faucet for tests and simulations."""
        self._mint(to, amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        return self._spend_allowance_and_transfer(spender, owner, recipient, amount)

    def transfer_in(self, owner: str, amount: int) -> bool:
        return self.transfer_from(self.vault, owner, self.vault, amount)

    def transfer_out(self, recipient: str, amount: int) -> bool:
        return self.transfer(self.vault, recipient, amount)

    def __repr__(self):
        return f"CollateralToken({self.symbol}, supply={self.total_supply})"


class Stablecoin(_FungibleBalances):
    """
    The synthetic unit-value asset.

    Only the engine mints and burns. burn() destroys coins the engine
    already holds, so a repayment is a transfer_from() into the engine
    followed by burn().
    """

    def __init__(self, symbol: str = "DSC", owner: str = ENGINE_VAULT):
        super().__init__(symbol)
        self.owner = owner

    def mint(self, to: str, amount: int) -> bool:
        self._mint(to, amount)
        return True

    def burn(self, amount: int) -> None:
        """
        Destroy `amount` coins held by the owner.

        Raises:
            ValueError: amount is not positive or exceeds the owner's balance
        """
        _check_amount(amount)
        if self.balances.get(self.owner, 0) < amount:
            raise ValueError(
                f"burn amount {amount} exceeds balance {self.balances.get(self.owner, 0)}"
            )
        self.balances[self.owner] -= amount
        self.total_supply -= amount

    def burn_from(self, account: str, amount: int) -> bool:
        """
        Destroy `amount` coins held by `account` without an allowance.

        Only the owner issues coins, so only the owner may take them back
        when an issuance is reversed. Returns False if the account holds
        fewer than `amount` coins.
        """
        _check_amount(amount)
        if self.balances.get(account, 0) < amount:
            return False
        self.balances[account] -= amount
        self.total_supply -= amount
        return True

    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool:
        """Move coins out of `sender` on the owner's allowance."""
        return self._spend_allowance_and_transfer(self.owner, sender, recipient, amount)

    def __repr__(self):
        return f"Stablecoin({self.symbol}, supply={self.total_supply})"
