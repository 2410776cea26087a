"""
debt.py - Minting and burning of debt

Debt is the engine's record of how much stablecoin an account has drawn.
The stablecoin itself belongs to the issuance authority; this module keeps
the two in step by scheduling mint and pull-and-burn interactions.
"""

from __future__ import annotations

from .core import (
    ENGINE_VAULT,
    DebtBurned, DebtMinted, HealthFactorTooLow, IssuanceAuthority,
    require_positive_amount,
)
from .health import HealthFactorCalculator
from .interactions import StablecoinBurn, StablecoinMint, UnitOfWork
from .ledger import AccountLedger


class DebtManager:
    """Records debt and drives the issuance authority."""

    def __init__(
        self,
        ledger: AccountLedger,
        calculator: HealthFactorCalculator,
        issuance: IssuanceAuthority,
        vault: str = ENGINE_VAULT,
    ):
        self.ledger = ledger
        self.calculator = calculator
        self.issuance = issuance
        self.vault = vault

    def mint(self, uow: UnitOfWork, account: str, amount: int) -> int:
        """
        Increase `account`'s debt by `amount` and issue that much stablecoin to it.

        The health check runs against the increased debt, before any
        stablecoin exists.

        Returns:
            The account's new debt

        Raises:
            InvalidAmount: amount is not a positive int
            HealthFactorTooLow: the new debt is not covered by collateral
        """
        require_positive_amount(amount)

        debt = self.ledger.increase_debt(account, amount)
        health_factor = self.calculator.health_factor(account)
        if health_factor < self.calculator.min_health_factor:
            raise HealthFactorTooLow(account, health_factor, self.calculator.min_health_factor)
        self.ledger.emit(DebtMinted(account=account, amount=amount))
        uow.schedule(StablecoinMint(
            issuance=self.issuance, recipient=account, amount=amount,
        ))
        return debt

    def burn(self, uow: UnitOfWork, payer: str, on_behalf_of: str, amount: int) -> int:
        """
        Reduce `on_behalf_of`'s debt, paid for with `payer`'s stablecoin.

        During liquidation the liquidator pays and the debtor's debt shrinks.

        Returns:
            on_behalf_of's remaining debt

        Raises:
            InvalidAmount: amount is not a positive int
            InsufficientBalance: amount exceeds the outstanding debt
        """
        require_positive_amount(amount)

        remaining = self.ledger.decrease_debt(on_behalf_of, amount)
        self.ledger.emit(DebtBurned(payer=payer, on_behalf_of=on_behalf_of, amount=amount))
        uow.schedule(StablecoinBurn(
            issuance=self.issuance, payer=payer, vault=self.vault, amount=amount,
        ))
        return remaining
