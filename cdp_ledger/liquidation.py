"""
liquidation.py - Repay-and-seize for undercollateralized accounts

An account is in one of two states, recomputed from scratch on every call:

    HEALTHY       health_factor >= MIN_HEALTH_FACTOR
    LIQUIDATABLE  health_factor <  MIN_HEALTH_FACTOR

A liquidator repays part or all of a LIQUIDATABLE account's debt with
their own stablecoin and receives collateral worth the repaid amount plus
LIQUIDATION_BONUS percent.

Known limitation:
    The bonus only works while collateral is worth comfortably more than
    debt. Once an account's collateral value falls to
    (1 + bonus) * debt or below, seizing collateral lowers its health
    factor instead of raising it, every liquidation fails with
    LiquidationNotImproved, and the bad debt stays where it is. Nothing
    in this package redistributes it.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from .core import (
    LIQUIDATION_BONUS, LIQUIDATION_PRECISION,
    Liquidated, LiquidationNotEligible, LiquidationNotImproved,
    mul_div_down, require_positive_amount,
)
from .collateral import CollateralManager
from .debt import DebtManager
from .health import HealthFactorCalculator
from .interactions import UnitOfWork
from .ledger import AccountLedger


class SolvencyState(Enum):
    HEALTHY = "healthy"
    LIQUIDATABLE = "liquidatable"


@dataclass(frozen=True, slots=True)
class LiquidationResult:
    """
    Outcome of a successful liquidation.

    Attributes:
        debt_covered: Debt repaid on the debtor's behalf
        collateral_seized: Collateral sent to the liquidator, bonus included
        bonus_collateral: The bonus part of collateral_seized
        starting_health_factor: Debtor's health factor before
        ending_health_factor: Debtor's health factor after (strictly greater)
    """
    liquidator: str
    debtor: str
    asset: str
    debt_covered: int
    collateral_seized: int
    bonus_collateral: int
    starting_health_factor: int
    ending_health_factor: int


@dataclass(frozen=True, slots=True)
class AccountHealth:
    account: str
    minted_debt: int
    health_factor: int


class LiquidationEngine:
    """Orchestrates liquidations through the collateral and debt managers."""

    def __init__(
        self,
        ledger: AccountLedger,
        calculator: HealthFactorCalculator,
        collateral: CollateralManager,
        debt: DebtManager,
        liquidation_bonus: int = LIQUIDATION_BONUS,
        liquidation_precision: int = LIQUIDATION_PRECISION,
    ):
        self.ledger = ledger
        self.calculator = calculator
        self.collateral = collateral
        self.debt = debt
        self.liquidation_bonus = liquidation_bonus
        self.liquidation_precision = liquidation_precision

    def solvency_state(self, account: str) -> SolvencyState:
        if self.calculator.health_factor(account) >= self.calculator.min_health_factor:
            return SolvencyState.HEALTHY
        return SolvencyState.LIQUIDATABLE

    def collateral_to_seize(self, asset: str, debt_to_cover: int) -> Tuple[int, int]:
        """
        Collateral owed to a liquidator for covering `debt_to_cover`.

        Returns:
            (total, bonus) in base units of `asset`; total includes bonus
        """
        covered = self.calculator.token_amount_from_usd_value(asset, debt_to_cover)
        bonus = mul_div_down(covered, self.liquidation_bonus, self.liquidation_precision)
        return covered + bonus, bonus

    def liquidate(
        self,
        uow: UnitOfWork,
        liquidator: str,
        asset: str,
        debtor: str,
        debt_to_cover: int,
    ) -> LiquidationResult:
        """
        Repay `debt_to_cover` of `debtor`'s debt and seize `asset` collateral.

        Steps:
        1. Refuse if the debtor is HEALTHY
        2. Convert the covered debt into `asset` at the current price
        3. Add the liquidation bonus
        4. Redeem debtor -> liquidator, then burn the liquidator's stablecoin
        5. Require the debtor's health factor to have strictly increased
        6. Require the liquidator to still be healthy

        Raises:
            InvalidAmount: debt_to_cover is not a positive int
            UnsupportedAsset: asset is not registered
            LiquidationNotEligible: debtor is HEALTHY
            InsufficientBalance: debtor lacks the collateral or the debt
            LiquidationNotImproved: debtor's health factor did not go up
            HealthFactorTooLow: liquidator would be left unhealthy
        """
        require_positive_amount(debt_to_cover, "debt_to_cover")
        self.ledger.registry.require(asset)

        starting = self.calculator.health_factor(debtor)
        if starting >= self.calculator.min_health_factor:
            raise LiquidationNotEligible(
                f"{debtor} is healthy (health factor {starting}); nothing to liquidate"
            )

        seized, bonus = self.collateral_to_seize(asset, debt_to_cover)
        self.collateral.redeem(uow, debtor, liquidator, asset, seized, check_health=False)
        self.debt.burn(uow, liquidator, debtor, debt_to_cover)

        ending = self.calculator.health_factor(debtor)
        if ending <= starting:
            raise LiquidationNotImproved(
                f"{debtor}: health factor {ending} after liquidation, {starting} before"
            )
        self.collateral.require_healthy(liquidator)

        self.ledger.emit(Liquidated(
            liquidator=liquidator, debtor=debtor, asset=asset,
            debt_covered=debt_to_cover, collateral_seized=seized,
        ))
        return LiquidationResult(
            liquidator=liquidator,
            debtor=debtor,
            asset=asset,
            debt_covered=debt_to_cover,
            collateral_seized=seized,
            bonus_collateral=bonus,
            starting_health_factor=starting,
            ending_health_factor=ending,
        )

    def liquidatable_accounts(self) -> List[AccountHealth]:
        """
        Every LIQUIDATABLE account, lowest health factor first.

        Read-only. Accounts without debt are skipped without pricing.
        """
        found: List[AccountHealth] = []
        for account in self.ledger.accounts():
            minted = self.ledger.minted_debt(account)
            if minted == 0:
                continue
            health_factor = self.calculator.health_factor(account)
            if health_factor < self.calculator.min_health_factor:
                found.append(AccountHealth(account, minted, health_factor))
        found.sort(key=lambda h: (h.health_factor, h.account))
        return found
