"""
health.py - Health factor and price conversion

Pure function architecture, in two layers:

1. PURE CALCULATION FUNCTIONS (calculate_*):
   - Take every input explicitly: amounts, prices, parameters
   - No ledger, no oracle, no hidden state
   - Example: calculate_health_factor(total_minted, collateral_value_usd)

2. HealthFactorCalculator:
   - Binds an AccountView and a PriceOracleAdapter
   - Reads balances and prices once per call, then defers to calculate_*()

Key Formulas:
    usd_value        = price * amount // PRECISION
    token_amount     = usd_amount * PRECISION // price
    adjusted         = collateral_value * threshold // liquidation_precision
    health_factor    = adjusted * PRECISION // minted_debt
                       (MAX_HEALTH_FACTOR when minted_debt == 0)

Every division goes through mul_div_down() and floors, which never rounds
in the user's favor.
"""

from __future__ import annotations
from typing import Dict

from .core import (
    PRECISION, LIQUIDATION_THRESHOLD, LIQUIDATION_PRECISION,
    MIN_HEALTH_FACTOR, MAX_HEALTH_FACTOR,
    AccountInformation, AccountView, mul_div_down,
)
from .pricing_source import PriceOracleAdapter


# ============================================================================
# PURE CALCULATION FUNCTIONS - All Inputs Explicit
# ============================================================================

def calculate_usd_value(usd_price: int, amount: int) -> int:
    """
    USD value of `amount` base units at a PRECISION-scaled price.

    PURE FUNCTION. Floors.

    Example:
        calculate_usd_value(2000 * 10**18, 15 * 10**18) == 30_000 * 10**18
    """
    return mul_div_down(usd_price, amount, PRECISION)


def calculate_token_amount_from_usd(usd_price: int, usd_amount: int) -> int:
    """
    Base units of an asset worth `usd_amount` at a PRECISION-scaled price.

    PURE FUNCTION. Inverse of calculate_usd_value() up to floor rounding.
    """
    return mul_div_down(usd_amount, PRECISION, usd_price)


def calculate_adjusted_collateral(
    collateral_value_usd: int,
    liquidation_threshold: int = LIQUIDATION_THRESHOLD,
    liquidation_precision: int = LIQUIDATION_PRECISION,
) -> int:
    """Collateral value that counts toward solvency."""
    return mul_div_down(collateral_value_usd, liquidation_threshold, liquidation_precision)


def calculate_health_factor(
    total_minted: int,
    collateral_value_usd: int,
    liquidation_threshold: int = LIQUIDATION_THRESHOLD,
    liquidation_precision: int = LIQUIDATION_PRECISION,
) -> int:
    """
    Scaled ratio of risk-adjusted collateral to debt.

    PURE FUNCTION - All inputs explicit, no hidden state.

    An account with no debt cannot be insolvent. Rather than dividing by
    zero it gets MAX_HEALTH_FACTOR, which compares above every real ratio.

    Args:
        total_minted: Outstanding debt in base units
        collateral_value_usd: Total collateral value, PRECISION-scaled
        liquidation_threshold: Percentage of value counted (50 = 50%)
        liquidation_precision: Denominator of liquidation_threshold

    Returns:
        Health factor where PRECISION (1e18) means exactly 1.0.

    Example:
        >>> calculate_health_factor(5_000 * 10**18, 20_000 * 10**18)
        2000000000000000000
    """
    if total_minted == 0:
        return MAX_HEALTH_FACTOR
    adjusted = calculate_adjusted_collateral(
        collateral_value_usd, liquidation_threshold, liquidation_precision
    )
    return mul_div_down(adjusted, PRECISION, total_minted)


def is_healthy(health_factor: int, min_health_factor: int = MIN_HEALTH_FACTOR) -> bool:
    return health_factor >= min_health_factor


# ============================================================================
# VIEW-BOUND CALCULATOR
# ============================================================================

class HealthFactorCalculator:
    """
    Valuation of ledger accounts at current oracle prices.

    Read-only: it never writes to the ledger. Failures come only from the
    oracle (StaleOracleData, UnknownAsset) or from unregistered assets.
    """

    def __init__(
        self,
        view: AccountView,
        oracle: PriceOracleAdapter,
        liquidation_threshold: int = LIQUIDATION_THRESHOLD,
        liquidation_precision: int = LIQUIDATION_PRECISION,
        min_health_factor: int = MIN_HEALTH_FACTOR,
    ):
        self.view = view
        self.oracle = oracle
        self.liquidation_threshold = liquidation_threshold
        self.liquidation_precision = liquidation_precision
        self.min_health_factor = min_health_factor

    def usd_value(self, asset: str, amount: int, strict: bool = True) -> int:
        price = self.oracle.price(asset, strict=strict)
        return calculate_usd_value(price.usd_price, amount)

    def token_amount_from_usd_value(self, asset: str, usd_amount: int, strict: bool = True) -> int:
        price = self.oracle.price(asset, strict=strict)
        return calculate_token_amount_from_usd(price.usd_price, usd_amount)

    def collateral_values(self, account: str, strict: bool = True) -> Dict[str, int]:
        """Per-asset USD value of an account's collateral, in registry order."""
        values: Dict[str, int] = {}
        for asset in self.oracle.registry.symbols:
            amount = self.view.collateral_balance(account, asset)
            values[asset] = self.usd_value(asset, amount, strict=strict) if amount else 0
        return values

    def account_collateral_value(self, account: str, strict: bool = True) -> int:
        """
        Total USD value of an account's collateral.

        Summed in registry order. Assets with a zero balance are not priced,
        so a stale feed only matters to accounts that hold that asset.
        """
        return sum(self.collateral_values(account, strict=strict).values())

    def account_information(self, account: str) -> AccountInformation:
        return AccountInformation(
            minted_debt=self.view.minted_debt(account),
            collateral_value_usd=self.account_collateral_value(account),
        )

    def health_factor(self, account: str, strict: bool = True) -> int:
        """Recompute an account's health factor from current balances and prices."""
        minted = self.view.minted_debt(account)
        if minted == 0:
            return MAX_HEALTH_FACTOR
        return calculate_health_factor(
            minted,
            self.account_collateral_value(account, strict=strict),
            self.liquidation_threshold,
            self.liquidation_precision,
        )

    def is_solvent(self, account: str) -> bool:
        return is_healthy(self.health_factor(account), self.min_health_factor)
