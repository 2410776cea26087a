"""
stress.py - Price-shock analysis of an engine's book

Answers "what happens to solvency if prices move" without touching the
engine. Prices are read non-strictly (no staleness check) because this is
reporting, not settlement. Results are numpy float arrays; the exact
integer arithmetic lives in health.py.

Functions:
- balance_matrix: accounts x assets collateral matrix and debt vector
- health_factor_curve: one account's health factor under a range of shocks
- shock_grid: book-wide health factors and aggregates under a range of shocks
- liquidation_price: price of one asset at which an account becomes liquidatable
- system_snapshot: aggregate collateralization at current prices

The liquidation_incentive_exhausted flag marks the regime in which the
collateral backing the whole book is worth no more than
(1 + bonus) * total debt. There, liquidations stop improving health
factors and no liquidator can be paid; the engine has no remedy for it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from .core import PRECISION


@dataclass(frozen=True, slots=True)
class SystemSnapshot:
    """
    Aggregate state of the book at one set of prices.

    Attributes:
        total_collateral_value: Sum of all collateral value, PRECISION-scaled
        total_debt: Sum of all minted debt
        collateralization_ratio: total_collateral_value / total_debt (inf without debt)
        liquidatable_accounts: Accounts below the minimum health factor
        liquidation_incentive_exhausted: collateral <= (1 + bonus) * debt
    """
    total_collateral_value: int
    total_debt: int
    collateralization_ratio: float
    liquidatable_accounts: int
    liquidation_incentive_exhausted: bool


def _prices(engine, strict: bool = False) -> np.ndarray:
    return np.array(
        [engine.oracle.price(a, strict=strict).usd_price / PRECISION
         for a in engine.registry.symbols],
        dtype=float,
    )


def balance_matrix(engine) -> Tuple[Tuple[str, ...], np.ndarray, np.ndarray]:
    """
    Collateral and debt of every account, in whole units.

    Returns:
        (accounts, collateral[accounts, assets], debt[accounts])
    """
    accounts = engine.ledger.accounts()
    symbols = engine.registry.symbols
    collateral = np.zeros((len(accounts), len(symbols)), dtype=float)
    debt = np.zeros(len(accounts), dtype=float)
    for i, account in enumerate(accounts):
        balances = engine.ledger.collateral_balances(account)
        collateral[i, :] = [balances[s] / PRECISION for s in symbols]
        debt[i] = engine.ledger.minted_debt(account) / PRECISION
    return accounts, collateral, debt


def _shock_vector(engine, shock_assets: Optional[Sequence[str]]) -> np.ndarray:
    """1.0 where a shock applies, 0.0 where the price is held."""
    symbols = engine.registry.symbols
    if shock_assets is None:
        return np.ones(len(symbols))
    for asset in shock_assets:
        engine.registry.require(asset)
    return np.array([1.0 if s in shock_assets else 0.0 for s in symbols])


def _shocked_prices(engine, shocks, shock_assets) -> np.ndarray:
    """shocks x assets matrix of prices after multiplying by each shock."""
    base = _prices(engine)
    mask = _shock_vector(engine, shock_assets)
    shocks = np.asarray(shocks, dtype=float)
    # Shocked assets scale by the shock, the rest keep a factor of 1.
    factors = 1.0 + np.outer(shocks - 1.0, mask)
    return factors * base


def _health_factors(engine, collateral_value: np.ndarray, debt: np.ndarray) -> np.ndarray:
    threshold = engine.liquidation_threshold / engine.liquidation_precision
    with np.errstate(divide="ignore", invalid="ignore"):
        hf = np.where(debt > 0, collateral_value * threshold / debt, np.inf)
    return hf


def health_factor_curve(
    engine,
    account: str,
    shocks: Sequence[float],
    shock_assets: Optional[Sequence[str]] = None,
) -> np.ndarray:
    """
    An account's health factor (1.0 = boundary) under each price multiplier.

    Args:
        engine: CollateralEngine to read
        account: Account to evaluate
        shocks: Price multipliers, e.g. np.linspace(0.1, 1.0, 10)
        shock_assets: Assets the shock applies to (default: all)

    Returns:
        Array with one health factor per shock; inf for an account without debt
    """
    balances = engine.ledger.collateral_balances(account)
    amounts = np.array([balances[s] / PRECISION for s in engine.registry.symbols])
    debt = engine.ledger.minted_debt(account) / PRECISION
    values = _shocked_prices(engine, shocks, shock_assets) @ amounts
    return _health_factors(engine, values, np.full(values.shape, debt))


def shock_grid(
    engine,
    shocks: Sequence[float],
    shock_assets: Optional[Sequence[str]] = None,
) -> Dict[str, np.ndarray]:
    """
    Book-wide response to each price multiplier.

    Returns:
        Dict of arrays indexed by shock:
        - 'health_factors': shocks x accounts
        - 'collateral_value': total collateral value
        - 'total_debt': total debt (constant across shocks)
        - 'collateralization_ratio': collateral_value / total_debt
        - 'liquidatable': number of accounts below the minimum
        - 'incentive_exhausted': collateral_value <= (1 + bonus) * total_debt
    """
    accounts, collateral, debt = balance_matrix(engine)
    prices = _shocked_prices(engine, shocks, shock_assets)
    values = prices @ collateral.T
    hf = _health_factors(engine, values, np.broadcast_to(debt, values.shape))
    total_value = values.sum(axis=1)
    total_debt = np.full(total_value.shape, debt.sum())
    bonus = engine.liquidation_bonus / engine.liquidation_precision
    min_hf = engine.min_health_factor / PRECISION
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.where(total_debt > 0, total_value / total_debt, np.inf)
    return {
        'accounts': np.array(accounts, dtype=object),
        'health_factors': hf,
        'collateral_value': total_value,
        'total_debt': total_debt,
        'collateralization_ratio': ratio,
        'liquidatable': (hf < min_hf).sum(axis=1),
        'incentive_exhausted': (total_debt > 0) & (total_value <= (1.0 + bonus) * total_debt),
    }


def liquidation_price(engine, account: str, asset: str) -> Optional[int]:
    """
    Price of `asset` (PRECISION-scaled) below which `account` is liquidatable.

    Other assets are held at their current prices. Integer math, with the
    boundary rounded up; floor rounding inside the health factor can move
    the true boundary by a few base units.

    Returns:
        None if the account has no debt or holds none of `asset`;
        0 if the other collateral alone keeps the account healthy.
    """
    engine.registry.require(asset)
    debt = engine.ledger.minted_debt(account)
    amount = engine.ledger.collateral_balance(account, asset)
    if debt == 0 or amount == 0:
        return None
    # Collateral value at which health factor == min_health_factor.
    required_adjusted = -(-engine.min_health_factor * debt // PRECISION)
    required_value = -(-required_adjusted * engine.liquidation_precision // engine.liquidation_threshold)
    other_value = sum(
        value for symbol, value in
        engine.calculator.collateral_values(account, strict=False).items()
        if symbol != asset
    )
    needed = required_value - other_value
    if needed <= 0:
        return 0
    return -(-needed * PRECISION // amount)


def system_snapshot(engine) -> SystemSnapshot:
    """Aggregate collateralization at current (non-strict) prices."""
    total_value = 0
    total_debt = 0
    liquidatable = 0
    for account in engine.ledger.accounts():
        value = engine.calculator.account_collateral_value(account, strict=False)
        debt = engine.ledger.minted_debt(account)
        total_value += value
        total_debt += debt
        if debt and engine.calculator.health_factor(account, strict=False) < engine.min_health_factor:
            liquidatable += 1
    ratio = total_value / total_debt if total_debt else float("inf")
    exhausted = bool(total_debt) and (
        total_value * engine.liquidation_precision
        <= total_debt * (engine.liquidation_precision + engine.liquidation_bonus)
    )
    return SystemSnapshot(
        total_collateral_value=total_value,
        total_debt=total_debt,
        collateralization_ratio=ratio,
        liquidatable_accounts=liquidatable,
        liquidation_incentive_exhausted=exhausted,
    )
