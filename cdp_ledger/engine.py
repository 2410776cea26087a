"""
engine.py - Collateralized-debt engine

The CollateralEngine is the public surface of the package. It wires the
ledger, oracle adapter, calculator and managers together and runs every
mutating entry point as one indivisible unit of work.

Execution of a mutating entry point:
    1. Acquire the reentrancy guard (nested entry raises ReentrantCall)
    2. Snapshot the ledger
    3. Checks and ledger effects via the managers; interactions are scheduled
    4. Commit the interactions: pulls, then re-validate the caller's health
       factor where the operation can lower it, then the single push
    5. On any failure: restore the snapshot, undo executed interactions
       (continuing past a failed undo), re-raise the original error

Key responsibilities:
    - Holds the logical clock used for oracle staleness
    - Exposes read-only queries and protocol constants
    - Prints a one-line APPLIED / REJECTED record per call in verbose mode
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from .core import (
    PRECISION, ADDITIONAL_FEED_PRECISION,
    LIQUIDATION_THRESHOLD, LIQUIDATION_PRECISION, LIQUIDATION_BONUS,
    MIN_HEALTH_FACTOR, ORACLE_TIMEOUT, ENGINE_VAULT,
    AccountInformation, CollateralCustody, CollateralRegistry, Event,
    HealthFactorTooLow, IssuanceAuthority,
)
from .collateral import CollateralManager
from .debt import DebtManager
from .guard import ReentrancyGuard
from .health import HealthFactorCalculator, calculate_health_factor
from .interactions import UnitOfWork
from .ledger import AccountLedger
from .liquidation import AccountHealth, LiquidationEngine, LiquidationResult, SolvencyState
from .pricing_source import PriceFeed, PriceOracleAdapter


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class EngineParameters:
    """
    Risk parameters, fixed for the life of an engine.

    Attributes:
        liquidation_threshold: Percent of collateral value that counts (50 = 200% collateralized)
        liquidation_precision: Denominator for threshold and bonus
        liquidation_bonus: Percent of seized collateral added for the liquidator
        min_health_factor: Solvency boundary, PRECISION-scaled
        oracle_timeout: Maximum age of a strict price reading
    """
    liquidation_threshold: int = LIQUIDATION_THRESHOLD
    liquidation_precision: int = LIQUIDATION_PRECISION
    liquidation_bonus: int = LIQUIDATION_BONUS
    min_health_factor: int = MIN_HEALTH_FACTOR
    oracle_timeout: timedelta = ORACLE_TIMEOUT

    def __post_init__(self):
        if self.liquidation_precision <= 0:
            raise ValueError("liquidation_precision must be positive")
        if not 0 < self.liquidation_threshold <= self.liquidation_precision:
            raise ValueError(
                f"liquidation_threshold must be in (0, {self.liquidation_precision}]"
            )
        if not 0 <= self.liquidation_bonus < self.liquidation_precision:
            raise ValueError(
                f"liquidation_bonus must be in [0, {self.liquidation_precision})"
            )
        if self.min_health_factor <= 0:
            raise ValueError("min_health_factor must be positive")
        if self.oracle_timeout <= timedelta(0):
            raise ValueError("oracle_timeout must be positive")


class CollateralEngine:
    """
    Deposit collateral, mint stablecoin against it, and liquidate the undercollateralized.

    Every mutating method takes the caller's account id first; the caller
    is the one whose tokens move in and whose health is checked.

    Thread Safety:
        Not thread-safe. Each thread should use its own engine.

    Example:
        registry = build_registry(["WETH"], ["ETH/USD"])
        engine = CollateralEngine(
            registry,
            feeds={"ETH/USD": MockPriceFeed(2000 * 10**8, t0)},
            custodies={"WETH": weth},
            issuance=dsc,
            initial_time=t0,
        )
        engine.deposit_collateral_and_mint("alice", "WETH", 10 * 10**18, 5_000 * 10**18)
    """

    def __init__(
        self,
        registry: CollateralRegistry,
        feeds: Mapping[str, PriceFeed],
        custodies: Mapping[str, CollateralCustody],
        issuance: IssuanceAuthority,
        parameters: Optional[EngineParameters] = None,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        vault: str = ENGINE_VAULT,
    ):
        """
        Create an engine.

        Args:
            registry: Collateral assets and their feed ids (immutable)
            feeds: Feed id -> price feed
            custodies: Asset symbol -> custody of that asset
            issuance: Issuance authority of the stablecoin
            parameters: Risk parameters (default: EngineParameters())
            initial_time: Starting logical time (default: 1970-01-01)
            verbose: Print registrations and per-call results
            vault: Account id the engine holds tokens under
        """
        self.registry = registry
        self.parameters = parameters or EngineParameters()
        self.issuance = issuance
        self.vault = vault
        self.verbose = verbose
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)

        self.ledger = AccountLedger(registry, verbose=verbose)
        self.oracle = PriceOracleAdapter(
            registry, feeds, clock=lambda: self._current_time,
            timeout=self.parameters.oracle_timeout,
        )
        self.calculator = HealthFactorCalculator(
            self.ledger, self.oracle,
            liquidation_threshold=self.parameters.liquidation_threshold,
            liquidation_precision=self.parameters.liquidation_precision,
            min_health_factor=self.parameters.min_health_factor,
        )
        self.collateral = CollateralManager(self.ledger, self.calculator, custodies)
        self.debt = DebtManager(self.ledger, self.calculator, issuance, vault=vault)
        self.liquidation = LiquidationEngine(
            self.ledger, self.calculator, self.collateral, self.debt,
            liquidation_bonus=self.parameters.liquidation_bonus,
            liquidation_precision=self.parameters.liquidation_precision,
        )
        self._guard = ReentrancyGuard()

        if self.verbose:
            for asset in registry:
                print(f"📝 Registered collateral: {asset.symbol} (feed {asset.price_feed})")

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Logical time used for oracle staleness checks."""
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Move the logical clock forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # UNIT OF WORK
    # ========================================================================

    def _run(
        self,
        operation: str,
        action: Callable[[UnitOfWork], T],
        revalidate: Sequence[str] = (),
    ) -> T:
        def final_check() -> None:
            for account in revalidate:
                self._require_healthy(account)

        with self._guard.enter(operation):
            snap = self.ledger.snapshot()
            uow = UnitOfWork()
            try:
                result = action(uow)
                uow.commit(before_push=final_check)
            except Exception as e:
                self.ledger.restore(snap)
                uow.rollback()
                if self.verbose:
                    print(f"✗ REJECTED: {operation}: {type(e).__name__}: {e}")
                    for failure in uow.undo_failures:
                        print(f"  ⚠ UNDO FAILED: {type(failure).__name__}: {failure}")
                raise
        if self.verbose:
            print(f"✓ APPLIED: {operation}")
        return result

    def _require_healthy(self, account: str) -> None:
        health_factor = self.calculator.health_factor(account)
        if health_factor < self.parameters.min_health_factor:
            raise HealthFactorTooLow(account, health_factor, self.parameters.min_health_factor)

    # ========================================================================
    # MUTATING OPERATIONS
    # ========================================================================

    def deposit_collateral(self, caller: str, asset: str, amount: int) -> int:
        """
        Deposit `amount` of `asset` from the caller's wallet.

        Returns:
            The caller's collateral balance in `asset` afterwards
        """
        return self._run(
            "deposit_collateral",
            lambda uow: self.collateral.deposit(uow, caller, asset, amount),
        )

    def mint_debt(self, caller: str, amount: int) -> int:
        """
        Mint `amount` of stablecoin to the caller against their collateral.

        Returns:
            The caller's total debt afterwards
        """
        return self._run(
            "mint_debt",
            lambda uow: self.debt.mint(uow, caller, amount),
            revalidate=(caller,),
        )

    def deposit_collateral_and_mint(
        self, caller: str, asset: str, amount: int, mint_amount: int
    ) -> int:
        """Deposit, then mint, as one operation. Returns the caller's debt."""
        def action(uow: UnitOfWork) -> int:
            self.collateral.deposit(uow, caller, asset, amount)
            return self.debt.mint(uow, caller, mint_amount)

        return self._run("deposit_collateral_and_mint", action, revalidate=(caller,))

    def redeem_collateral(self, caller: str, asset: str, amount: int) -> int:
        """
        Withdraw `amount` of `asset` back to the caller's wallet.

        Returns:
            The caller's remaining balance in `asset`
        """
        return self._run(
            "redeem_collateral",
            lambda uow: self.collateral.redeem(uow, caller, caller, asset, amount),
            revalidate=(caller,),
        )

    def burn_debt(self, caller: str, amount: int) -> int:
        """
        Repay `amount` of the caller's own debt with their stablecoin.

        Repaying can only raise a health factor, so an account below the
        minimum may still repay part of its debt.

        Returns:
            The caller's remaining debt
        """
        return self._run(
            "burn_debt",
            lambda uow: self.debt.burn(uow, caller, caller, amount),
        )

    def redeem_collateral_for_debt(
        self, caller: str, asset: str, amount: int, burn_amount: int
    ) -> int:
        """Burn `burn_amount` of debt, then redeem `amount` of `asset`. Returns remaining collateral."""
        def action(uow: UnitOfWork) -> int:
            self.debt.burn(uow, caller, caller, burn_amount)
            return self.collateral.redeem(uow, caller, caller, asset, amount)

        return self._run("redeem_collateral_for_debt", action, revalidate=(caller,))

    def liquidate(
        self, caller: str, asset: str, debtor: str, debt_to_cover: int
    ) -> LiquidationResult:
        """
        Cover `debt_to_cover` of `debtor`'s debt and take `asset` collateral plus a bonus.

        The caller pays with their own stablecoin and must remain healthy.
        """
        return self._run(
            "liquidate",
            lambda uow: self.liquidation.liquidate(uow, caller, asset, debtor, debt_to_cover),
            revalidate=(caller,),
        )

    # ========================================================================
    # READ-ONLY QUERIES
    # ========================================================================

    def account_information(self, account: str) -> AccountInformation:
        return self.calculator.account_information(account)

    def usd_value(self, asset: str, amount: int) -> int:
        return self.calculator.usd_value(asset, amount)

    def token_amount_from_usd_value(self, asset: str, usd_amount: int) -> int:
        return self.calculator.token_amount_from_usd_value(asset, usd_amount)

    def account_collateral_value(self, account: str) -> int:
        return self.calculator.account_collateral_value(account)

    def health_factor(self, account: str) -> int:
        return self.calculator.health_factor(account)

    def calculate_health_factor(self, total_minted: int, collateral_value_usd: int) -> int:
        """Health factor for hypothetical figures, under this engine's parameters."""
        return calculate_health_factor(
            total_minted, collateral_value_usd,
            self.parameters.liquidation_threshold,
            self.parameters.liquidation_precision,
        )

    def solvency_state(self, account: str) -> SolvencyState:
        return self.liquidation.solvency_state(account)

    def collateral_balance(self, account: str, asset: str) -> int:
        return self.ledger.collateral_balance(account, asset)

    def minted_debt(self, account: str) -> int:
        return self.ledger.minted_debt(account)

    def registered_collateral_assets(self) -> Tuple[str, ...]:
        return self.registry.symbols

    def price_feed_for(self, asset: str) -> str:
        return self.registry.price_feed_for(asset)

    def liquidatable_accounts(self) -> List[AccountHealth]:
        return self.liquidation.liquidatable_accounts()

    @property
    def event_log(self) -> List[Event]:
        """Notifications of every committed operation, oldest first."""
        return list(self.ledger.event_log)

    # ========================================================================
    # PROTOCOL CONSTANTS
    # ========================================================================

    @property
    def precision(self) -> int:
        return PRECISION

    @property
    def additional_feed_precision(self) -> int:
        return ADDITIONAL_FEED_PRECISION

    @property
    def liquidation_threshold(self) -> int:
        return self.parameters.liquidation_threshold

    @property
    def liquidation_precision(self) -> int:
        return self.parameters.liquidation_precision

    @property
    def liquidation_bonus(self) -> int:
        return self.parameters.liquidation_bonus

    @property
    def min_health_factor(self) -> int:
        return self.parameters.min_health_factor

    def __repr__(self):
        return (
            f"CollateralEngine({len(self.registry)} assets, "
            f"{len(self.ledger.accounts())} accounts, time={self._current_time})"
        )
