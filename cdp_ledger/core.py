"""
Core types and pure functions for the collateralized-debt engine.

This module provides the foundational pieces every other module builds on:
1. Protocol constants: fixed-point scales and risk parameters
2. Fixed-point helpers: integer "wad" arithmetic with floor division
3. Exceptions: EngineError and the domain-specific failure kinds
4. Immutable data structures: CollateralAsset, CollateralRegistry, events
5. Protocols: the external collaborators the engine depends on

All amounts are Python ints in 18-decimal base units ("wad").
All division floors, so rounding always favors protocol solvency.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_DOWN
from typing import (
    Dict, Iterable, Mapping, Optional, Protocol, Tuple, Union,
    runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Working precision for every value and ratio inside the engine.
PRECISION = 10 ** 18

# Price feeds report 8 decimals; multiplying by this lifts them to PRECISION.
ADDITIONAL_FEED_PRECISION = 10 ** 10

# 50% of collateral value counts toward solvency (200% overcollateralized).
LIQUIDATION_THRESHOLD = 50
LIQUIDATION_PRECISION = 100

# Liquidators receive a 10% bonus on seized collateral.
LIQUIDATION_BONUS = 10

# A health factor of 1.0 in working precision.
MIN_HEALTH_FACTOR = PRECISION

# Sentinel health factor for accounts that owe nothing.
MAX_HEALTH_FACTOR = 2 ** 256 - 1

# Feeds older than this are refused by strict price reads.
ORACLE_TIMEOUT = timedelta(hours=3)

# Wallet id under which the engine holds custody of deposited collateral.
ENGINE_VAULT = "engine"

WAD_DECIMALS = 18


# ============================================================================
# FIXED-POINT HELPERS
# ============================================================================

def to_wad(value: Union[int, str, Decimal], decimals: int = WAD_DECIMALS) -> int:
    """
    Convert a human-readable amount into integer base units.

    Fractions below one base unit are truncated (ROUND_DOWN), never rounded up.

    Example:
        to_wad("0.05") == 50_000_000_000_000_000
        to_wad(2000, decimals=8) == 200_000_000_000
    """
    if isinstance(value, float):
        raise TypeError("to_wad() does not accept float; pass str or Decimal")
    scaled = Decimal(value) * (Decimal(10) ** decimals)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_DOWN))


def from_wad(amount: int, decimals: int = WAD_DECIMALS) -> Decimal:
    """Convert integer base units back to an exact Decimal."""
    return Decimal(amount) / (Decimal(10) ** decimals)


def mul_div_down(a: int, b: int, denominator: int) -> int:
    """Return floor(a * b / denominator) without intermediate rounding."""
    if denominator <= 0:
        raise ZeroDivisionError("mul_div_down denominator must be positive")
    return (a * b) // denominator


# ============================================================================
# EXCEPTIONS
# ============================================================================

class EngineError(Exception):
    """Base exception for all engine failures. Every one aborts the operation."""
    pass


class InvalidAmount(EngineError):
    """Raised when a quantity is zero, negative or not an integer."""
    pass


class UnsupportedAsset(EngineError):
    """Raised for unregistered assets or a malformed collateral registry."""
    pass


class UnknownAsset(UnsupportedAsset):
    """Raised by the oracle adapter when asked to price an unregistered asset."""
    pass


class TransferFailure(EngineError):
    """Raised when custody or the issuance authority reports a failed transfer."""
    pass


class MintFailure(EngineError):
    """Raised when the issuance authority refuses to mint."""
    pass


class HealthFactorTooLow(EngineError):
    """Raised when an account would end an operation below the minimum health factor."""

    def __init__(self, account: str, health_factor: int, min_health_factor: int = MIN_HEALTH_FACTOR):
        self.account = account
        self.health_factor = health_factor
        self.min_health_factor = min_health_factor
        super().__init__(
            f"health factor of {account} broken: {health_factor} < {min_health_factor}"
        )


class LiquidationNotEligible(EngineError):
    """Raised when liquidating an account whose health factor is still healthy."""
    pass


class LiquidationNotImproved(EngineError):
    """Raised when a liquidation does not strictly raise the debtor's health factor."""
    pass


class StaleOracleData(EngineError):
    """Raised when a price reading is too old or otherwise unusable."""
    pass


class ReentrantCall(EngineError):
    """Raised when a mutating entry point is re-entered before the outer call returns."""
    pass


class InsufficientBalance(EngineError):
    """Raised when a debit would take a collateral or debt balance below zero."""
    pass


def require_positive_amount(amount: int, what: str = "amount") -> None:
    """Reject anything that is not a strictly positive int."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{what} must be an int, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount(f"{what} must be more than zero, got {amount}")


# ============================================================================
# COLLATERAL REGISTRY
# ============================================================================

@dataclass(frozen=True, slots=True)
class CollateralAsset:
    """
    An approved collateral asset and the id of its price feed.

    Attributes:
        symbol: Asset identity (e.g., "WETH").
        price_feed: Identity of the one feed that prices this asset.
    """
    symbol: str
    price_feed: str

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise UnsupportedAsset("CollateralAsset symbol cannot be empty")
        if not self.price_feed or not self.price_feed.strip():
            raise UnsupportedAsset(f"{self.symbol}: price feed cannot be empty")


@dataclass(frozen=True, slots=True)
class CollateralRegistry:
    """
    Immutable, ordered set of collateral assets.

    Built once at start-up and injected into every component. The order
    of `assets` is the iteration order for aggregate valuation.
    """
    assets: Tuple[CollateralAsset, ...]
    _feeds: Mapping[str, str] = field(default_factory=dict, repr=False, compare=False, hash=False)

    def __post_init__(self):
        if not self.assets:
            raise UnsupportedAsset("registry needs at least one collateral asset")
        feeds: Dict[str, str] = {}
        for asset in self.assets:
            if asset.symbol in feeds:
                raise UnsupportedAsset(f"duplicate collateral asset {asset.symbol}")
            feeds[asset.symbol] = asset.price_feed
        object.__setattr__(self, '_feeds', feeds)

    @property
    def symbols(self) -> Tuple[str, ...]:
        return tuple(a.symbol for a in self.assets)

    def is_registered(self, symbol: str) -> bool:
        return symbol in self._feeds

    def price_feed_for(self, symbol: str) -> str:
        """Return the feed id for an asset, or raise UnsupportedAsset."""
        try:
            return self._feeds[symbol]
        except KeyError:
            raise UnsupportedAsset(f"token not supported: {symbol}") from None

    def require(self, symbol: str) -> None:
        if symbol not in self._feeds:
            raise UnsupportedAsset(f"token not supported: {symbol}")

    def __iter__(self):
        return iter(self.assets)

    def __len__(self) -> int:
        return len(self.assets)


def build_registry(assets: Iterable[str], price_feeds: Iterable[str]) -> CollateralRegistry:
    """
    Pair asset identities with feed identities positionally.

    Raises:
        UnsupportedAsset: If the two lists differ in length, are empty,
                          or name an asset twice.
    """
    assets = list(assets)
    price_feeds = list(price_feeds)
    if len(assets) != len(price_feeds):
        raise UnsupportedAsset(
            f"token addresses and price feed addresses must be the same length "
            f"({len(assets)} != {len(price_feeds)})"
        )
    return CollateralRegistry(tuple(
        CollateralAsset(symbol=a, price_feed=f) for a, f in zip(assets, price_feeds)
    ))


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class CollateralDeposited:
    account: str
    asset: str
    amount: int


@dataclass(frozen=True, slots=True)
class CollateralRedeemed:
    source: str
    destination: str
    asset: str
    amount: int


@dataclass(frozen=True, slots=True)
class DebtMinted:
    account: str
    amount: int


@dataclass(frozen=True, slots=True)
class DebtBurned:
    payer: str
    on_behalf_of: str
    amount: int


@dataclass(frozen=True, slots=True)
class Liquidated:
    liquidator: str
    debtor: str
    asset: str
    debt_covered: int
    collateral_seized: int


Event = Union[CollateralDeposited, CollateralRedeemed, DebtMinted, DebtBurned, Liquidated]


# ============================================================================
# VALUE TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class OraclePrice:
    """A price normalized to PRECISION together with the feed's update time."""
    usd_price: int
    as_of: datetime


@dataclass(frozen=True, slots=True)
class AccountInformation:
    minted_debt: int
    collateral_value_usd: int


# ============================================================================
# COLLABORATOR PROTOCOLS
# ============================================================================

@runtime_checkable
class CollateralCustody(Protocol):
    """
    Custody of one collateral asset.

    Both calls move tokens between an owner and the engine's vault and
    report success explicitly; they never fail silently.
    """

    def transfer_in(self, owner: str, amount: int) -> bool:
        ...

    def transfer_out(self, recipient: str, amount: int) -> bool:
        ...


@runtime_checkable
class IssuanceAuthority(Protocol):
    """Mint/burn authority of the synthetic asset."""

    def mint(self, to: str, amount: int) -> bool:
        ...

    def burn(self, amount: int) -> None:
        ...

    def burn_from(self, account: str, amount: int) -> bool:
        ...

    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool:
        ...


@runtime_checkable
class AccountView(Protocol):
    """
    Read-only interface to account state.

    Pure valuation code takes an AccountView so it cannot mutate balances.
    """

    def collateral_balance(self, account: str, asset: str) -> int:
        ...

    def minted_debt(self, account: str) -> int:
        ...

    def accounts(self) -> Tuple[str, ...]:
        ...
