"""
cdp_ledger - Collateralized-Debt Engine

Solvency accounting and liquidation for a synthetic unit-value asset backed
by deposited collateral.

Usage:
    from datetime import datetime
    from cdp_ledger import (
        CollateralEngine, CollateralToken, Stablecoin, MockPriceFeed,
        build_registry, to_wad, ENGINE_VAULT,
    )

    t0 = datetime(2025, 1, 1)
    weth = CollateralToken("WETH")
    dsc = Stablecoin("DSC")
    engine = CollateralEngine(
        build_registry(["WETH"], ["ETH/USD"]),
        feeds={"ETH/USD": MockPriceFeed(to_wad(2000, decimals=8), t0)},
        custodies={"WETH": weth},
        issuance=dsc,
        initial_time=t0,
    )

    weth.mint("alice", to_wad(10))
    weth.approve("alice", ENGINE_VAULT, to_wad(10))
    engine.deposit_collateral_and_mint("alice", "WETH", to_wad(10), to_wad(5000))
    engine.health_factor("alice")   # 2 * 10**18
"""

# Core types
from .core import (
    CollateralAsset,
    CollateralRegistry,
    build_registry,
    AccountInformation,
    OraclePrice,
    CollateralDeposited,
    CollateralRedeemed,
    DebtMinted,
    DebtBurned,
    Liquidated,
    CollateralCustody,
    IssuanceAuthority,
    AccountView,
    to_wad,
    from_wad,
    mul_div_down,
    EngineError,
    InvalidAmount,
    UnsupportedAsset,
    UnknownAsset,
    TransferFailure,
    MintFailure,
    HealthFactorTooLow,
    LiquidationNotEligible,
    LiquidationNotImproved,
    StaleOracleData,
    ReentrantCall,
    InsufficientBalance,
    PRECISION,
    ADDITIONAL_FEED_PRECISION,
    LIQUIDATION_THRESHOLD,
    LIQUIDATION_PRECISION,
    LIQUIDATION_BONUS,
    MIN_HEALTH_FACTOR,
    MAX_HEALTH_FACTOR,
    ORACLE_TIMEOUT,
    ENGINE_VAULT,
)

# Pricing
from .pricing_source import (
    FEED_DECIMALS,
    RoundData,
    PriceFeed,
    MockPriceFeed,
    PriceOracleAdapter,
)

# Ledger
from .ledger import AccountLedger, LedgerSnapshot

# Health factor
from .health import (
    calculate_usd_value,
    calculate_token_amount_from_usd,
    calculate_adjusted_collateral,
    calculate_health_factor,
    is_healthy,
    HealthFactorCalculator,
)

# Execution
from .guard import ReentrancyGuard
from .interactions import UnitOfWork
from .collateral import CollateralManager
from .debt import DebtManager
from .liquidation import (
    LiquidationEngine,
    LiquidationResult,
    AccountHealth,
    SolvencyState,
)
from .engine import CollateralEngine, EngineParameters

# Collaborators
from .tokens import CollateralToken, Stablecoin

# Stress analysis
from .stress import (
    SystemSnapshot,
    balance_matrix,
    health_factor_curve,
    shock_grid,
    liquidation_price,
    system_snapshot,
)

__all__ = [
    # Core
    'CollateralAsset', 'CollateralRegistry', 'build_registry',
    'AccountInformation', 'OraclePrice',
    'CollateralDeposited', 'CollateralRedeemed', 'DebtMinted', 'DebtBurned', 'Liquidated',
    'CollateralCustody', 'IssuanceAuthority', 'AccountView',
    'to_wad', 'from_wad', 'mul_div_down',
    # Errors
    'EngineError', 'InvalidAmount', 'UnsupportedAsset', 'UnknownAsset',
    'TransferFailure', 'MintFailure', 'HealthFactorTooLow',
    'LiquidationNotEligible', 'LiquidationNotImproved', 'StaleOracleData',
    'ReentrantCall', 'InsufficientBalance',
    # Constants
    'PRECISION', 'ADDITIONAL_FEED_PRECISION', 'LIQUIDATION_THRESHOLD',
    'LIQUIDATION_PRECISION', 'LIQUIDATION_BONUS', 'MIN_HEALTH_FACTOR',
    'MAX_HEALTH_FACTOR', 'ORACLE_TIMEOUT', 'ENGINE_VAULT',
    # Pricing
    'FEED_DECIMALS', 'RoundData', 'PriceFeed', 'MockPriceFeed', 'PriceOracleAdapter',
    # Ledger
    'AccountLedger', 'LedgerSnapshot',
    # Health factor
    'calculate_usd_value', 'calculate_token_amount_from_usd',
    'calculate_adjusted_collateral', 'calculate_health_factor', 'is_healthy',
    'HealthFactorCalculator',
    # Execution
    'ReentrancyGuard', 'UnitOfWork', 'CollateralManager', 'DebtManager',
    'LiquidationEngine', 'LiquidationResult', 'AccountHealth', 'SolvencyState',
    'CollateralEngine', 'EngineParameters',
    # Collaborators
    'CollateralToken', 'Stablecoin',
    # Stress
    'SystemSnapshot', 'balance_matrix', 'health_factor_curve', 'shock_grid',
    'liquidation_price', 'system_snapshot',
]

__version__ = '1.0.0'
