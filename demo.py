#!/usr/bin/env python3
"""
demo.py - Walkthrough: one borrower, one crash, one liquidation

Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL SEE:
  1-3: Borrowing       - Deposit collateral, mint stablecoin, a rejected mint
  4-5: Crash           - WETH falls to $800, a liquidation restores health
  6:   Limitation      - Below 110% collateral no liquidation can help
  7:   Stress          - Health factors across a grid of price shocks

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime
import sys

import numpy as np

from cdp_ledger import (
    CollateralEngine, CollateralToken, Stablecoin, MockPriceFeed,
    build_registry, to_wad, from_wad,
    EngineError, ENGINE_VAULT,
    shock_grid, system_snapshot, liquidation_price,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the walkthrough. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    eth_price: int = 2_000
    crash_price: int = 800
    collapse_price: int = 300
    alice_weth: int = 10
    alice_mint: int = 5_000
    liquidator_weth: int = 20
    cover: int = 1_000


CONFIG = DemoConfig()
QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def show_account(engine: CollateralEngine, account: str):
    info = engine.account_information(account)
    print(f"  {account:<12} collateral ${from_wad(info.collateral_value_usd):>10,.2f}"
          f"   debt {from_wad(info.minted_debt):>10,.2f}"
          f"   health factor {from_wad(engine.health_factor(account)):.4f}")


# ============================================================================
# STEPS
# ============================================================================

def step_01_deploy():
    step_header(1, "Deploy", "One collateral asset (WETH), one price feed, one stablecoin.")
    weth = CollateralToken("WETH")
    dsc = Stablecoin("DSC")
    eth_usd = MockPriceFeed(to_wad(CONFIG.eth_price, decimals=8), CONFIG.start_time)
    engine = CollateralEngine(
        build_registry(["WETH"], ["ETH/USD"]),
        feeds={"ETH/USD": eth_usd},
        custodies={"WETH": weth},
        issuance=dsc,
        initial_time=CONFIG.start_time,
    )
    for account, units in (("alice", CONFIG.alice_weth), ("liquidator", CONFIG.liquidator_weth)):
        weth.mint(account, to_wad(units))
        weth.approve(account, ENGINE_VAULT, to_wad(units))
    return engine, weth, dsc, eth_usd


def step_02_borrow(engine: CollateralEngine):
    step_header(2, "Borrow", "Deposit 10 WETH ($20,000) and mint 5,000 DSC: health factor 2.0.")
    engine.deposit_collateral_and_mint(
        "alice", "WETH", to_wad(CONFIG.alice_weth), to_wad(CONFIG.alice_mint)
    )
    engine.deposit_collateral_and_mint(
        "liquidator", "WETH", to_wad(CONFIG.liquidator_weth), to_wad(CONFIG.alice_mint)
    )
    show_account(engine, "alice")
    show_account(engine, "liquidator")


def step_03_rejected_mint(engine: CollateralEngine):
    step_header(3, "Rejected Mint", "Minting 15,001 more would push alice below 1.0.")
    try:
        engine.mint_debt("alice", to_wad(15_001))
    except EngineError as e:
        print(f"  Rejected with {type(e).__name__}; nothing changed:")
    show_account(engine, "alice")


def step_04_crash(engine: CollateralEngine, eth_usd: MockPriceFeed):
    step_header(4, "Crash", f"WETH falls to ${CONFIG.crash_price}.")
    eth_usd.update_answer(to_wad(CONFIG.crash_price, decimals=8), engine.current_time)
    show_account(engine, "alice")
    for health in engine.liquidatable_accounts():
        print(f"  liquidatable: {health.account}")


def step_05_liquidate(engine: CollateralEngine, weth: CollateralToken, dsc: Stablecoin):
    step_header(5, "Liquidate", f"Cover {CONFIG.cover} DSC of alice's debt for WETH plus a 10% bonus.")
    dsc.approve("liquidator", ENGINE_VAULT, to_wad(CONFIG.cover))
    result = engine.liquidate("liquidator", "WETH", "alice", to_wad(CONFIG.cover))
    print(f"  seized {from_wad(result.collateral_seized)} WETH "
          f"(bonus {from_wad(result.bonus_collateral)})")
    print(f"  health factor {from_wad(result.starting_health_factor)} -> "
          f"{from_wad(result.ending_health_factor)}")
    print(f"  liquidator wallet: {from_wad(weth.balance_of('liquidator'))} WETH")


def step_06_limitation(engine: CollateralEngine, eth_usd: MockPriceFeed, dsc: Stablecoin):
    step_header(6, "Limitation", f"At ${CONFIG.collapse_price} the book is worth less than its debt.")
    eth_usd.update_answer(to_wad(CONFIG.collapse_price, decimals=8), engine.current_time)
    snap = system_snapshot(engine)
    print(f"  collateral ${from_wad(snap.total_collateral_value):,.2f} vs debt "
          f"{from_wad(snap.total_debt):,.2f}; incentive exhausted: "
          f"{snap.liquidation_incentive_exhausted}")
    dsc.approve("liquidator", ENGINE_VAULT, to_wad(CONFIG.cover))
    try:
        engine.liquidate("liquidator", "WETH", "alice", to_wad(CONFIG.cover))
    except EngineError as e:
        print(f"  liquidation refused: {type(e).__name__}")


def step_07_stress(engine: CollateralEngine):
    step_header(7, "Stress", "Health factors under multiplicative WETH price shocks.")
    shocks = np.linspace(0.5, 2.0, 7)
    grid = shock_grid(engine, shocks)
    print("  shock  " + "  ".join(f"{a:>12}" for a in grid['accounts']))
    for shock, row in zip(shocks, grid['health_factors']):
        print(f"  {shock:5.2f}  " + "  ".join(f"{hf:12.4f}" for hf in row))
    price = liquidation_price(engine, "alice", "WETH")
    if price:
        print(f"  alice is liquidatable below ${from_wad(price):,.2f}")


def main():
    """Run the complete walkthrough."""
    print("=" * 70)
    print("       CDP LEDGER - WALKTHROUGH")
    print("=" * 70)
    wait_for_enter()

    engine, weth, dsc, eth_usd = step_01_deploy()
    wait_for_enter()
    step_02_borrow(engine)
    wait_for_enter()
    step_03_rejected_mint(engine)
    wait_for_enter()
    step_04_crash(engine, eth_usd)
    wait_for_enter()
    step_05_liquidate(engine, weth, dsc)
    wait_for_enter()
    step_06_limitation(engine, eth_usd, dsc)
    wait_for_enter()
    step_07_stress(engine)

    print("\n" + "=" * 70)
    print("       WALKTHROUGH COMPLETE")
    print("=" * 70)
    print("""
    Next steps:
      - See cdp_ledger/liquidation.py for the liquidation rules
      - See cdp_ledger/stress.py for the price-shock analysis
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
