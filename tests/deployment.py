"""
deployment.py - Test deployments for the collateral engine

Builds an engine with two collateral assets (WETH priced at $2000, WBTC
at $1000) and provides helpers to fund accounts and approve the vault.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from cdp_ledger import (
    CollateralEngine, CollateralToken, EngineParameters, MockPriceFeed, Stablecoin,
    build_registry, to_wad, ENGINE_VAULT,
)


USER = "alice"
LIQUIDATOR = "liquidator"

T0 = datetime(2025, 1, 1)
ETH_USD_PRICE = to_wad(2000, decimals=8)
BTC_USD_PRICE = to_wad(1000, decimals=8)
COLLATERAL_AMOUNT = to_wad(10)
AMOUNT_TO_MINT = to_wad(5000)
STARTING_BALANCE = to_wad(100)


@dataclass
class Deployment:
    engine: CollateralEngine
    weth: CollateralToken
    wbtc: CollateralToken
    dsc: Stablecoin
    eth_usd: MockPriceFeed
    btc_usd: MockPriceFeed

    def set_eth_price(self, usd: int) -> None:
        """Publish a new WETH price (whole dollars) at the engine's current time."""
        self.eth_usd.update_answer(to_wad(usd, decimals=8), self.engine.current_time)

    def set_btc_price(self, usd: int) -> None:
        self.btc_usd.update_answer(to_wad(usd, decimals=8), self.engine.current_time)


def deploy(
    weth: Optional[CollateralToken] = None,
    wbtc: Optional[CollateralToken] = None,
    dsc: Optional[Stablecoin] = None,
    parameters: Optional[EngineParameters] = None,
    verbose: bool = False,
) -> Deployment:
    weth = weth or CollateralToken("WETH")
    wbtc = wbtc or CollateralToken("WBTC")
    dsc = dsc or Stablecoin("DSC")
    eth_usd = MockPriceFeed(ETH_USD_PRICE, T0)
    btc_usd = MockPriceFeed(BTC_USD_PRICE, T0)
    engine = CollateralEngine(
        build_registry(["WETH", "WBTC"], ["ETH/USD", "BTC/USD"]),
        feeds={"ETH/USD": eth_usd, "BTC/USD": btc_usd},
        custodies={"WETH": weth, "WBTC": wbtc},
        issuance=dsc,
        parameters=parameters,
        initial_time=T0,
        verbose=verbose,
    )
    return Deployment(engine, weth, wbtc, dsc, eth_usd, btc_usd)


def fund(token: CollateralToken, account: str, amount: int = STARTING_BALANCE) -> None:
    """Give `account` tokens and let the engine pull all of them."""
    token.mint(account, amount)
    token.approve(account, ENGINE_VAULT, token.allowance(account, ENGINE_VAULT) + amount)


def approve_repayment(dsc: Stablecoin, account: str, amount: int) -> None:
    """Let the engine pull `amount` of stablecoin from `account`."""
    dsc.approve(account, ENGINE_VAULT, dsc.allowance(account, ENGINE_VAULT) + amount)


def open_position(
    deployment: Deployment,
    account: str,
    collateral: int = COLLATERAL_AMOUNT,
    debt: int = AMOUNT_TO_MINT,
    asset: str = "WETH",
) -> None:
    """Fund, deposit and mint in one go."""
    token = deployment.weth if asset == "WETH" else deployment.wbtc
    fund(token, account, collateral)
    if debt:
        deployment.engine.deposit_collateral_and_mint(account, asset, collateral, debt)
    else:
        deployment.engine.deposit_collateral(account, asset, collateral)
