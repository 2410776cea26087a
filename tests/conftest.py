"""
conftest.py - Shared pytest fixtures for engine tests

Provides:
- A fresh two-asset deployment (WETH at $2000, WBTC at $1000)
- Accounts at common stages: funded, deposited, minted
- A liquidator holding enough stablecoin to cover debt
"""

import pytest

from tests.deployment import (
    AMOUNT_TO_MINT, COLLATERAL_AMOUNT, USER, LIQUIDATOR,
    deploy, fund, approve_repayment, open_position,
)
from cdp_ledger import to_wad


@pytest.fixture
def deployment():
    """Fresh engine with nothing deposited."""
    return deploy()

@pytest.fixture
def engine(deployment):
    return deployment.engine

@pytest.fixture
def weth(deployment):
    return deployment.weth

@pytest.fixture
def wbtc(deployment):
    return deployment.wbtc

@pytest.fixture
def dsc(deployment):
    return deployment.dsc

@pytest.fixture
def eth_usd(deployment):
    return deployment.eth_usd

@pytest.fixture
def funded(deployment):
    """alice holds 100 WETH and 100 WBTC, all approved for the engine."""
    fund(deployment.weth, USER)
    fund(deployment.wbtc, USER)
    return deployment

@pytest.fixture
def deposited(funded):
    """alice has deposited 10 WETH and minted nothing."""
    funded.engine.deposit_collateral(USER, "WETH", COLLATERAL_AMOUNT)
    return funded

@pytest.fixture
def minted(deposited):
    """alice has deposited 10 WETH ($20,000) and minted 5,000 DSC (health factor 2.0)."""
    deposited.engine.mint_debt(USER, AMOUNT_TO_MINT)
    return deposited

@pytest.fixture
def liquidator(minted):
    """
    A liquidator with 20 WETH deposited and 5,000 DSC minted, approved for repayment.

    Opened while WETH is still at $2000.
    """
    open_position(minted, LIQUIDATOR, collateral=to_wad(20), debt=AMOUNT_TO_MINT)
    approve_repayment(minted.dsc, LIQUIDATOR, AMOUNT_TO_MINT)
    return minted
