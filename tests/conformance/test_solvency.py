"""
Solvency Conformance Tests

INVARIANT: A successful operation never leaves its caller unhealthy.

    ∀ operation op by account A that can lower A's health factor:
        op succeeds ⟹ health_factor(A) >= MIN_HEALTH_FACTOR

    With prices held fixed, every account stays healthy forever.

INVARIANT: Custody mirrors the ledger.

    token.balance_of(vault) == Σ collateral_balance(·, token)
    stablecoin.total_supply  == Σ minted_debt(·)
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from cdp_ledger import EngineError, ENGINE_VAULT, to_wad
from tests.deployment import deploy, fund, approve_repayment


ACCOUNTS = ["a", "b", "c"]
ASSETS = ["WETH", "WBTC"]

accounts = st.sampled_from(ACCOUNTS)
assets = st.sampled_from(ASSETS)
collateral_units = st.integers(min_value=1, max_value=40)
debt_units = st.integers(min_value=1, max_value=30_000)

account_ops = st.one_of(
    st.tuples(st.just("deposit"), accounts, assets, collateral_units),
    st.tuples(st.just("mint"), accounts, debt_units),
    st.tuples(st.just("deposit_and_mint"), accounts, assets, collateral_units, debt_units),
    st.tuples(st.just("redeem"), accounts, assets, collateral_units),
    st.tuples(st.just("burn"), accounts, debt_units),
    st.tuples(st.just("redeem_for_debt"), accounts, assets, collateral_units, debt_units),
    st.tuples(st.just("liquidate"), accounts, assets, accounts, debt_units),
)
price_ops = st.tuples(st.just("price"), assets, st.sampled_from([300, 500, 800, 1000, 1500, 2000, 3000]))

LOWERS_HEALTH = {"mint", "deposit_and_mint", "redeem", "redeem_for_debt", "liquidate"}


def new_book():
    deployment = deploy()
    for account in ACCOUNTS:
        fund(deployment.weth, account)
        fund(deployment.wbtc, account)
        approve_repayment(deployment.dsc, account, to_wad(10**9))
    return deployment


def apply(deployment, op):
    """Run one generated operation. Returns True if it was applied."""
    engine = deployment.engine
    kind = op[0]
    try:
        if kind == "price":
            _, asset, usd = op
            if asset == "WETH":
                deployment.set_eth_price(usd)
            else:
                deployment.set_btc_price(usd)
        elif kind == "deposit":
            engine.deposit_collateral(op[1], op[2], to_wad(op[3]))
        elif kind == "mint":
            engine.mint_debt(op[1], to_wad(op[2]))
        elif kind == "deposit_and_mint":
            engine.deposit_collateral_and_mint(op[1], op[2], to_wad(op[3]), to_wad(op[4]))
        elif kind == "redeem":
            engine.redeem_collateral(op[1], op[2], to_wad(op[3]))
        elif kind == "burn":
            engine.burn_debt(op[1], to_wad(op[2]))
        elif kind == "redeem_for_debt":
            engine.redeem_collateral_for_debt(op[1], op[2], to_wad(op[3]), to_wad(op[4]))
        elif kind == "liquidate":
            engine.liquidate(op[1], op[2], op[3], to_wad(op[4]))
    except EngineError:
        return False
    return True


def assert_custody_mirrors_ledger(deployment):
    engine = deployment.engine
    assert deployment.weth.balance_of(ENGINE_VAULT) == engine.ledger.total_collateral("WETH")
    assert deployment.wbtc.balance_of(ENGINE_VAULT) == engine.ledger.total_collateral("WBTC")
    assert deployment.dsc.total_supply == engine.ledger.total_debt()


class TestSolvencyProperties:

    @given(st.lists(account_ops, min_size=1, max_size=25))
    @settings(max_examples=75, deadline=None)
    def test_fixed_prices_keep_everyone_healthy(self, ops):
        """
        PROPERTY: Without price moves, no sequence of calls makes any account liquidatable.
        """
        deployment = new_book()
        for op in ops:
            apply(deployment, op)
            assert deployment.engine.liquidatable_accounts() == []

    @given(st.lists(st.one_of(account_ops, price_ops), min_size=1, max_size=30))
    @settings(max_examples=75, deadline=None)
    def test_successful_caller_is_healthy(self, ops):
        """
        PROPERTY: After a successful health-lowering call, its caller is solvent.
        """
        deployment = new_book()
        engine = deployment.engine
        for op in ops:
            applied = apply(deployment, op)
            if applied and op[0] in LOWERS_HEALTH:
                assert engine.health_factor(op[1]) >= engine.min_health_factor

    @given(st.lists(st.one_of(account_ops, price_ops), min_size=1, max_size=30))
    @settings(max_examples=75, deadline=None)
    def test_custody_mirrors_ledger(self, ops):
        """
        PROPERTY: Token custody and stablecoin supply always match the ledger,
        whether each call succeeded or failed.
        """
        deployment = new_book()
        for op in ops:
            apply(deployment, op)
            assert_custody_mirrors_ledger(deployment)

    @given(st.lists(st.one_of(account_ops, price_ops), min_size=1, max_size=30))
    @settings(max_examples=50, deadline=None)
    def test_successful_liquidation_improves_debtor(self, ops):
        """
        PROPERTY: Every successful liquidation strictly raises the debtor's health factor.
        """
        deployment = new_book()
        engine = deployment.engine
        for op in ops:
            if op[0] != "liquidate":
                apply(deployment, op)
                continue
            _, liquidator, asset, debtor, units = op
            try:
                result = engine.liquidate(liquidator, asset, debtor, to_wad(units))
            except EngineError:
                continue
            assert result.ending_health_factor > result.starting_health_factor
            assert engine.health_factor(debtor) == result.ending_health_factor


class TestSolvencyExamples:

    def test_boundary_mint_then_any_redeem_fails(self):
        deployment = new_book()
        engine = deployment.engine
        engine.deposit_collateral_and_mint("a", "WETH", to_wad(10), to_wad(10_000))
        assert engine.health_factor("a") == engine.min_health_factor
        assert not apply(deployment, ("redeem", "a", "WETH", 1))
        assert engine.collateral_balance("a", "WETH") == to_wad(10)
