"""
Conversion Conformance Tests

INVARIANT: Price conversions floor, so a round trip never gains value
and loses at most the dust of two floors.

    token_amount_from_usd(p, usd_value(p, a)) <= a
    usd_value(p, token_amount_from_usd(p, u))  <= u
    a - token_amount_from_usd(p, usd_value(p, a)) <= PRECISION // p + 1

INVARIANT: The health factor is monotone.

    more debt       ⟹ health factor does not rise
    more collateral ⟹ health factor does not fall
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from cdp_ledger import (
    calculate_usd_value, calculate_token_amount_from_usd, calculate_health_factor,
    ADDITIONAL_FEED_PRECISION, MAX_HEALTH_FACTOR, PRECISION,
)
from tests.deployment import deploy


# Feed answers (8 decimals) from $0.00000001 to $10M, normalized like the oracle does.
prices = st.integers(min_value=1, max_value=10**15).map(lambda a: a * ADDITIONAL_FEED_PRECISION)
amounts = st.integers(min_value=0, max_value=10**30)
debts = st.integers(min_value=1, max_value=10**30)


class TestConversionProperties:

    @given(prices, amounts)
    @settings(max_examples=200)
    def test_token_round_trip_never_gains(self, price, amount):
        usd = calculate_usd_value(price, amount)
        assert calculate_token_amount_from_usd(price, usd) <= amount

    @given(prices, amounts)
    @settings(max_examples=200)
    def test_usd_round_trip_never_gains(self, price, usd):
        tokens = calculate_token_amount_from_usd(price, usd)
        assert calculate_usd_value(price, tokens) <= usd

    @given(prices, amounts)
    @settings(max_examples=200)
    def test_usd_value_loses_less_than_one_unit(self, price, amount):
        exact_numerator = price * amount
        assert exact_numerator - calculate_usd_value(price, amount) * PRECISION < PRECISION

    @given(prices, amounts)
    @settings(max_examples=200)
    def test_token_round_trip_loses_only_dust(self, price, amount):
        roundtrip = calculate_token_amount_from_usd(price, calculate_usd_value(price, amount))
        assert amount - roundtrip <= PRECISION // price + 1
        assert (amount - roundtrip) * price < PRECISION + price


class TestEngineConversions:
    """The engine's conversions read the live feed and keep the same bounds."""

    @given(
        st.integers(min_value=1, max_value=10_000_000),
        st.integers(min_value=0, max_value=10**30),
    )
    @settings(max_examples=100, deadline=None)
    def test_round_trip_through_engine(self, eth_usd, amount):
        deployment = deploy()
        deployment.set_eth_price(eth_usd)
        engine = deployment.engine
        price = eth_usd * PRECISION

        usd = engine.usd_value("WETH", amount)
        assert usd == calculate_usd_value(price, amount)
        roundtrip = engine.token_amount_from_usd_value("WETH", usd)
        assert roundtrip <= amount
        assert amount - roundtrip <= PRECISION // price + 1

    def test_whole_tokens_convert_exactly(self):
        engine = deploy().engine
        # $2000 per WETH
        assert engine.usd_value("WETH", 15 * PRECISION) == 30_000 * PRECISION
        assert engine.token_amount_from_usd_value("WETH", 100 * PRECISION) == PRECISION // 20


class TestHealthFactorMonotonicity:

    @given(debts, amounts, st.integers(min_value=1, max_value=10**24))
    @settings(max_examples=200)
    def test_more_debt_never_helps(self, debt, collateral_value, extra):
        assert calculate_health_factor(debt + extra, collateral_value) <= calculate_health_factor(
            debt, collateral_value
        )

    @given(debts, amounts, st.integers(min_value=1, max_value=10**24))
    @settings(max_examples=200)
    def test_more_collateral_never_hurts(self, debt, collateral_value, extra):
        assert calculate_health_factor(debt, collateral_value + extra) >= calculate_health_factor(
            debt, collateral_value
        )

    @given(amounts)
    def test_zero_debt_is_above_every_debt(self, collateral_value):
        assert calculate_health_factor(0, collateral_value) == MAX_HEALTH_FACTOR
        assert calculate_health_factor(1, collateral_value) < MAX_HEALTH_FACTOR
