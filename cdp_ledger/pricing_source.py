"""
pricing_source.py - Price feeds and the oracle adapter

Provides the pricing boundary of the engine.

Classes:
- RoundData: One answer published by a feed (Chainlink-style round)
- PriceFeed: Protocol every upstream feed implements
- MockPriceFeed: In-memory feed with a full round history
- PriceOracleAdapter: Staleness-checked, normalized USD prices per asset

Feeds answer with FEED_DECIMALS (8) decimals. The adapter multiplies by
ADDITIONAL_FEED_PRECISION once, so every consumer sees PRECISION-scaled prices.
"""

from __future__ import annotations
from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from .core import (
    ADDITIONAL_FEED_PRECISION, ORACLE_TIMEOUT,
    CollateralRegistry, OraclePrice,
    StaleOracleData, UnknownAsset, UnsupportedAsset,
)


FEED_DECIMALS = 8


@dataclass(frozen=True, slots=True)
class RoundData:
    """
    A single published answer.

    Attributes:
        round_id: Monotonic id of the round.
        answer: Price with FEED_DECIMALS decimals.
        started_at: When the round opened.
        updated_at: When the answer was written (None if never).
        answered_in_round: Round in which the answer was computed.
    """
    round_id: int
    answer: int
    started_at: Optional[datetime]
    updated_at: Optional[datetime]
    answered_in_round: int


@runtime_checkable
class PriceFeed(Protocol):
    """Protocol for upstream price sources."""
    decimals: int

    def latest_round_data(self) -> RoundData:
        """Return the most recent round."""
        ...


class MockPriceFeed:
    """
    In-memory price feed.

    Every update_answer() call opens a new round. The history is kept in
    round order, and get_round_data() looks up past rounds.
    """

    def __init__(self, answer: int, updated_at: datetime, decimals: int = FEED_DECIMALS):
        """
        Initialize the feed with its first round.

        Args:
            answer: Initial price with `decimals` decimals (e.g., 2000e8)
            updated_at: Time of the initial answer
            decimals: Decimals of every answer
        """
        self.decimals = decimals
        self._rounds: List[RoundData] = []
        self.update_answer(answer, updated_at)

    def update_answer(self, answer: int, updated_at: datetime) -> RoundData:
        """Publish a new answer in a new round."""
        round_id = len(self._rounds) + 1
        data = RoundData(
            round_id=round_id,
            answer=answer,
            started_at=updated_at,
            updated_at=updated_at,
            answered_in_round=round_id,
        )
        self._rounds.append(data)
        return data

    def update_round_data(self, data: RoundData) -> None:
        """Publish a raw round, e.g. an incomplete or carried-over answer."""
        self._rounds.append(data)

    def latest_round_data(self) -> RoundData:
        return self._rounds[-1]

    def get_round_data(self, round_id: int) -> RoundData:
        ids = [r.round_id for r in self._rounds]
        idx = bisect_right(ids, round_id)
        if idx == 0 or self._rounds[idx - 1].round_id != round_id:
            raise KeyError(f"round {round_id} not found")
        return self._rounds[idx - 1]

    @property
    def latest_answer(self) -> int:
        return self._rounds[-1].answer

    def __repr__(self):
        latest = self._rounds[-1]
        return f"MockPriceFeed(answer={latest.answer}, round={latest.round_id}, decimals={self.decimals})"


class PriceOracleAdapter:
    """
    Wraps one feed per registered collateral asset.

    Each call re-queries the feed; nothing is cached. Strict reads are the
    only freshness guarantee the engine relies on.
    """

    def __init__(
        self,
        registry: CollateralRegistry,
        feeds: Mapping[str, PriceFeed],
        clock: Callable[[], datetime],
        timeout: timedelta = ORACLE_TIMEOUT,
    ):
        """
        Args:
            registry: Registered collateral assets
            feeds: Feed id -> feed object; must cover every registered feed id
            clock: Returns the current time used for staleness checks
            timeout: Maximum accepted age of a strict reading
        """
        self.registry = registry
        self.timeout = timeout
        self._clock = clock
        self._feeds: Dict[str, PriceFeed] = {}
        for asset in registry:
            if asset.price_feed not in feeds:
                raise UnknownAsset(f"no feed object for {asset.symbol} ({asset.price_feed})")
            feed = feeds[asset.price_feed]
            # Normalization is a single constant factor, so every feed must share one scale.
            if feed.decimals != FEED_DECIMALS:
                raise UnsupportedAsset(
                    f"{asset.symbol}: feed has {feed.decimals} decimals, expected {FEED_DECIMALS}"
                )
            self._feeds[asset.symbol] = feed

    def feed_for(self, asset: str) -> PriceFeed:
        try:
            return self._feeds[asset]
        except KeyError:
            raise UnknownAsset(f"no price feed for unregistered asset {asset}") from None

    def latest_round(self, asset: str, strict: bool = True) -> RoundData:
        """
        Read the feed's latest round.

        Strict mode rejects rounds that were never written, rounds whose
        answer was carried over from an older round, and rounds older
        than the timeout.
        """
        data = self.feed_for(asset).latest_round_data()
        if data.answer <= 0:
            raise StaleOracleData(f"{asset}: non-positive answer {data.answer}")
        if not strict:
            return data
        if data.updated_at is None:
            raise StaleOracleData(f"{asset}: round {data.round_id} never updated")
        if data.answered_in_round < data.round_id:
            raise StaleOracleData(
                f"{asset}: answer from round {data.answered_in_round} < {data.round_id}"
            )
        age = self._clock() - data.updated_at
        if age > self.timeout:
            raise StaleOracleData(f"{asset}: price is {age} old (timeout {self.timeout})")
        return data

    def price(self, asset: str, strict: bool = True) -> OraclePrice:
        """Return the USD price of one whole unit, scaled to PRECISION."""
        data = self.latest_round(asset, strict=strict)
        return OraclePrice(
            usd_price=data.answer * ADDITIONAL_FEED_PRECISION,
            as_of=data.updated_at,
        )

    def __repr__(self):
        return f"PriceOracleAdapter({len(self._feeds)} feeds, timeout={self.timeout})"
