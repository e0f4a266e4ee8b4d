"""
PriceAggregator Unit Tests
==========================
Fan-out, failure isolation, sequential pair fetch and USD conversion.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from arbitrage.config.settings import SOL_MINT, USDC_MINT
from arbitrage.feeds.aggregator import PriceAggregator
from arbitrage.feeds.price_source import Quote


def mock_feed(name, price=None, error=None):
    feed = MagicMock()
    feed.get_name.return_value = name
    if error is not None:
        feed.get_quote = AsyncMock(side_effect=error)
    else:
        async def quote(input_mint, output_mint, amount, decimals=9, slippage_bps=50):
            if price is None:
                return None
            return Quote.from_amounts(name, input_mint, output_mint, amount, amount * price)
        feed.get_quote = AsyncMock(side_effect=quote)
    feed.close = AsyncMock()
    return feed


class TestFanOut:

    @pytest.mark.asyncio
    async def test_collects_one_quote_per_venue(self):
        aggregator = PriceAggregator([mock_feed("A", 1.0), mock_feed("B", 1.1)])

        quotes = await aggregator.get_quotes_for_pair(SOL_MINT, "TOKEN", 1.0)

        assert sorted(q.dex for q in quotes) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_failing_venue_is_dropped(self):
        aggregator = PriceAggregator([
            mock_feed("A", 1.0),
            mock_feed("B", error=TimeoutError("slow")),
            mock_feed("C"),
        ])

        quotes = await aggregator.get_quotes_for_pair(SOL_MINT, "TOKEN", 1.0)

        assert [q.dex for q in quotes] == ["A"]

    @pytest.mark.asyncio
    async def test_bidirectional(self):
        aggregator = PriceAggregator([mock_feed("A", 2.0)])

        buys, sells = await aggregator.get_bidirectional_quotes("TOKEN", SOL_MINT, 1.0)

        assert (buys[0].input_mint, buys[0].output_mint) == (SOL_MINT, "TOKEN")
        assert (sells[0].input_mint, sells[0].output_mint) == ("TOKEN", SOL_MINT)

    @pytest.mark.asyncio
    async def test_latency_is_tracked(self):
        aggregator = PriceAggregator([mock_feed("A", 1.0)])

        await aggregator.get_quotes_for_pair(SOL_MINT, "TOKEN", 1.0)
        await aggregator.get_quotes_for_pair(SOL_MINT, "TOKEN", 1.0)

        stats = aggregator.get_stats()
        assert stats["fetch_count"] == 2
        assert stats["avg_fetch_ms"] >= 0


class TestAllPairs:

    @pytest.mark.asyncio
    async def test_sequential_with_fixed_delay(self):
        feeds = [mock_feed("A", 1.0), mock_feed("B", 1.0)]
        aggregator = PriceAggregator(feeds)

        with patch("arbitrage.feeds.aggregator.asyncio.sleep", new=AsyncMock()) as sleep:
            quotes = await aggregator.get_all_pair_quotes(["X", "Y", "Z"], 1.0, delay_s=0.3)

        # 6 ordered pairs × 2 venues, one delay before each request
        assert len(quotes) == 12
        assert sleep.await_count == 12
        assert all(call.args == (0.3,) for call in sleep.await_args_list)

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_the_sweep(self):
        aggregator = PriceAggregator([mock_feed("A", error=RuntimeError("down")), mock_feed("B", 1.0)])

        with patch("arbitrage.feeds.aggregator.asyncio.sleep", new=AsyncMock()):
            quotes = await aggregator.get_all_pair_quotes(["X", "Y"], 1.0)

        assert [q.dex for q in quotes] == ["B", "B"]


class TestUsdPricing:

    @pytest.mark.asyncio
    async def test_usdc_is_identity(self):
        assert await PriceAggregator([]).get_price_in_usd(USDC_MINT, 25.0) == 25.0

    @pytest.mark.asyncio
    async def test_sol_price_from_usd_feed(self):
        usd_feed = mock_feed("jupiter", 1.0)
        usd_feed.get_price_in_usd = AsyncMock(return_value=150.0)
        aggregator = PriceAggregator([usd_feed])

        assert await aggregator.get_sol_price() == 150.0

    @pytest.mark.asyncio
    async def test_usd_feed_failure_reads_zero(self):
        usd_feed = mock_feed("jupiter", 1.0)
        usd_feed.get_price_in_usd = AsyncMock(side_effect=RuntimeError("down"))

        assert await PriceAggregator([usd_feed]).get_sol_price() == 0.0

    @pytest.mark.asyncio
    async def test_close_closes_every_feed(self):
        feeds = [mock_feed("A"), mock_feed("B")]

        await PriceAggregator(feeds).close()

        for feed in feeds:
            feed.close.assert_awaited_once()


class TestQuote:

    def test_price_derived_from_amounts(self):
        quote = Quote.from_amounts("A", SOL_MINT, USDC_MINT, 2.0, 300.0)
        assert quote.price == 150.0

    def test_negative_amounts_rejected(self):
        with pytest.raises(ValueError):
            Quote.from_amounts("A", SOL_MINT, USDC_MINT, -1.0, 150.0)
        with pytest.raises(ValueError):
            Quote("A", SOL_MINT, USDC_MINT, 1.0, -150.0, price=-150.0)

    def test_inconsistent_price_rejected(self):
        with pytest.raises(ValueError):
            Quote("A", SOL_MINT, USDC_MINT, 1.0, 150.0, price=149.0)

    def test_direct_construction_with_matching_price(self):
        quote = Quote("A", SOL_MINT, USDC_MINT, 4.0, 2.0, price=0.5)
        assert quote.price_impact_bps == 0.0

    def test_zero_input_has_zero_price(self):
        assert Quote.from_amounts("A", SOL_MINT, USDC_MINT, 0.0, 0.0).price == 0.0
