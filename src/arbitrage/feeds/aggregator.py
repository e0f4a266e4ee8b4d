"""
Price Aggregator
================
Fans quote requests out to every configured venue and joins the results.

Features:
- Concurrent per-venue fetch with per-call failure isolation
- Sequential, rate-limited all-pairs fetch for graph building
- SOL/USD conversion through a designated USD feed
- Fetch latency tracking for the status report
"""

import asyncio
import time
from typing import List, Optional, Sequence, Tuple

from arbitrage.config.settings import SOL_MINT, TOKEN_DECIMALS, USDC_MINT
from arbitrage.system.logging import Logger
from .price_source import PriceSource, Quote


class PriceAggregator:
    """
    Consolidates several PriceSource adapters behind one interface.

    A venue that times out or raises simply contributes no quote; the
    aggregator never propagates a single venue's failure.
    """

    def __init__(self, feeds: Sequence[PriceSource], usd_feed: Optional[PriceSource] = None):
        self.feeds: List[PriceSource] = list(feeds)
        self.usd_feed = usd_feed or next(
            (f for f in self.feeds if hasattr(f, "get_price_in_usd")), None
        )

        # Performance tracking
        self.last_fetch_ms = 0.0
        self.avg_fetch_ms = 0.0
        self.fetch_count = 0

    async def _safe_quote(
        self,
        feed: PriceSource,
        input_mint: str,
        output_mint: str,
        amount: float,
        decimals: int,
    ) -> Optional[Quote]:
        try:
            return await feed.get_quote(input_mint, output_mint, amount, decimals)
        except Exception as e:
            Logger.debug(f"[FEED] {feed.get_name()} quote failed: {e}")
            return None

    def _record_latency(self, started: float) -> None:
        elapsed_ms = (time.perf_counter() - started) * 1000
        self.fetch_count += 1
        self.avg_fetch_ms += (elapsed_ms - self.avg_fetch_ms) / self.fetch_count
        self.last_fetch_ms = elapsed_ms

    async def get_quotes_for_pair(
        self,
        input_mint: str,
        output_mint: str,
        amount: float,
        input_decimals: int = 9,
    ) -> List[Quote]:
        """
        Fetch one quote per venue for a single swap direction.

        Returns:
            Quotes from every venue that answered (possibly empty)
        """
        started = time.perf_counter()
        results = await asyncio.gather(
            *(
                self._safe_quote(feed, input_mint, output_mint, amount, input_decimals)
                for feed in self.feeds
            )
        )
        quotes = [q for q in results if q is not None]
        self._record_latency(started)

        Logger.debug(f"[FEED] Fetched {len(quotes)}/{len(self.feeds)} quotes in {self.last_fetch_ms:.0f}ms")
        return quotes

    async def get_bidirectional_quotes(
        self,
        token_mint: str,
        base_mint: str = SOL_MINT,
        amount: float = 1.0,
        token_decimals: int = 9,
        base_decimals: int = 9,
    ) -> Tuple[List[Quote], List[Quote]]:
        """
        Fetch buy-side (base → token) and sell-side (token → base) quotes.

        Both directions are requested concurrently.
        """
        buy_quotes, sell_quotes = await asyncio.gather(
            self.get_quotes_for_pair(base_mint, token_mint, amount, base_decimals),
            self.get_quotes_for_pair(token_mint, base_mint, amount, token_decimals),
        )
        return buy_quotes, sell_quotes

    async def get_all_pair_quotes(
        self,
        tokens: Sequence[str],
        amount: float = 1.0,
        delay_s: float = 0.3,
    ) -> List[Quote]:
        """
        Fetch quotes for every ordered token pair from every venue.

        Requests go out strictly one at a time with delay_s between them
        to stay under public API rate limits. N² × venues requests, so
        keep the token list small.
        """
        quotes: List[Quote] = []
        for input_mint in tokens:
            for output_mint in tokens:
                if input_mint == output_mint:
                    continue
                for feed in self.feeds:
                    await asyncio.sleep(delay_s)
                    started = time.perf_counter()
                    decimals = TOKEN_DECIMALS.get(input_mint, 9)
                    quote = await self._safe_quote(feed, input_mint, output_mint, amount, decimals)
                    self._record_latency(started)
                    if quote is not None:
                        quotes.append(quote)
        return quotes

    # =========================================================================
    # USD CONVERSION
    # =========================================================================

    async def get_price_in_usd(self, token_mint: str, amount: float = 1.0) -> float:
        """USD value of amount of token_mint, 0.0 if unknown."""
        if token_mint == USDC_MINT:
            return amount
        if self.usd_feed is None:
            return 0.0
        try:
            price = await self.usd_feed.get_price_in_usd(token_mint, amount)
        except Exception as e:
            Logger.debug(f"[FEED] USD price lookup failed: {e}")
            return 0.0
        return price or 0.0

    async def get_sol_price(self) -> float:
        return await self.get_price_in_usd(SOL_MINT, 1.0)

    # =========================================================================
    # HOUSEKEEPING
    # =========================================================================

    def get_stats(self) -> dict:
        return {
            "last_fetch_ms": round(self.last_fetch_ms, 1),
            "avg_fetch_ms": round(self.avg_fetch_ms, 1),
            "fetch_count": self.fetch_count,
        }

    async def close(self) -> None:
        for feed in self.feeds:
            await feed.close()
