"""
Opportunity Detector
====================
Finds price mismatches across venues and turns them into time-bounded
Opportunity records.

Two modes:
- Pairwise: buy on one venue, sell on another (scan_token / scan_tokens)
- Cyclic:   base → A → B → base through the rate graph (scan_graph)

The detector owns the active map and the history. It knows nothing
about scheduling; the orchestrator decides when to scan.
"""

import asyncio
import time
from collections import deque
from typing import Callable, Deque, Dict, Iterable, List, Optional, Sequence, Tuple

from arbitrage.config.settings import BotConfig, MINT_TO_SYMBOL, SOL_MINT, TOKEN_DECIMALS
from arbitrage.feeds.aggregator import PriceAggregator
from arbitrage.feeds.price_source import Quote
from arbitrage.system.logging import Logger, log_opportunity
from .graph import CyclePath, RateGraph
from .opportunity import Opportunity


OpportunityCallback = Callable[[Opportunity], None]


def cross_spread_bps(buy_quote: Quote, sell_quote: Quote) -> float:
    """
    Spread between buying on one venue and selling on another.

    The buy quote is base → token, so its price is token per base; it is
    inverted to base per token before comparing with the sell quote.
    """
    if buy_quote.price <= 0:
        return 0.0
    effective_buy = 1.0 / buy_quote.price
    return (sell_quote.price - effective_buy) / effective_buy * 10_000


class OpportunityDetector:
    """
    Pairwise and triangular arbitrage detector.

    Scans are stateless between calls apart from the rate graph (edges
    are overwritten on each graph scan) and the emitted opportunities.
    """

    SCAN_BATCH_SIZE = 3
    HISTORY_LIMIT = 10_000

    def __init__(
        self,
        aggregator: PriceAggregator,
        config: BotConfig,
        graph: Optional[RateGraph] = None,
        clock: Callable[[], float] = time.time,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.aggregator = aggregator
        self.config = config
        self.graph = graph or RateGraph()
        self._clock = clock

        self._active: Dict[str, Opportunity] = {}
        self._history: Deque[Opportunity] = deque(maxlen=history_limit)
        self.total_detected = 0
        self._callbacks: List[OpportunityCallback] = []

    # ═══════════════════════════════════════════════════════════════════
    # OBSERVERS
    # ═══════════════════════════════════════════════════════════════════

    def on_opportunity(self, callback: OpportunityCallback) -> None:
        """Register a synchronous callback invoked for every emission."""
        self._callbacks.append(callback)

    def _emit(self, opportunity: Opportunity) -> None:
        self._active[opportunity.id] = opportunity
        self._history.append(opportunity)
        self.total_detected += 1

        log_opportunity({
            "id": opportunity.id,
            "token": opportunity.token_symbol or opportunity.token_mint[:8],
            "buy_dex": opportunity.buy_dex,
            "sell_dex": opportunity.sell_dex,
            "cyclic": opportunity.is_cyclic,
            "spread_bps": opportunity.spread_bps,
            "estimated_profit": opportunity.estimated_profit_usd,
        })

        for callback in self._callbacks:
            try:
                callback(opportunity)
            except Exception as e:
                Logger.error(f"[DETECTOR] Opportunity callback failed: {e}")

    # ═══════════════════════════════════════════════════════════════════
    # PAIRWISE SCAN
    # ═══════════════════════════════════════════════════════════════════

    async def scan_token(
        self,
        token_mint: str,
        base_token: str = SOL_MINT,
        amount: float = 1.0,
        token_decimals: int = 9,
        base_decimals: int = 9,
    ) -> List[Opportunity]:
        """
        Scan one token for cross-venue opportunities against base_token.

        Returns:
            Opportunities emitted by this scan (possibly empty)
        """
        try:
            return await self._scan_token(token_mint, base_token, amount, token_decimals, base_decimals)
        except Exception as e:
            Logger.error(f"[DETECTOR] Scan failed for {token_mint[:8]}: {e}")
            return []

    async def _scan_token(
        self,
        token_mint: str,
        base_token: str,
        amount: float,
        token_decimals: int,
        base_decimals: int,
    ) -> List[Opportunity]:
        buy_quotes, sell_quotes = await self.aggregator.get_bidirectional_quotes(
            token_mint, base_token, amount, token_decimals, base_decimals
        )
        if not buy_quotes or not sell_quotes:
            Logger.debug(f"[DETECTOR] Not enough quotes for {token_mint[:8]}")
            return []

        candidates: List[Tuple[float, Quote, Quote]] = []
        for buy_quote in buy_quotes:
            for sell_quote in sell_quotes:
                if buy_quote.dex == sell_quote.dex:
                    continue
                spread_bps = cross_spread_bps(buy_quote, sell_quote)
                if not self._passes_filters((buy_quote, sell_quote), spread_bps):
                    continue
                candidates.append((spread_bps, buy_quote, sell_quote))

        if not candidates:
            return []

        base_price_usd = await self._base_price_usd(base_token)
        sol_price = base_price_usd if base_token == SOL_MINT else await self.aggregator.get_sol_price()
        trade_size_usd = amount * base_price_usd

        # Best spread first; each quote backs at most one opportunity
        candidates.sort(key=lambda c: c[0], reverse=True)
        used_buys: set = set()
        used_sells: set = set()
        found: List[Opportunity] = []

        for spread_bps, buy_quote, sell_quote in candidates:
            if id(buy_quote) in used_buys or id(sell_quote) in used_sells:
                continue

            gas_usd = self.gas_estimate_sol((buy_quote.dex, sell_quote.dex)) * sol_price
            net_profit_usd = spread_bps / 10_000 * trade_size_usd - gas_usd
            if net_profit_usd <= 0:
                Logger.debug(
                    f"[DETECTOR] {buy_quote.dex}→{sell_quote.dex} {spread_bps:.1f}bps eaten by gas"
                )
                continue

            used_buys.add(id(buy_quote))
            used_sells.add(id(sell_quote))

            now = self._clock()
            opportunity = Opportunity(
                token_mint=token_mint,
                token_symbol=MINT_TO_SYMBOL.get(token_mint),
                buy_dex=buy_quote.dex,
                buy_price=1.0 / buy_quote.price,
                buy_quote=buy_quote,
                sell_dex=sell_quote.dex,
                sell_price=sell_quote.price,
                sell_quote=sell_quote,
                spread_bps=spread_bps,
                estimated_profit_bps=spread_bps - gas_usd / trade_size_usd * 10_000,
                estimated_profit_usd=net_profit_usd,
                trade_size=amount,
                trade_size_usd=trade_size_usd,
                detected_at=now,
                expires_at=now + self.config.opportunity_ttl_s,
            )
            self._emit(opportunity)
            found.append(opportunity)

        return found

    async def scan_tokens(
        self,
        tokens: Sequence[str],
        base_token: str = SOL_MINT,
        amount: float = 1.0,
    ) -> List[Opportunity]:
        """
        Scan several tokens, a few at a time.

        Returns:
            All opportunities sorted by estimated USD profit, best first
        """
        found: List[Opportunity] = []
        base_decimals = TOKEN_DECIMALS.get(base_token, 9)

        for i in range(0, len(tokens), self.SCAN_BATCH_SIZE):
            batch = tokens[i:i + self.SCAN_BATCH_SIZE]
            results = await asyncio.gather(
                *(
                    self.scan_token(
                        mint, base_token, amount, TOKEN_DECIMALS.get(mint, 9), base_decimals
                    )
                    for mint in batch
                )
            )
            for opportunities in results:
                found.extend(opportunities)

        return sorted(found, key=lambda o: o.estimated_profit_usd, reverse=True)

    # ═══════════════════════════════════════════════════════════════════
    # CYCLIC SCAN
    # ═══════════════════════════════════════════════════════════════════

    async def scan_graph(
        self,
        tokens: Sequence[str],
        base_token: str = SOL_MINT,
        amount: float = 1.0,
    ) -> List[Opportunity]:
        """
        Refresh the rate graph and search it for base → A → B → base cycles.

        Quotes for every ordered pair are fetched one at a time with a
        fixed delay between requests, so this is slow for large token
        sets.
        """
        try:
            return await self._scan_graph(tokens, base_token, amount)
        except Exception as e:
            Logger.error(f"[GRAPH] Graph scan failed: {e}")
            return []

    async def _scan_graph(
        self,
        tokens: Sequence[str],
        base_token: str,
        amount: float,
    ) -> List[Opportunity]:
        universe = [base_token] + [t for t in tokens if t != base_token]
        quotes = await self.aggregator.get_all_pair_quotes(
            universe, amount, delay_s=self.config.graph_request_delay_s
        )
        for quote in quotes:
            if quote.price > 0:
                self.graph.upsert_quote(quote)

        cycles = self.graph.find_cycles(base_token)
        Logger.debug(
            f"[GRAPH] {len(quotes)} quotes, {self.graph.edge_count} edges, {len(cycles)} raw cycles"
        )
        if not cycles:
            return []

        base_price_usd = await self._base_price_usd(base_token)
        sol_price = base_price_usd if base_token == SOL_MINT else await self.aggregator.get_sol_price()
        trade_size_usd = amount * base_price_usd

        found: List[Opportunity] = []
        for path, profit_bps in cycles:
            opportunity = self._cycle_opportunity(
                path, profit_bps, base_token, amount, trade_size_usd, sol_price
            )
            if opportunity is not None:
                self._emit(opportunity)
                found.append(opportunity)
        return found

    def _cycle_opportunity(
        self,
        path: CyclePath,
        profit_bps: float,
        base_token: str,
        amount: float,
        trade_size_usd: float,
        sol_price: float,
    ) -> Optional[Opportunity]:
        legs = tuple(edge.quote for edge in path if edge.quote is not None)
        if not self._passes_filters(legs, profit_bps):
            return None

        gas_usd = self.gas_estimate_sol(edge.dex for edge in path) * sol_price
        net_profit_usd = profit_bps / 10_000 * trade_size_usd - gas_usd
        if net_profit_usd <= 0:
            return None

        first, _, last = path
        now = self._clock()
        return Opportunity(
            token_mint=first.destination,
            token_symbol=MINT_TO_SYMBOL.get(first.destination),
            buy_dex=first.dex,
            buy_price=first.rate,
            buy_quote=first.quote,
            sell_dex=last.dex,
            sell_price=last.rate,
            sell_quote=last.quote,
            spread_bps=profit_bps,
            estimated_profit_bps=profit_bps - gas_usd / trade_size_usd * 10_000,
            estimated_profit_usd=net_profit_usd,
            trade_size=amount,
            trade_size_usd=trade_size_usd,
            detected_at=now,
            expires_at=now + self.config.opportunity_ttl_s,
            is_cyclic=True,
            path=tuple(path),
        )

    # ═══════════════════════════════════════════════════════════════════
    # FILTERS & COSTS
    # ═══════════════════════════════════════════════════════════════════

    def _passes_filters(self, legs: Iterable[Quote], spread_bps: float) -> bool:
        """Admission filters shared by both scan modes."""
        if spread_bps < self.config.min_profit_bps:
            return False

        max_impact_pct = self.config.max_slippage_bps / 100
        for quote in legs:
            if quote.price_impact_pct > max_impact_pct:
                return False
            if quote.has_known_liquidity and quote.liquidity_usd < self.config.min_liquidity_usd:
                return False
        return True

    def gas_estimate_sol(self, venues: Iterable[str]) -> float:
        """Gas for a transaction touching every venue in venues (SOL)."""
        return max(
            (self.config.gas_for_venue(dex) for dex in venues),
            default=self.config.gas_estimate_sol,
        )

    async def _base_price_usd(self, base_token: str) -> float:
        if base_token == SOL_MINT:
            return await self.aggregator.get_sol_price()
        return await self.aggregator.get_price_in_usd(base_token, 1.0)

    # ═══════════════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════════════

    def get_active_opportunities(self) -> List[Opportunity]:
        """Unexpired opportunities; expired ones are dropped on the way."""
        now = self._clock()
        active = []
        for opp_id, opportunity in list(self._active.items()):
            if opportunity.is_active(now):
                active.append(opportunity)
            else:
                del self._active[opp_id]
        return active

    def get_opportunity(self, opportunity_id: str) -> Optional[Opportunity]:
        return self._active.get(opportunity_id)

    def get_history(self, limit: int = 100) -> List[Opportunity]:
        """Most recent opportunities, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def get_stats(self) -> dict:
        now = self._clock()
        last_5min = [o for o in self._history if now - o.detected_at < 5 * 60]
        last_hour = [o for o in self._history if now - o.detected_at < 60 * 60]

        return {
            "total_detected": self.total_detected,
            "active": len(self.get_active_opportunities()),
            "last_5min": len(last_5min),
            "last_hour": len(last_hour),
            "avg_spread_bps": (
                sum(o.spread_bps for o in last_5min) / len(last_5min) if last_5min else 0.0
            ),
            "avg_profit_usd": (
                sum(o.estimated_profit_usd for o in last_5min) / len(last_5min) if last_5min else 0.0
            ),
        }

    def clear_history(self) -> None:
        self._history.clear()
        self._active.clear()
        self.total_detected = 0
