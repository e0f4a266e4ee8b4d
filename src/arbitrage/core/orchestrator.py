"""
Arbitrage Orchestrator
======================
Main coordinator that runs the arbitrage loop.

Ticks the detector on a fixed interval and pushes what it finds
through risk → execution → notification. A tick that comes due while
the previous one is still running is skipped, never queued.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Deque, List, Optional

from arbitrage.config.settings import BotConfig, MINT_TO_SYMBOL
from arbitrage.feeds.aggregator import PriceAggregator
from arbitrage.system.logging import Logger
from .executor import TradeExecutor, TradeResult
from .opportunity import Opportunity
from .risk_manager import ArbitrageRiskManager
from .spread_detector import OpportunityDetector


DEVNET_AIRDROP_BELOW_SOL = 0.1


@dataclass
class BotStatus:
    is_running: bool
    is_paused: bool
    network: str
    wallet_address: Optional[str]
    balance_sol: float
    opportunities_detected: int
    trades_executed: int
    trades_successful: int
    trades_failed: int
    total_profit_usd: float
    uptime_seconds: float
    last_price_update: Optional[float]
    avg_latency_ms: float


class ArbitrageOrchestrator:
    """
    Main orchestrator for the arbitrage engine.

    Coordinates:
    - Periodic detector scans (pairwise, optionally cyclic)
    - Risk checks and execution of detected opportunities
    - Alerts and the status snapshot

    Without a signer it runs in monitoring mode: opportunities are
    detected and alerted but never executed.
    """

    def __init__(
        self,
        config: BotConfig,
        aggregator: PriceAggregator,
        detector: OpportunityDetector,
        risk_manager: ArbitrageRiskManager,
        executor: TradeExecutor,
        alerts=None,
        enable_graph: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.aggregator = aggregator
        self.detector = detector
        self.risk_manager = risk_manager
        self.executor = executor
        self.alerts = alerts
        self.enable_graph = enable_graph
        self._clock = clock

        self.monitored_tokens: List[str] = list(config.monitored_tokens)

        # State
        self.is_running = False
        self.is_paused = False
        self.started_at = clock()
        self.last_tick: Optional[float] = None
        self.current_balance = 0.0
        self._tick_task: Optional[asyncio.Task] = None
        self._pending: Deque[Opportunity] = deque()
        self._subscribed = False

        # Stats
        self.opportunities_detected = 0
        self.trades_executed = 0
        self.trades_successful = 0
        self.trades_failed = 0
        self.total_profit_usd = 0.0

    @property
    def signer(self):
        return self.executor.signer

    # ═══════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ═══════════════════════════════════════════════════════════════════

    async def start(self) -> None:
        """Wallet check, observer registration. Does not start the loop."""
        Logger.section("Solana Arbitrage Engine")
        Logger.info(f"[SYSTEM] 📡 Network: {self.config.network}")
        Logger.info(f"[SYSTEM] 🔗 RPC: {self.config.rpc_url}")

        if self.signer is None:
            Logger.warning("[SYSTEM] ⚠️ Running in monitoring mode (no wallet)")
        else:
            self.current_balance = await self.signer.get_balance()
            Logger.info(f"[WALLET] 💰 Wallet balance: {self.current_balance:.4f} SOL")
            if (
                self.config.network == "devnet"
                and self.current_balance < DEVNET_AIRDROP_BELOW_SOL
                and hasattr(self.signer, "request_airdrop")
            ):
                Logger.info("[WALLET] Requesting devnet airdrop...")
                await self.signer.request_airdrop(2.0)

        if not self._subscribed:
            self.detector.on_opportunity(self.handle_opportunity)
            self._subscribed = True

        self.is_running = True
        self.started_at = self._clock()
        Logger.success(f"[SYSTEM] ✅ Engine started, monitoring {len(self.monitored_tokens)} tokens")

    async def run(self, duration: Optional[float] = None) -> None:
        """
        Run the scan loop.

        Args:
            duration: Optional duration in seconds (None = run until stop())
        """
        if not self.is_running:
            await self.start()

        loop_start = time.monotonic()
        try:
            while self.is_running:
                if duration and (time.monotonic() - loop_start) >= duration:
                    Logger.info(f"[SYSTEM] ⏱️ Duration limit reached ({duration}s)")
                    break

                if self._tick_task is None or self._tick_task.done():
                    self._tick_task = asyncio.create_task(self._tick())
                else:
                    Logger.debug("[SYSTEM] Previous scan still running, skipping tick")

                await asyncio.sleep(self.config.price_refresh_s)
        except asyncio.CancelledError:
            Logger.info("[SYSTEM] 🛑 Stopped by user")
            raise
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the loop, let an in-flight tick finish, release feeds."""
        if not self.is_running and self._tick_task is None:
            return
        Logger.info("[SYSTEM] 🛑 Shutting down...")
        self.is_running = False

        task, self._tick_task = self._tick_task, None
        if task is not None and not task.done():
            await asyncio.wait([task], timeout=self.config.confirm_timeout_s)
            if not task.done():
                Logger.warning("[SYSTEM] Scan still running at shutdown, cancelling")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        await self.aggregator.close()
        Logger.info(f"[SYSTEM] Final stats: {self.detector.get_stats()}")

    def pause(self) -> None:
        self.is_paused = True
        Logger.info("[SYSTEM] ⏸️ Engine paused")

    def resume(self) -> None:
        self.is_paused = False
        Logger.info("[SYSTEM] ▶️ Engine resumed")

    # ═══════════════════════════════════════════════════════════════════
    # SCAN LOOP
    # ═══════════════════════════════════════════════════════════════════

    async def _tick(self) -> None:
        """One scan: balance refresh, detection, then handle what was found."""
        if not self.is_running or self.is_paused:
            return

        try:
            started = time.perf_counter()

            if self.signer is not None:
                self.current_balance = await self.signer.get_balance()

            opportunities = await self.detector.scan_tokens(
                self.monitored_tokens,
                self.config.base_token,
                self.config.max_trade_size_sol,
            )
            if self.enable_graph:
                opportunities += await self.detector.scan_graph(
                    self.monitored_tokens,
                    self.config.base_token,
                    self.config.max_trade_size_sol,
                )

            scan_ms = (time.perf_counter() - started) * 1000
            self.last_tick = self._clock()

            if opportunities:
                Logger.info(f"[SYSTEM] Found {len(opportunities)} opportunities in {scan_ms:.0f}ms")
            else:
                Logger.debug(f"[SYSTEM] Scan complete in {scan_ms:.0f}ms - no opportunities")

            await self._process_pending()

            # Drops expired entries from the detector's active set
            self.detector.get_active_opportunities()
        except Exception as e:
            Logger.error(f"[SYSTEM] Scan loop error: {e}")

    def handle_opportunity(self, opportunity: Opportunity) -> None:
        """Detector observer. Queues the opportunity for the current tick."""
        self.opportunities_detected += 1
        self._pending.append(opportunity)

    async def _process_pending(self) -> None:
        while self._pending:
            opportunity = self._pending.popleft()
            await self._process_opportunity(opportunity)

    async def _process_opportunity(self, opportunity: Opportunity) -> Optional[TradeResult]:
        if self.alerts is not None:
            await self.alerts.notify_opportunity(opportunity)

        if self.signer is None:
            Logger.info("[SYSTEM] Opportunity detected but wallet not available")
            return None

        if not opportunity.is_active(self._clock()):
            Logger.debug(f"[SYSTEM] Opportunity {opportunity.id[:8]} expired before execution")
            return None

        balance = await self.signer.get_balance()
        check = self.risk_manager.check_trade(opportunity, balance)
        if not check.passed:
            Logger.info(f"[RISK] Risk check failed: {check.reason}")
            return None

        for warning in check.warnings:
            Logger.warning(f"[RISK] ⚠️ {warning}")

        if check.adjusted_size is not None and check.adjusted_size != opportunity.trade_size:
            # Profit scales linearly with size
            scale = check.adjusted_size / opportunity.trade_size
            opportunity = replace(
                opportunity,
                trade_size=check.adjusted_size,
                trade_size_usd=opportunity.trade_size_usd * scale,
                estimated_profit_usd=opportunity.estimated_profit_usd * scale,
            )

        Logger.info(f"[EXECUTOR] 💹 Executing opportunity with spread {opportunity.spread_bps:.2f} bps")
        result = await self.executor.execute(opportunity)
        self.trades_executed += 1

        if result.success:
            self.trades_successful += 1
            self.total_profit_usd += opportunity.estimated_profit_usd
            self.risk_manager.record_trade(opportunity.estimated_profit_usd, True)
        else:
            self.trades_failed += 1
            self.risk_manager.record_trade(0.0, False)

        if self.alerts is not None:
            await self.alerts.notify_trade(result)
        return result

    # ═══════════════════════════════════════════════════════════════════
    # CONTROL & STATUS
    # ═══════════════════════════════════════════════════════════════════

    def add_token(self, mint: str) -> None:
        if mint not in self.monitored_tokens:
            self.monitored_tokens.append(mint)
            Logger.info(f"[SYSTEM] Added token to monitor: {MINT_TO_SYMBOL.get(mint, mint)}")

    def remove_token(self, mint: str) -> None:
        if mint in self.monitored_tokens:
            self.monitored_tokens.remove(mint)
            Logger.info(f"[SYSTEM] Removed token from monitor: {MINT_TO_SYMBOL.get(mint, mint)}")

    def get_status(self) -> BotStatus:
        aggregator_stats = self.aggregator.get_stats()
        return BotStatus(
            is_running=self.is_running and not self.is_paused,
            is_paused=self.is_paused,
            network=self.config.network,
            wallet_address=str(self.signer.pubkey()) if self.signer is not None else None,
            balance_sol=self.current_balance,
            opportunities_detected=self.opportunities_detected,
            trades_executed=self.trades_executed,
            trades_successful=self.trades_successful,
            trades_failed=self.trades_failed,
            total_profit_usd=self.total_profit_usd,
            uptime_seconds=self._clock() - self.started_at,
            last_price_update=self.last_tick,
            avg_latency_ms=aggregator_stats["avg_fetch_ms"],
        )
