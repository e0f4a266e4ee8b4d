"""
ArbitrageOrchestrator Unit Tests
================================
Tick gating, opportunity handling and status reporting with mocked
collaborators.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from arbitrage.config.settings import BotConfig, TOKENS
from arbitrage.core.executor import TradeResult
from arbitrage.core.orchestrator import ArbitrageOrchestrator
from arbitrage.core.risk_manager import ArbitrageRiskManager, RiskLimits


def build(config, clock, signer=None, execute_success=True, opportunities=()):
    aggregator = MagicMock()
    aggregator.close = AsyncMock()
    aggregator.get_stats.return_value = {"avg_fetch_ms": 12.5, "last_fetch_ms": 10.0, "fetch_count": 3}

    detector = MagicMock()
    detector.get_stats.return_value = {}
    detector.scan_graph = AsyncMock(return_value=[])

    executor = MagicMock()
    executor.signer = signer

    async def execute(opportunity):
        return TradeResult(
            success=execute_success,
            opportunity=opportunity,
            buy_tx_hash="sig" if execute_success else None,
            sell_tx_hash="sig" if execute_success else None,
            error=None if execute_success else "boom",
        )

    executor.execute = AsyncMock(side_effect=execute)

    alerts = MagicMock()
    alerts.notify_opportunity = AsyncMock()
    alerts.notify_trade = AsyncMock()

    risk = ArbitrageRiskManager(RiskLimits(), clock=clock)
    orchestrator = ArbitrageOrchestrator(
        config, aggregator, detector, risk, executor, alerts=alerts, clock=clock
    )

    async def scan(tokens, base, amount):
        # Emulates the detector emitting to its observers mid-scan
        for opp in opportunities:
            orchestrator.handle_opportunity(opp)
        return list(opportunities)

    detector.scan_tokens = AsyncMock(side_effect=scan)
    return orchestrator


@pytest.fixture
def wallet():
    signer = MagicMock()
    signer.get_balance = AsyncMock(return_value=10.0)
    signer.pubkey.return_value = "WalletPubkey1111111111111111111111111111111"
    return signer


class TestTick:

    @pytest.mark.asyncio
    async def test_paused_tick_does_nothing(self, config, clock):
        orchestrator = build(config, clock)
        await orchestrator.start()
        orchestrator.pause()

        await orchestrator._tick()

        orchestrator.detector.scan_tokens.assert_not_called()

        orchestrator.resume()
        await orchestrator._tick()
        orchestrator.detector.scan_tokens.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_tick_before_start_does_nothing(self, config, clock):
        orchestrator = build(config, clock)

        await orchestrator._tick()

        orchestrator.detector.scan_tokens.assert_not_called()

    @pytest.mark.asyncio
    async def test_graph_scan_only_when_enabled(self, config, clock):
        orchestrator = build(config, clock)
        await orchestrator.start()

        await orchestrator._tick()
        orchestrator.detector.scan_graph.assert_not_called()

        orchestrator.enable_graph = True
        await orchestrator._tick()
        orchestrator.detector.scan_graph.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_scan_error_is_contained(self, config, clock):
        orchestrator = build(config, clock)
        orchestrator.detector.scan_tokens = AsyncMock(side_effect=RuntimeError("boom"))
        await orchestrator.start()

        await orchestrator._tick()

        assert orchestrator.last_tick is None

    @pytest.mark.asyncio
    async def test_overlapping_ticks_are_skipped(self, clock):
        config = BotConfig(price_refresh_ms=10)
        orchestrator = build(config, clock)

        async def slow_scan(tokens, base, amount):
            await asyncio.sleep(0.2)
            return []

        orchestrator.detector.scan_tokens = AsyncMock(side_effect=slow_scan)

        await orchestrator.run(duration=0.1)

        assert orchestrator.detector.scan_tokens.await_count == 1
        assert not orchestrator.is_running
        orchestrator.aggregator.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_cancels_hung_scan(self, clock):
        orchestrator = build(BotConfig(confirm_timeout_s=0.05), clock)
        never = asyncio.Event()

        async def hung_scan(tokens, base, amount):
            await never.wait()
            return []

        orchestrator.detector.scan_tokens = AsyncMock(side_effect=hung_scan)
        await orchestrator.start()
        task = asyncio.create_task(orchestrator._tick())
        orchestrator._tick_task = task
        await asyncio.sleep(0)

        await orchestrator.stop()

        assert task.done()
        assert task.cancelled()
        assert orchestrator._tick_task is None
        orchestrator.aggregator.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_tick_prunes_expired_opportunities(self, config, clock):
        orchestrator = build(config, clock)
        await orchestrator.start()

        await orchestrator._tick()

        orchestrator.detector.get_active_opportunities.assert_called_once()


class TestOpportunityHandling:

    @pytest.mark.asyncio
    async def test_successful_trade(self, config, clock, wallet, make_opportunity):
        opp = make_opportunity()
        orchestrator = build(config, clock, signer=wallet, opportunities=[opp])
        await orchestrator.start()

        await orchestrator._tick()

        orchestrator.executor.execute.assert_awaited_once()
        assert orchestrator.opportunities_detected == 1
        assert orchestrator.trades_successful == 1
        assert orchestrator.total_profit_usd == pytest.approx(opp.estimated_profit_usd)
        assert orchestrator.risk_manager.daily_pnl == pytest.approx(opp.estimated_profit_usd)
        orchestrator.alerts.notify_opportunity.assert_awaited_once_with(opp)
        orchestrator.alerts.notify_trade.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_trade(self, config, clock, wallet, make_opportunity):
        orchestrator = build(
            config, clock, signer=wallet, execute_success=False, opportunities=[make_opportunity()]
        )
        await orchestrator.start()

        await orchestrator._tick()

        assert orchestrator.trades_failed == 1
        assert orchestrator.risk_manager.failed_trades == 1
        assert orchestrator.total_profit_usd == 0.0

    @pytest.mark.asyncio
    async def test_execution_uses_risk_adjusted_size(self, config, clock, wallet, make_opportunity):
        orchestrator = build(config, clock, signer=wallet, opportunities=[make_opportunity(trade_size=8.0)])
        await orchestrator.start()

        await orchestrator._tick()

        executed = orchestrator.executor.execute.call_args.args[0]
        assert executed.trade_size == 1.0
        assert executed.trade_size_usd == pytest.approx(100.0)
        assert executed.estimated_profit_usd == pytest.approx(4.9 / 8)
        assert orchestrator.total_profit_usd == pytest.approx(4.9 / 8)
        assert orchestrator.risk_manager.daily_pnl == pytest.approx(4.9 / 8)

    @pytest.mark.asyncio
    async def test_risk_rejection_skips_execution(self, config, clock, wallet, make_opportunity):
        orchestrator = build(config, clock, signer=wallet, opportunities=[make_opportunity(spread_bps=10.0)])
        await orchestrator.start()

        await orchestrator._tick()

        orchestrator.executor.execute.assert_not_called()
        orchestrator.alerts.notify_opportunity.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_monitoring_mode_never_executes(self, config, clock, make_opportunity):
        orchestrator = build(config, clock, signer=None, opportunities=[make_opportunity()])
        await orchestrator.start()

        await orchestrator._tick()

        orchestrator.executor.execute.assert_not_called()
        assert orchestrator.opportunities_detected == 1

    @pytest.mark.asyncio
    async def test_expired_opportunity_is_not_executed(self, config, clock, wallet, make_opportunity):
        stale = make_opportunity(detected_at=clock.now - 10.0)
        orchestrator = build(config, clock, signer=wallet, opportunities=[stale])
        await orchestrator.start()

        await orchestrator._tick()

        orchestrator.executor.execute.assert_not_called()


class TestControl:

    def test_add_and_remove_tokens(self, config, clock):
        orchestrator = build(config, clock)
        start = list(orchestrator.monitored_tokens)

        orchestrator.add_token(TOKENS["USDT"])
        orchestrator.add_token(TOKENS["USDT"])
        assert orchestrator.monitored_tokens == start + [TOKENS["USDT"]]

        orchestrator.remove_token(TOKENS["USDT"])
        orchestrator.remove_token("unknown")
        assert orchestrator.monitored_tokens == start

    @pytest.mark.asyncio
    async def test_status(self, config, clock, wallet):
        orchestrator = build(config, clock, signer=wallet)
        await orchestrator.start()
        clock.advance(120.0)

        status = orchestrator.get_status()

        assert status.is_running
        assert not status.is_paused
        assert status.network == "devnet"
        assert status.wallet_address == "WalletPubkey1111111111111111111111111111111"
        assert status.balance_sol == 10.0
        assert status.uptime_seconds == pytest.approx(120.0)
        assert status.avg_latency_ms == 12.5

        orchestrator.pause()
        assert not orchestrator.get_status().is_running
        assert orchestrator.get_status().is_paused

    @pytest.mark.asyncio
    async def test_low_devnet_balance_requests_airdrop(self, config, clock, wallet):
        wallet.get_balance = AsyncMock(return_value=0.0)
        wallet.request_airdrop = AsyncMock(return_value="sig")
        orchestrator = build(config, clock, signer=wallet)

        await orchestrator.start()

        wallet.request_airdrop.assert_awaited_once_with(2.0)
