"""
Telegram Alerts for Arbitrage
=============================
Formats opportunity, trade and status notifications as Telegram HTML.

Delivery is delegated to an injected async send(text) callable, so the
bot transport (or a log sink in tests and dry runs) lives elsewhere.
A failing send is logged and dropped; alerts never break the loop.
"""

from typing import Awaitable, Callable, Optional

from arbitrage.config.settings import MINT_TO_SYMBOL
from arbitrage.system.logging import Logger


SendFn = Callable[[str], Awaitable[None]]

SOLSCAN_TX_URL = "https://solscan.io/tx/"


def _token_label(mint: str, symbol: Optional[str] = None) -> str:
    return symbol or MINT_TO_SYMBOL.get(mint) or f"{mint[:8]}..."


class ArbitrageAlerts:
    """
    Telegram notification handler for arbitrage events.

    Sends alerts for:
    - Opportunities at or above alert_threshold_bps
    - Trade results (success with explorer link, or the error)
    - Status snapshots and errors on request
    """

    def __init__(self, send: SendFn, alert_threshold_bps: float = 0.0, enabled: bool = True):
        self._send_fn = send
        self.alert_threshold_bps = alert_threshold_bps
        self.enabled = enabled
        self.sent_count = 0

    async def _send(self, message: str) -> None:
        if not self.enabled:
            Logger.debug(f"[COMMS] {message[:50]}...")
            return
        try:
            await self._send_fn(message)
            self.sent_count += 1
        except Exception as e:
            Logger.debug(f"[COMMS] Telegram send error: {e}")

    # ═══════════════════════════════════════════════════════════════════
    # FORMATTERS
    # ═══════════════════════════════════════════════════════════════════

    @staticmethod
    def format_opportunity(opportunity) -> str:
        kind = "TRIANGULAR" if opportunity.is_cyclic else "ARBITRAGE"
        emoji = "🔔" if opportunity.spread_bps >= 100 else "🎯"
        token = _token_label(opportunity.token_mint, opportunity.token_symbol)

        msg = (
            f"{emoji} <b>{kind} OPPORTUNITY</b>\n\n"
            f"Token: <code>{token}</code>\n"
            f"Buy: {opportunity.buy_dex} @ <code>{opportunity.buy_price:.6f}</code>\n"
            f"Sell: {opportunity.sell_dex} @ <code>{opportunity.sell_price:.6f}</code>\n"
            f"Spread: <code>{opportunity.spread_bps:.2f} bps</code>\n"
            f"Est. Profit: <code>${opportunity.estimated_profit_usd:.4f}</code>"
        )
        if opportunity.is_cyclic:
            msg += f"\nRoute: <code>{opportunity.route_label}</code>"
        return msg

    @staticmethod
    def format_trade(result) -> str:
        opportunity = result.opportunity
        emoji = "✅" if result.success else "❌"
        status = "SUCCESSFUL" if result.success else "FAILED"

        msg = (
            f"{emoji} <b>TRADE {status}</b>\n\n"
            f"Token: <code>{_token_label(opportunity.token_mint, opportunity.token_symbol)}</code>\n"
            f"Buy DEX: {opportunity.buy_dex}\n"
            f"Sell DEX: {opportunity.sell_dex}\n"
            f"Duration: <code>{result.duration_ms:.0f}ms</code>"
        )
        if result.success and result.buy_tx_hash:
            msg += f'\n\n<a href="{SOLSCAN_TX_URL}{result.buy_tx_hash}">View TX</a>'
        if result.error:
            msg += f"\n\nError: <code>{result.error}</code>"
        return msg

    @staticmethod
    def format_status(status) -> str:
        running = "🟢" if status.is_running else ("⏸️" if status.is_paused else "🔴")
        wallet = f"{status.wallet_address[:8]}..." if status.wallet_address else "N/A"
        success_rate = (
            status.trades_successful / status.trades_executed * 100
            if status.trades_executed > 0
            else 0.0
        )

        return (
            f"{running} <b>BOT STATUS</b>\n\n"
            f"Network: <code>{status.network}</code>\n"
            f"Wallet: <code>{wallet}</code>\n"
            f"Balance: <code>{status.balance_sol:.4f} SOL</code>\n\n"
            f"<b>Stats</b>\n"
            f"Opportunities: <code>{status.opportunities_detected}</code>\n"
            f"Trades: <code>{status.trades_executed}</code>\n"
            f"Success Rate: <code>{success_rate:.1f}%</code>\n"
            f"Profit: <code>${status.total_profit_usd:.2f}</code>\n\n"
            f"Uptime: <code>{int(status.uptime_seconds // 60)} min</code>\n"
            f"Avg Latency: <code>{status.avg_latency_ms:.0f}ms</code>"
        )

    # ═══════════════════════════════════════════════════════════════════
    # NOTIFICATIONS
    # ═══════════════════════════════════════════════════════════════════

    async def notify_opportunity(self, opportunity) -> None:
        if opportunity.spread_bps < self.alert_threshold_bps:
            return
        await self._send(self.format_opportunity(opportunity))

    async def notify_trade(self, result) -> None:
        await self._send(self.format_trade(result))

    async def send_status(self, status) -> None:
        await self._send(self.format_status(status))

    async def notify_error(self, error: str) -> None:
        await self._send(f"⚠️ <b>ERROR</b>\n\n{error}")
