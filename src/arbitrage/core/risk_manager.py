"""
Arbitrage Risk Manager
======================
Validates opportunities before execution.

Every check returns a reason instead of raising; a rejection is a
normal outcome and is never retried. The manager also keeps a rolling
24h P&L ledger that trips a kill switch once the daily loss limit is
exceeded.
"""

import time
from dataclasses import asdict, dataclass, field, replace
from typing import Callable, List, Optional, Sequence, Tuple

from arbitrage.feeds.price_source import Quote
from arbitrage.system.logging import Logger
from .opportunity import Opportunity


DAY_SECONDS = 24 * 60 * 60
MIN_TRADE_SIZE_SOL = 0.01
ASSUMED_GAS_SOL = 0.002  # typical arb tx
STALE_AFTER_S = 2.0


@dataclass(frozen=True)
class RiskLimits:
    max_trade_size_sol: float = 1.0
    max_slippage_bps: float = 100.0
    min_liquidity_usd: float = 10_000.0
    max_price_impact_bps: float = 200.0  # 2% max impact
    min_profit_bps: float = 50.0
    max_gas_lamports: int = 100_000
    max_position_percent: float = 50.0  # of wallet balance
    daily_loss_limit_usd: float = 50.0


@dataclass
class RiskCheckResult:
    passed: bool
    reason: Optional[str] = None
    adjusted_size: Optional[float] = None
    warnings: List[str] = field(default_factory=list)


def _labelled_legs(opportunity: Opportunity) -> List[Tuple[str, Quote]]:
    legs = opportunity.legs
    if len(legs) == 2 and not opportunity.is_cyclic:
        return [("Buy", legs[0]), ("Sell", legs[1])]
    return [(f"Leg {i + 1}", quote) for i, quote in enumerate(legs)]


class ArbitrageRiskManager:
    """
    Risk manager for arbitrage trades.

    Stateless per check apart from the daily ledger, which is owned
    here and only changed through record_trade().
    """

    def __init__(self, limits: Optional[RiskLimits] = None, clock: Callable[[], float] = time.time):
        self.limits = limits or RiskLimits()
        self._clock = clock

        # Daily P&L tracking
        self.daily_pnl = 0.0
        self.daily_start_time = clock()
        self.trade_count = 0
        self.failed_trades = 0

    def check_trade(self, opportunity: Opportunity, wallet_balance_sol: float) -> RiskCheckResult:
        """
        Run every risk check in order; the first failure wins.

        Returns:
            RiskCheckResult with the adjusted size and any soft warnings
        """
        warnings: List[str] = []
        limits = self.limits

        self._check_daily_reset()

        # Kill switch
        if self.daily_pnl < -limits.daily_loss_limit_usd:
            return RiskCheckResult(
                passed=False,
                reason=f"Daily loss limit reached: ${abs(self.daily_pnl):.2f}",
                warnings=warnings,
            )

        if opportunity.spread_bps < limits.min_profit_bps:
            return RiskCheckResult(
                passed=False,
                reason=(
                    f"Spread {opportunity.spread_bps:.2f} bps below minimum "
                    f"{limits.min_profit_bps} bps"
                ),
                warnings=warnings,
            )

        # Size
        adjusted_size = opportunity.trade_size
        max_by_balance = wallet_balance_sol * (limits.max_position_percent / 100)

        if adjusted_size > limits.max_trade_size_sol:
            adjusted_size = limits.max_trade_size_sol
            warnings.append(f"Trade size capped to max: {limits.max_trade_size_sol} SOL")

        if adjusted_size > max_by_balance:
            adjusted_size = max_by_balance
            warnings.append(f"Trade size reduced to {limits.max_position_percent}% of balance")

        if adjusted_size < MIN_TRADE_SIZE_SOL:
            return RiskCheckResult(
                passed=False,
                reason="Trade size too small after adjustments",
                warnings=warnings,
            )

        # Price impact
        legs = _labelled_legs(opportunity)
        for label, quote in legs:
            impact_bps = quote.price_impact_bps
            if impact_bps > limits.max_price_impact_bps:
                return RiskCheckResult(
                    passed=False,
                    reason=f"{label} price impact {impact_bps:.0f} bps exceeds limit",
                    warnings=warnings,
                )

        total_slippage = sum(quote.price_impact_bps for _, quote in legs)
        if total_slippage > limits.max_slippage_bps:
            return RiskCheckResult(
                passed=False,
                reason=f"Combined slippage {total_slippage:.0f} bps too high",
                warnings=warnings,
            )
        if total_slippage > limits.max_slippage_bps / 2:
            warnings.append(f"Notable slippage: {total_slippage:.0f} bps")

        # Liquidity (0 means the venue didn't report it)
        for label, quote in legs:
            if quote.has_known_liquidity and quote.liquidity_usd < limits.min_liquidity_usd:
                return RiskCheckResult(
                    passed=False,
                    reason=f"{label} pool liquidity ${quote.liquidity_usd:.0f} below minimum",
                    warnings=warnings,
                )

        # Soft checks
        if opportunity.trade_size * (opportunity.spread_bps / 10_000) < ASSUMED_GAS_SOL * 2:
            warnings.append("Profit margin tight relative to gas costs")

        age = opportunity.age_seconds(self._clock())
        if age > STALE_AFTER_S:
            warnings.append(f"Opportunity is {age:.1f}s old - may be stale")

        return RiskCheckResult(passed=True, adjusted_size=adjusted_size, warnings=warnings)

    def calculate_optimal_size(self, opportunity: Opportunity, wallet_balance_sol: float) -> float:
        """
        Recommended trade size in SOL.

        Starts from the clamped size and scales down for high price
        impact and marginal spreads.
        """
        size = min(
            opportunity.trade_size,
            self.limits.max_trade_size_sol,
            wallet_balance_sol * (self.limits.max_position_percent / 100),
        )

        impacts: Sequence[float] = [q.price_impact_pct for q in opportunity.legs]
        avg_impact = sum(impacts) / len(impacts) if impacts else 0.0
        if avg_impact > 0.5:
            size *= 0.5
        elif avg_impact > 0.25:
            size *= 0.75

        if opportunity.spread_bps < self.limits.min_profit_bps * 1.5:
            size *= 0.5

        return max(size, MIN_TRADE_SIZE_SOL)

    # ═══════════════════════════════════════════════════════════════════
    # DAILY LEDGER
    # ═══════════════════════════════════════════════════════════════════

    def record_trade(self, profit_usd: float, success: bool) -> None:
        """
        Book a trade into the daily ledger.

        Failed trades still book realized losses (fees, partial fills).
        """
        self.trade_count += 1
        if success:
            self.daily_pnl += profit_usd
        else:
            self.failed_trades += 1
            if profit_usd < 0:
                self.daily_pnl += profit_usd

        icon = "✅" if success else "❌"
        Logger.info(
            f"[RISK] Trade recorded: {icon} P&L: ${profit_usd:.2f}, Daily: ${self.daily_pnl:.2f}"
        )

    def _check_daily_reset(self) -> None:
        now = self._clock()
        if now - self.daily_start_time > DAY_SECONDS:
            Logger.info(
                f"[RISK] Daily reset: Yesterday P&L: ${self.daily_pnl:.2f}, Trades: {self.trade_count}"
            )
            self.daily_pnl = 0.0
            self.daily_start_time = now
            self.trade_count = 0
            self.failed_trades = 0

    def get_stats(self) -> dict:
        success_rate = (
            f"{(self.trade_count - self.failed_trades) / self.trade_count * 100:.1f}%"
            if self.trade_count > 0
            else "N/A"
        )
        return {
            "daily_pnl": self.daily_pnl,
            "trade_count": self.trade_count,
            "failed_trades": self.failed_trades,
            "success_rate": success_rate,
            "daily_limit_remaining": self.limits.daily_loss_limit_usd + self.daily_pnl,
        }

    def get_limits(self) -> RiskLimits:
        return self.limits

    def update_limits(self, **changes) -> RiskLimits:
        """Replace individual limits, e.g. update_limits(min_profit_bps=30)."""
        self.limits = replace(self.limits, **changes)
        Logger.info(f"[RISK] Risk limits updated: {asdict(self.limits)}")
        return self.limits
