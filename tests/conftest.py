"""
Arbitrage Engine Test Configuration
===================================
Shared fixtures and pytest markers for the test suite.
"""

import pytest

from arbitrage.config.settings import BotConfig, SOL_MINT
from arbitrage.core.opportunity import Opportunity
from arbitrage.feeds.price_source import Quote


# ============================================================================
# PYTEST MARKERS
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "network: marks tests that require network access"
    )


# ============================================================================
# SHARED FIXTURES
# ============================================================================

TOKEN_MINT = "TokenMint1111111111111111111111111111111111"


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Devnet config with the documented defaults and no credentials."""
    return BotConfig()


@pytest.fixture
def make_quote():
    """Factory for quotes; price is derived from amount (1.0 in)."""
    def _make(dex, price, input_mint=SOL_MINT, output_mint=TOKEN_MINT, **kwargs):
        return Quote.from_amounts(
            dex=dex,
            input_mint=input_mint,
            output_mint=output_mint,
            input_amount=1.0,
            output_amount=price,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_opportunity(clock, make_quote):
    """Factory for a pairwise opportunity detected 'now' on the fake clock."""
    def _make(
        spread_bps=500.0,
        trade_size=1.0,
        buy_quote=None,
        sell_quote=None,
        detected_at=None,
        **kwargs,
    ):
        buy_quote = buy_quote or make_quote("jupiter", 0.015)
        sell_quote = sell_quote or make_quote(
            "raydium", 70.0, input_mint=TOKEN_MINT, output_mint=SOL_MINT
        )
        detected = clock.now if detected_at is None else detected_at
        fields = dict(
            token_mint=TOKEN_MINT,
            buy_dex=buy_quote.dex,
            buy_price=1.0 / buy_quote.price,
            buy_quote=buy_quote,
            sell_dex=sell_quote.dex,
            sell_price=sell_quote.price,
            sell_quote=sell_quote,
            spread_bps=spread_bps,
            estimated_profit_bps=spread_bps - 10.0,
            estimated_profit_usd=4.9,
            trade_size=trade_size,
            trade_size_usd=trade_size * 100.0,
            detected_at=detected,
            expires_at=detected + 5.0,
        )
        fields.update(kwargs)
        return Opportunity(**fields)
    return _make
