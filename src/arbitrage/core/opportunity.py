"""
Arbitrage Opportunity
=====================
Immutable record emitted by the detector and read by the risk gate
and executor.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional, Tuple

from arbitrage.feeds.price_source import Quote
from .graph import GraphEdge


def new_opportunity_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Opportunity:
    """
    A detected price mismatch, valid until expires_at.

    For pairwise opportunities buy_price is expressed per token bought
    (the inverted buy quote) and sell_price is the sell quote's rate.
    For cyclic opportunities buy/sell describe the first and last edge
    and path holds all three.
    """

    token_mint: str

    # Buy side
    buy_dex: str
    buy_price: float
    buy_quote: Optional[Quote]

    # Sell side
    sell_dex: str
    sell_price: float
    sell_quote: Optional[Quote]

    # Profit calculation
    spread_bps: float
    estimated_profit_bps: float
    estimated_profit_usd: float
    trade_size: float  # base asset units
    trade_size_usd: float

    # Timing
    detected_at: float
    expires_at: float

    is_cyclic: bool = False
    path: Tuple[GraphEdge, ...] = ()
    token_symbol: Optional[str] = None
    id: str = field(default_factory=new_opportunity_id)

    def __post_init__(self):
        if self.expires_at <= self.detected_at:
            raise ValueError("expires_at must be after detected_at")

    def is_active(self, now: Optional[float] = None) -> bool:
        return (time.time() if now is None else now) < self.expires_at

    def age_seconds(self, now: Optional[float] = None) -> float:
        return (time.time() if now is None else now) - self.detected_at

    @property
    def legs(self) -> Tuple[Quote, ...]:
        """Every quote backing this opportunity, in execution order."""
        if self.is_cyclic and self.path:
            return tuple(e.quote for e in self.path if e.quote is not None)
        return tuple(q for q in (self.buy_quote, self.sell_quote) if q is not None)

    @property
    def route_label(self) -> str:
        if self.is_cyclic and self.path:
            return " → ".join(e.dex for e in self.path)
        return f"{self.buy_dex} → {self.sell_dex}"
