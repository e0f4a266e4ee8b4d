"""
Abstract Price Source Interface
===============================
Defines the contract for all DEX quote adapters.

The engine only ever sees normalized Quote values; everything
venue-specific (HTTP calls, field parsing, caching) stays inside
the adapter.
"""

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Quote:
    """
    A tradeable quote from one venue for one swap direction.

    price is always output units per input unit. price_impact_pct is
    a percentage (0.5 means 0.5%), fees are denominated in the
    output token, and liquidity_usd is 0 when the venue doesn't say.
    """

    dex: str
    input_mint: str  # sold
    output_mint: str  # bought
    input_amount: float  # UI units, not atomic
    output_amount: float
    price: float
    price_impact_pct: float = 0.0
    fees: float = 0.0
    liquidity_usd: float = 0.0
    route: Optional[List[str]] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.input_amount < 0 or self.output_amount < 0:
            raise ValueError("Quote amounts cannot be negative")
        if self.input_amount > 0 and not math.isclose(
            self.price, self.output_amount / self.input_amount, rel_tol=1e-9
        ):
            raise ValueError("Quote price must equal output_amount / input_amount")

    @classmethod
    def from_amounts(
        cls,
        dex: str,
        input_mint: str,
        output_mint: str,
        input_amount: float,
        output_amount: float,
        **kwargs,
    ) -> "Quote":
        """Build a quote deriving price from the two amounts."""
        price = output_amount / input_amount if input_amount > 0 else 0.0
        return cls(
            dex=dex,
            input_mint=input_mint,
            output_mint=output_mint,
            input_amount=input_amount,
            output_amount=output_amount,
            price=price,
            **kwargs,
        )

    @property
    def price_impact_bps(self) -> float:
        return self.price_impact_pct * 100

    @property
    def has_known_liquidity(self) -> bool:
        return self.liquidity_usd > 0

    def __repr__(self) -> str:
        return f"Quote({self.dex}: {self.input_amount:.4f} → {self.output_amount:.4f} @ {self.price:.6f})"


class PriceSource(ABC):
    """
    One venue's quote endpoint.

    get_quote() returns None when the venue has no route or errors.
    The aggregator also tolerates exceptions, so a raising adapter
    only costs its own quote.
    """

    @abstractmethod
    def get_name(self) -> str:
        """Venue name used as Quote.dex and in logs."""

    @abstractmethod
    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: float,
        decimals: int = 9,
        slippage_bps: int = 50,
    ) -> Optional[Quote]:
        """
        Quote selling `amount` of input_mint for output_mint.

        decimals belongs to the input token and is only needed to
        convert `amount` to atomic units for the venue.
        """

    async def close(self):
        pass

    def clear_cache(self) -> None:
        """Drop any cached quotes."""
