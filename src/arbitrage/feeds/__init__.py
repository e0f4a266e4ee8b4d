# Arbitrage Feeds Package
"""Quote contract, venue fan-out and the Jupiter, Raydium and Orca adapters."""

from .price_source import PriceSource, Quote
from .aggregator import PriceAggregator
from .jupiter_feed import JupiterFeed
from .raydium_feed import RaydiumFeed
from .orca_feed import OrcaFeed

__all__ = ["PriceSource", "Quote", "PriceAggregator", "JupiterFeed", "RaydiumFeed", "OrcaFeed"]
