# Arbitrage Engine Package
"""
arbitrage - Solana cross-venue arbitrage detection and execution.

Submodules:
    feeds/          - Quote contract, venue fan-out, Jupiter adapter
    core/           - Rate graph, detection, risk gate, execution, orchestration
    infrastructure/ - Wallet signer and Jito relay
    monitoring/     - Telegram alert formatting
    config/         - BotConfig and well-known addresses
    system/         - Logging
"""

__version__ = "1.0.0"

from .config.settings import BotConfig
from .core.orchestrator import ArbitrageOrchestrator, BotStatus
from .core.spread_detector import OpportunityDetector

__all__ = [
    "ArbitrageOrchestrator",
    "BotConfig",
    "BotStatus",
    "OpportunityDetector",
]
