# Configuration Package
"""Engine configuration and well-known Solana addresses."""

from .settings import (
    BotConfig,
    JITO_ENDPOINTS,
    JITO_TIP_ACCOUNTS,
    MINT_TO_SYMBOL,
    SOL_MINT,
    TOKEN_DECIMALS,
    TOKENS,
    USDC_MINT,
)

__all__ = [
    "BotConfig",
    "JITO_ENDPOINTS",
    "JITO_TIP_ACCOUNTS",
    "MINT_TO_SYMBOL",
    "SOL_MINT",
    "TOKEN_DECIMALS",
    "TOKENS",
    "USDC_MINT",
]
