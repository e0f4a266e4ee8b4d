"""
Engine Configuration
====================
Single configuration value for the arbitrage engine.

Loaded once at startup from the environment (and an optional .env file),
then passed by reference into every component constructor.

Usage:
    from arbitrage.config.settings import BotConfig

    config = BotConfig.from_env()
    detector = OpportunityDetector(aggregator, config)
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

from arbitrage.core.errors import ConfigError


# ═══════════════════════════════════════════════════════════════════
# WELL-KNOWN ADDRESSES
# ═══════════════════════════════════════════════════════════════════

TOKENS: Dict[str, str] = {
    "SOL": "So11111111111111111111111111111111111111112",
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    "RAY": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
    "ORCA": "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE",
    "BONK": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
    "JUP": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
}

SOL_MINT = TOKENS["SOL"]
USDC_MINT = TOKENS["USDC"]

# Reverse map for log output
MINT_TO_SYMBOL: Dict[str, str] = {mint: symbol for symbol, mint in TOKENS.items()}

TOKEN_DECIMALS: Dict[str, int] = {
    TOKENS["SOL"]: 9,
    TOKENS["USDC"]: 6,
    TOKENS["USDT"]: 6,
    TOKENS["RAY"]: 6,
    TOKENS["ORCA"]: 6,
    TOKENS["BONK"]: 5,
    TOKENS["JUP"]: 6,
}

# Block engine endpoints, tried in order. Networks without an entry
# have no protected relay and always submit directly.
JITO_ENDPOINTS: Dict[str, List[str]] = {
    "mainnet-beta": [
        "https://mainnet.block-engine.jito.wtf/api/v1/bundles",
        "https://amsterdam.mainnet.block-engine.jito.wtf/api/v1/bundles",
        "https://frankfurt.mainnet.block-engine.jito.wtf/api/v1/bundles",
        "https://ny.mainnet.block-engine.jito.wtf/api/v1/bundles",
        "https://tokyo.mainnet.block-engine.jito.wtf/api/v1/bundles",
    ],
    "devnet": [],
    "testnet": [],
}

JITO_TIP_ACCOUNTS: List[str] = [
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
    "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
]

NETWORKS = ("devnet", "testnet", "mainnet-beta")

DEFAULT_RPC_URLS: Dict[str, str] = {
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
}

_RPC_ENV_KEYS: Dict[str, str] = {
    "devnet": "RPC_URL_DEVNET",
    "testnet": "RPC_URL_TESTNET",
    "mainnet-beta": "RPC_URL_MAINNET",
}


def _default_monitored() -> List[str]:
    return [TOKENS["BONK"], TOKENS["JUP"], TOKENS["RAY"], TOKENS["ORCA"]]


@dataclass
class BotConfig:
    """Configuration snapshot shared by the detector, risk gate and executor."""

    # Network
    network: str = "devnet"
    rpc_url: str = DEFAULT_RPC_URLS["devnet"]

    # Wallet
    wallet_private_key: str = ""

    # Telegram
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    # Trading parameters
    min_profit_bps: float = 50.0
    max_slippage_bps: float = 100.0
    max_trade_size_sol: float = 1.0
    min_liquidity_usd: float = 10_000.0
    max_price_impact_bps: float = 200.0
    max_position_percent: float = 50.0
    daily_loss_limit_usd: float = 50.0

    # Detection
    opportunity_ttl_ms: int = 5000
    graph_request_delay_ms: int = 300
    gas_estimate_sol: float = 0.001
    venue_gas_sol: Dict[str, float] = field(default_factory=dict)

    # Performance / execution
    price_refresh_ms: int = 5000
    max_priority_fee_lamports: int = 100_000
    use_jito_bundles: bool = True
    jito_tip_lamports: int = 10_000
    max_retries: int = 3
    confirm_timeout_s: float = 30.0

    # Tokens
    monitored_tokens: List[str] = field(default_factory=_default_monitored)
    base_token: str = SOL_MINT

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True

    def __post_init__(self):
        if self.network not in NETWORKS:
            raise ConfigError(f"Unknown network: {self.network}")
        if self.opportunity_ttl_ms <= 0:
            raise ConfigError("OPPORTUNITY_TTL_MS must be positive")
        if self.max_retries < 0:
            raise ConfigError("MAX_RETRIES cannot be negative")
        if self.confirm_timeout_s <= 0:
            raise ConfigError("CONFIRM_TIMEOUT_S must be positive")

    @property
    def ws_url(self) -> str:
        return self.rpc_url.replace("https://", "wss://").replace("http://", "ws://")

    @property
    def opportunity_ttl_s(self) -> float:
        return self.opportunity_ttl_ms / 1000.0

    @property
    def graph_request_delay_s(self) -> float:
        return self.graph_request_delay_ms / 1000.0

    @property
    def price_refresh_s(self) -> float:
        return self.price_refresh_ms / 1000.0

    @property
    def jito_endpoints(self) -> List[str]:
        return list(JITO_ENDPOINTS.get(self.network, []))

    def gas_for_venue(self, dex: str) -> float:
        """Gas estimate (SOL) for a transaction touching the given venue."""
        return self.venue_gas_sol.get(dex, self.gas_estimate_sol)

    def risk_limits(self):
        from arbitrage.core.risk_manager import RiskLimits

        return RiskLimits(
            max_trade_size_sol=self.max_trade_size_sol,
            max_slippage_bps=self.max_slippage_bps,
            min_liquidity_usd=self.min_liquidity_usd,
            max_price_impact_bps=self.max_price_impact_bps,
            min_profit_bps=self.min_profit_bps,
            max_gas_lamports=self.max_priority_fee_lamports,
            max_position_percent=self.max_position_percent,
            daily_loss_limit_usd=self.daily_loss_limit_usd,
        )

    # ═══════════════════════════════════════════════════════════════════
    # ENVIRONMENT LOADING
    # ═══════════════════════════════════════════════════════════════════

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "BotConfig":
        """Build a config from environment variables (after loading .env)."""
        load_dotenv(env_file)

        network = _env("NETWORK", "devnet")
        if network not in NETWORKS:
            raise ConfigError(f"Unknown network: {network}")
        rpc_url = rpc_url_for(network)

        tokens_raw = _env("MONITORED_TOKENS", "")
        monitored = [t.strip() for t in tokens_raw.split(",") if t.strip()]

        return cls(
            network=network,
            rpc_url=rpc_url,
            wallet_private_key=_env("WALLET_PRIVATE_KEY", "").strip("'\""),
            telegram_bot_token=_env("TELEGRAM_BOT_TOKEN", ""),
            telegram_chat_id=_env("TELEGRAM_CHAT_ID", ""),
            min_profit_bps=_float("MIN_PROFIT_BPS", 50),
            max_slippage_bps=_float("MAX_SLIPPAGE_BPS", 100),
            max_trade_size_sol=_float("MAX_TRADE_SIZE_SOL", 1),
            min_liquidity_usd=_float("MIN_LIQUIDITY_USD", 10_000),
            max_price_impact_bps=_float("MAX_PRICE_IMPACT_BPS", 200),
            max_position_percent=_float("MAX_POSITION_PERCENT", 50),
            daily_loss_limit_usd=_float("DAILY_LOSS_LIMIT_USD", 50),
            opportunity_ttl_ms=_int("OPPORTUNITY_TTL_MS", 5000),
            graph_request_delay_ms=_int("GRAPH_REQUEST_DELAY_MS", 300),
            gas_estimate_sol=_float("GAS_ESTIMATE_SOL", 0.001),
            price_refresh_ms=_int("PRICE_REFRESH_MS", 5000),
            max_priority_fee_lamports=_int("MAX_PRIORITY_FEE_LAMPORTS", 100_000),
            use_jito_bundles=_bool("USE_JITO_BUNDLES", True),
            jito_tip_lamports=_int("JITO_TIP_LAMPORTS", 10_000),
            max_retries=_int("MAX_RETRIES", 3),
            confirm_timeout_s=_float("CONFIRM_TIMEOUT_S", 30),
            monitored_tokens=monitored or _default_monitored(),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_to_file=_bool("LOG_TO_FILE", True),
        )


def rpc_url_for(network: str) -> str:
    """RPC endpoint for network: RPC_URL_<NETWORK> if set, else the public one."""
    if network not in NETWORKS:
        raise ConfigError(f"Unknown network: {network}")
    return _env(_RPC_ENV_KEYS[network], DEFAULT_RPC_URLS[network])


def _env(key: str, default: str) -> str:
    return os.getenv(key) or default


def _float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if not raw:
        return float(default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")


def _int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


def _bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if not raw:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
