"""
Arbitrage Engine - Main Entry Point
====================================

Usage:
    arb-bot                           # Network and tokens from .env
    arb-bot --network mainnet-beta    # Override NETWORK
    arb-bot --graph                   # Also scan triangular cycles
    arb-bot --dry-run                 # Detect and alert only, never sign
    arb-bot --duration 300            # Run for 5 minutes

Configuration is read from the environment (and .env); see BotConfig.
"""

import argparse
import asyncio
import dataclasses
import sys
from typing import List, Optional

from solana.rpc.async_api import AsyncClient

from arbitrage.config.settings import NETWORKS, TOKENS, BotConfig, rpc_url_for
from arbitrage.core.errors import ConfigError
from arbitrage.core.executor import TradeExecutor
from arbitrage.core.orchestrator import ArbitrageOrchestrator
from arbitrage.core.risk_manager import ArbitrageRiskManager
from arbitrage.core.spread_detector import OpportunityDetector
from arbitrage.feeds.aggregator import PriceAggregator
from arbitrage.feeds.jupiter_feed import JupiterFeed
from arbitrage.feeds.orca_feed import OrcaFeed
from arbitrage.feeds.raydium_feed import RaydiumFeed
from arbitrage.infrastructure.jito_adapter import JitoRelay
from arbitrage.infrastructure.signer import KeypairSigner
from arbitrage.monitoring.telegram_alerts import ArbitrageAlerts
from arbitrage.system.logging import Logger, configure_logging


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="arb-bot",
        description="Solana DEX Arbitrage Engine - cross-venue and triangular",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  arb-bot --dry-run                      Watch for opportunities without a wallet
  arb-bot --tokens BONK,JUP --graph      Two tokens, pairwise and cyclic
  arb-bot --duration 3600                Run for 1 hour then exit
        """,
    )

    parser.add_argument(
        "--network",
        type=str,
        choices=NETWORKS,
        default=None,
        help="Solana cluster (default: NETWORK from env)",
    )

    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Duration to run in seconds (None = forever)",
    )

    parser.add_argument(
        "--tokens",
        type=str,
        default=None,
        help="Comma-separated symbols or mints to monitor (default: MONITORED_TOKENS)",
    )

    parser.add_argument(
        "--graph",
        action="store_true",
        help="Enable triangular cycle scanning (slow: sequential, rate limited)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Never load the wallet; detection and alerts only",
    )

    parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        help="Path to a .env file",
    )

    return parser.parse_args(argv)


def resolve_tokens(raw: str) -> List[str]:
    """Map symbols (BONK) to mints; anything unknown is taken as a mint."""
    return [TOKENS.get(t.strip().upper(), t.strip()) for t in raw.split(",") if t.strip()]


def load_config(args: argparse.Namespace) -> BotConfig:
    config = BotConfig.from_env(args.env_file)
    overrides = {}
    if args.network and args.network != config.network:
        overrides["network"] = args.network
        # RPC URL follows the network unless set explicitly for it
        overrides["rpc_url"] = rpc_url_for(args.network)
    if args.tokens:
        overrides["monitored_tokens"] = resolve_tokens(args.tokens)
    return dataclasses.replace(config, **overrides) if overrides else config


async def _log_alert(text: str) -> None:
    Logger.debug(f"[COMMS] {text}")


def build_orchestrator(
    config: BotConfig,
    client: AsyncClient,
    dry_run: bool = False,
    enable_graph: bool = False,
) -> ArbitrageOrchestrator:
    """Wire config → feeds → detector / risk / executor → orchestrator."""
    jupiter = JupiterFeed()
    aggregator = PriceAggregator([jupiter, RaydiumFeed(), OrcaFeed()], usd_feed=jupiter)
    detector = OpportunityDetector(aggregator, config)
    risk_manager = ArbitrageRiskManager(config.risk_limits())

    signer = None
    if not dry_run and config.wallet_private_key:
        signer = KeypairSigner.from_base58(config.wallet_private_key, client)
    elif not dry_run:
        Logger.warning("[WALLET] ⚠️ No wallet private key configured. Running in read-only mode.")

    relay = JitoRelay(config.jito_endpoints) if config.use_jito_bundles else None
    executor = TradeExecutor(client, signer, config, relay=relay)

    alerts = ArbitrageAlerts(_log_alert, alert_threshold_bps=config.min_profit_bps)

    return ArbitrageOrchestrator(
        config,
        aggregator,
        detector,
        risk_manager,
        executor,
        alerts=alerts,
        enable_graph=enable_graph,
    )


async def run(args: argparse.Namespace) -> int:
    try:
        config = load_config(args)
    except ConfigError as e:
        Logger.critical(f"[SYSTEM] Configuration error: {e}")
        return 2

    configure_logging(config.log_level, config.log_to_file)

    Logger.info("[SYSTEM] 🚀 Starting Solana Arbitrage Engine")
    Logger.info(f"[SYSTEM]    Network: {config.network}")
    Logger.info(f"[SYSTEM]    Tokens: {len(config.monitored_tokens)}")
    Logger.info(f"[SYSTEM]    Execution: {'DRY RUN' if args.dry_run else 'LIVE'}")
    Logger.info(f"[SYSTEM]    Cyclic scan: {'ON' if args.graph else 'OFF'}")

    async with AsyncClient(config.rpc_url) as client:
        try:
            orchestrator = build_orchestrator(config, client, args.dry_run, args.graph)
        except ConfigError as e:
            Logger.critical(f"[SYSTEM] Configuration error: {e}")
            return 2

        try:
            await orchestrator.run(duration=args.duration)
        finally:
            Logger.info("[SYSTEM] 👋 Arbitrage Engine stopped.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point."""
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        Logger.info("[SYSTEM] 🛑 Stopped by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
