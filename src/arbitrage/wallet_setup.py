"""
Wallet Setup
============
Generates a fresh wallet for devnet/testnet runs and funds it from the
faucet.

Usage:
    arb-setup-wallet                    # devnet, 2 SOL airdrop
    arb-setup-wallet --network testnet --airdrop 1
    arb-setup-wallet --airdrop 0        # key only, no faucet

The secret key is printed to the console only; it never reaches the log
files. Put it in .env as WALLET_PRIVATE_KEY.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solders.signature import Signature

from arbitrage.config.settings import rpc_url_for
from arbitrage.infrastructure.signer import KeypairSigner
from arbitrage.system.logging import Logger


FAUCET_NETWORKS = ("devnet", "testnet")
FAUCET_URL = "https://faucet.solana.com/"
AIRDROP_CONFIRM_TIMEOUT_S = 30.0

_console = Console()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="arb-setup-wallet",
        description="Generate a throwaway wallet and request a faucet airdrop",
    )
    parser.add_argument("--network", choices=FAUCET_NETWORKS, default="devnet")
    parser.add_argument(
        "--airdrop",
        type=float,
        default=2.0,
        help="SOL to request from the faucet (0 to skip)",
    )
    return parser.parse_args(argv)


def show_keys(signer: KeypairSigner) -> None:
    _console.print(
        Panel(
            f"[bold]Public key:[/] {signer.pubkey()}\n"
            f"[bold]Private key:[/] {signer.export_base58()}\n\n"
            "[dim]Save the private key as WALLET_PRIVATE_KEY in .env[/]",
            title="🔐 New Wallet",
            border_style="magenta",
        )
    )


async def fund_wallet(
    signer: KeypairSigner,
    amount_sol: float,
    confirm_timeout_s: float = AIRDROP_CONFIRM_TIMEOUT_S,
) -> bool:
    """Request and confirm an airdrop. Returns True once the SOL has landed."""
    signature = await signer.request_airdrop(amount_sol)
    if signature is None:
        return False

    try:
        await asyncio.wait_for(
            signer.client.confirm_transaction(
                Signature.from_string(signature), commitment=Confirmed
            ),
            timeout=confirm_timeout_s,
        )
    except Exception as e:
        Logger.warning(f"[WALLET] Airdrop not confirmed: {e}")
        return False

    balance = await signer.check_balance()
    return balance > 0


async def setup_wallet(client: AsyncClient, amount_sol: float = 2.0) -> KeypairSigner:
    """Generate a keypair, print it, and fund it if amount_sol > 0."""
    signer = KeypairSigner.generate(client)
    show_keys(signer)

    if amount_sol > 0:
        Logger.info(f"[WALLET] 💧 Requesting {amount_sol} SOL airdrop...")
        if not await fund_wallet(signer, amount_sol):
            Logger.warning(
                f"[WALLET] Faucet may be busy. Retry with `solana airdrop {amount_sol:g} "
                f"{signer.pubkey()}` or visit {FAUCET_URL}"
            )
    return signer


async def run(args: argparse.Namespace) -> int:
    async with AsyncClient(rpc_url_for(args.network)) as client:
        await setup_wallet(client, args.airdrop)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
