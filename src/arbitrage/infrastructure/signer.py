"""
Wallet Signer
=============
Key custody behind a small capability interface.

The executor only needs a public key, a SOL balance and the ability to
sign a compiled message, so anything satisfying Signer (hardware
wallet, remote signer, test double) can stand in for KeypairSigner.
"""

from typing import Optional, Protocol

import base58
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from arbitrage.core.errors import ConfigError
from arbitrage.system.logging import Logger


LAMPORTS_PER_SOL = 1_000_000_000
LOW_BALANCE_SOL = 0.01


class Signer(Protocol):
    def pubkey(self) -> Pubkey:
        ...

    async def get_balance(self) -> float:
        ...

    def sign_transaction(self, message: MessageV0) -> VersionedTransaction:
        ...


class KeypairSigner:
    """
    Local ed25519 keypair signer.

    Balance lookups go through the shared AsyncClient; a failed lookup
    reads as 0 SOL rather than raising.
    """

    def __init__(self, keypair: Keypair, client: AsyncClient):
        self._keypair = keypair
        self.client = client

    @classmethod
    def from_base58(cls, secret: str, client: AsyncClient) -> "KeypairSigner":
        """Build from a base58-encoded 64-byte secret key."""
        try:
            keypair = Keypair.from_bytes(base58.b58decode(secret.strip()))
        except ValueError as e:
            raise ConfigError(f"Invalid WALLET_PRIVATE_KEY: {e}") from e

        Logger.info(f"[WALLET] 🔐 Wallet initialized: {keypair.pubkey()}")
        return cls(keypair, client)

    @classmethod
    def generate(cls, client: AsyncClient) -> "KeypairSigner":
        """Fresh throwaway keypair (devnet testing)."""
        return cls(Keypair(), client)

    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    def export_base58(self) -> str:
        return base58.b58encode(bytes(self._keypair)).decode()

    async def get_balance(self) -> float:
        try:
            response = await self.client.get_balance(self.pubkey(), commitment=Confirmed)
        except Exception as e:
            Logger.error(f"[WALLET] Failed to get balance: {e}")
            return 0.0
        return response.value / LAMPORTS_PER_SOL

    async def check_balance(self) -> float:
        """Log the current balance, warning when it is too low to trade."""
        balance = await self.get_balance()
        Logger.info(f"[WALLET] 💰 Wallet balance: {balance:.4f} SOL")
        if balance < LOW_BALANCE_SOL:
            Logger.warning("[WALLET] ⚠️ Low wallet balance! Consider adding more SOL.")
        return balance

    async def request_airdrop(self, amount_sol: float = 1.0) -> Optional[str]:
        """Devnet/testnet only. Returns the airdrop signature or None."""
        try:
            response = await self.client.request_airdrop(
                self.pubkey(), int(amount_sol * LAMPORTS_PER_SOL)
            )
        except Exception as e:
            Logger.error(f"[WALLET] Airdrop failed: {e}")
            return None
        signature = str(response.value)
        Logger.info(f"[WALLET] 🪂 Airdrop requested: {amount_sol} SOL ({signature[:16]}...)")
        return signature

    def sign_transaction(self, message: MessageV0) -> VersionedTransaction:
        return VersionedTransaction(message, [self._keypair])
