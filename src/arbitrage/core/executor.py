"""
Trade Executor
==============
Turns an approved Opportunity into one signed versioned transaction and
drives it through submission and confirmation.

Flow:
    Opportunity → build (compute budget, tip, swaps) → sign
                → Jito bundle (ordered endpoints) ─┐
                → direct RPC send  ◄───────────────┘ fallback
                → confirm (bounded wait) → TradeResult

Both legs live in the same transaction, so a trade either fully lands
or fully fails. execute() never raises; every error ends up in
TradeResult.error.
"""

import asyncio
import base64
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from arbitrage.config.settings import BotConfig
from arbitrage.infrastructure.jito_adapter import JitoRelay
from arbitrage.infrastructure.signer import Signer
from arbitrage.system.logging import Logger, log_trade
from .errors import BuildError, ConfirmationError, SubmissionError
from .opportunity import Opportunity


# Venue-specific swap construction lives outside the engine
SwapInstructionProvider = Callable[[Opportunity, Pubkey], Awaitable[List[Instruction]]]


@dataclass
class TradeResult:
    success: bool
    opportunity: Opportunity
    buy_tx_hash: Optional[str] = None
    sell_tx_hash: Optional[str] = None
    actual_profit_usd: Optional[float] = None
    error: Optional[str] = None
    executed_at: float = field(default_factory=time.time)
    duration_ms: float = 0.0

    def __repr__(self):
        status = "✅" if self.success else "❌"
        tx = (self.buy_tx_hash or "")[:16]
        return f"{status} Trade {self.opportunity.route_label} {tx} ({self.duration_ms:.0f}ms)"


@dataclass
class SimulationResult:
    success: bool
    logs: List[str] = field(default_factory=list)
    units_consumed: Optional[int] = None
    error: Optional[str] = None


class TradeExecutor:
    """
    Atomic arbitrage executor.

    Holds build/submit state only for the duration of one execute()
    call; the only long-lived state is the aggregate counters.
    """

    COMPUTE_UNIT_LIMIT = 400_000  # enough for two swaps

    def __init__(
        self,
        client: AsyncClient,
        signer: Optional[Signer],
        config: BotConfig,
        relay: Optional[JitoRelay] = None,
        instruction_provider: Optional[SwapInstructionProvider] = None,
    ):
        self.client = client
        self.signer = signer
        self.config = config
        self.instruction_provider = instruction_provider

        if relay is None and config.use_jito_bundles and config.jito_endpoints:
            relay = JitoRelay(config.jito_endpoints)
        self.relay = relay

        # Execution stats
        self.executed_trades = 0
        self.successful_trades = 0
        self.failed_trades = 0
        self.bundle_submissions = 0
        self.direct_submissions = 0
        self.total_tips_lamports = 0

    @property
    def relay_active(self) -> bool:
        return (
            self.config.use_jito_bundles
            and self.relay is not None
            and self.relay.is_available
        )

    @property
    def compute_unit_price(self) -> int:
        """Micro-lamports per CU so that a full CU budget costs max_priority_fee_lamports."""
        return int(self.config.max_priority_fee_lamports / self.COMPUTE_UNIT_LIMIT * 1_000_000)

    # ═══════════════════════════════════════════════════════════════════
    # EXECUTION
    # ═══════════════════════════════════════════════════════════════════

    async def execute(self, opportunity: Opportunity) -> TradeResult:
        """
        Execute an opportunity as a single atomic transaction.

        Returns:
            TradeResult; success only once the signature is confirmed
        """
        started = time.perf_counter()
        result = TradeResult(success=False, opportunity=opportunity)

        try:
            if self.signer is None:
                raise BuildError("Wallet not initialized")

            Logger.info(
                f"[EXECUTOR] 🚀 Executing arbitrage: Buy on {opportunity.buy_dex}, "
                f"Sell on {opportunity.sell_dex}"
            )

            transaction = await self._build_transaction(opportunity, require_swaps=True)
            signature = await self._submit(transaction)
            await self._confirm(signature)

            tx_hash = str(signature)
            result.success = True
            result.buy_tx_hash = tx_hash
            result.sell_tx_hash = tx_hash  # same tx for atomic arb
            self.successful_trades += 1
            if self.relay_active:
                self.total_tips_lamports += self.config.jito_tip_lamports

            Logger.success(f"[EXECUTOR] ✅ Arbitrage successful! TX: {tx_hash}")

        except Exception as e:
            result.error = str(e) or e.__class__.__name__
            self.failed_trades += 1

            log_trade({
                "type": "ARB",
                "dex": opportunity.route_label,
                "token": opportunity.token_mint,
                "amount": opportunity.trade_size,
                "price": opportunity.buy_price,
                "success": False,
                "error": result.error,
            })

        self.executed_trades += 1
        result.duration_ms = (time.perf_counter() - started) * 1000
        return result

    async def simulate(self, opportunity: Opportunity) -> SimulationResult:
        """Dry-run the transaction through RPC. Swap instructions are optional here."""
        if self.signer is None:
            return SimulationResult(success=False, error="Wallet not initialized")

        try:
            transaction = await self._build_transaction(opportunity, require_swaps=False)
            response = await self.client.simulate_transaction(transaction)
        except Exception as e:
            return SimulationResult(success=False, error=str(e))

        value = response.value
        if value.err:
            Logger.warning(f"[EXECUTOR] 🛑 Simulation failed: {value.err}")
        else:
            Logger.info(f"[EXECUTOR] Simulation OK, units consumed: {value.units_consumed}")

        return SimulationResult(
            success=value.err is None,
            logs=list(value.logs or []),
            units_consumed=value.units_consumed,
            error=str(value.err) if value.err else None,
        )

    # ═══════════════════════════════════════════════════════════════════
    # BUILD
    # ═══════════════════════════════════════════════════════════════════

    async def _build_transaction(
        self,
        opportunity: Opportunity,
        require_swaps: bool = True,
    ) -> VersionedTransaction:
        payer = self.signer.pubkey()

        instructions: List[Instruction] = [
            set_compute_unit_limit(self.COMPUTE_UNIT_LIMIT),
            set_compute_unit_price(self.compute_unit_price),
        ]

        if self.relay_active:
            instructions.append(
                self.relay.build_tip_instruction(payer, self.config.jito_tip_lamports)
            )

        swaps: List[Instruction] = []
        if self.instruction_provider is not None:
            try:
                swaps = list(await self.instruction_provider(opportunity, payer))
            except Exception as e:
                raise BuildError(f"Swap instruction provider failed: {e}") from e

        if require_swaps and not swaps:
            raise BuildError("No swap instructions available for opportunity")
        instructions.extend(swaps)

        try:
            blockhash_resp = await self.client.get_latest_blockhash(commitment=Confirmed)
            message = MessageV0.try_compile(
                payer=payer,
                instructions=instructions,
                address_lookup_table_accounts=[],
                recent_blockhash=blockhash_resp.value.blockhash,
            )
            return self.signer.sign_transaction(message)
        except Exception as e:
            raise BuildError(f"Failed to build transaction: {e}") from e

    # ═══════════════════════════════════════════════════════════════════
    # SUBMIT & CONFIRM
    # ═══════════════════════════════════════════════════════════════════

    async def _submit(self, transaction: VersionedTransaction) -> Signature:
        if self.relay_active:
            return await self._submit_relay(transaction)

        if self.config.use_jito_bundles:
            Logger.debug(f"[EXECUTOR] No Jito endpoints for {self.config.network}, submitting directly")
        return await self._submit_direct(transaction)

    async def _submit_relay(self, transaction: VersionedTransaction) -> Signature:
        serialized = base64.b64encode(bytes(transaction)).decode("ascii")
        bundle_id = await self.relay.submit_bundle(serialized)

        if bundle_id:
            self.bundle_submissions += 1
            return transaction.signatures[0]

        Logger.warning("[EXECUTOR] All Jito endpoints failed, falling back to normal submission")
        return await self._submit_direct(transaction)

    async def _submit_direct(self, transaction: VersionedTransaction) -> Signature:
        try:
            response = await self.client.send_raw_transaction(
                bytes(transaction),
                opts=TxOpts(
                    skip_preflight=False,
                    preflight_commitment=Confirmed,
                    max_retries=self.config.max_retries,
                ),
            )
        except Exception as e:
            raise SubmissionError(f"Transaction submission failed: {e}") from e

        self.direct_submissions += 1
        return response.value

    async def _confirm(self, signature: Signature) -> None:
        timeout = self.config.confirm_timeout_s
        try:
            response = await asyncio.wait_for(
                self.client.confirm_transaction(signature, commitment=Confirmed),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise ConfirmationError(f"Transaction not confirmed within {timeout:.0f}s") from e
        except Exception as e:
            raise ConfirmationError(f"Transaction confirmation failed: {e}") from e

        statuses = response.value or []
        status = statuses[0] if statuses else None
        if status is None:
            raise ConfirmationError("Transaction not confirmed")
        if status.err:
            raise ConfirmationError(f"Transaction failed on-chain: {status.err}")

    def get_stats(self) -> dict:
        return {
            "executed_trades": self.executed_trades,
            "successful_trades": self.successful_trades,
            "failed_trades": self.failed_trades,
            "success_rate": (
                f"{self.successful_trades / self.executed_trades * 100:.1f}%"
                if self.executed_trades > 0
                else "N/A"
            ),
            "bundle_submissions": self.bundle_submissions,
            "direct_submissions": self.direct_submissions,
            "total_tips_sol": self.total_tips_lamports / 1_000_000_000,
        }
