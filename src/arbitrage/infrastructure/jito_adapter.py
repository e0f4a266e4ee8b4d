"""
Jito Block Engine Relay
=======================
Protected submission via Jito bundles.

Features:
- Async HTTP (httpx) so submission never blocks the event loop
- Ordered endpoint failover: first endpoint that accepts wins
- Tip transfer instruction to a random Jito tip account
"""

import random
from typing import Dict, List, Optional, Sequence

import httpx
from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from arbitrage.config.settings import JITO_TIP_ACCOUNTS
from arbitrage.system.logging import Logger


class JitoRelay:
    """
    Block engine client.

    A bundle is accepted iff the JSON-RPC response carries a "result";
    anything else (HTTP error, missing field, bad JSON) moves on to the
    next endpoint. Falling back to direct submission is the caller's job.
    """

    REQUEST_TIMEOUT = 10.0

    def __init__(
        self,
        endpoints: Sequence[str],
        client: Optional[httpx.AsyncClient] = None,
        tip_accounts: Sequence[str] = JITO_TIP_ACCOUNTS,
    ):
        self.endpoints: List[str] = list(endpoints)
        self._client = client
        self._tip_accounts = list(tip_accounts)

        self._bundles_submitted = 0
        self._bundles_accepted = 0
        self._endpoint_failures = 0

    @property
    def is_available(self) -> bool:
        return bool(self.endpoints)

    def random_tip_account(self) -> Pubkey:
        return Pubkey.from_string(random.choice(self._tip_accounts))

    def build_tip_instruction(self, payer: Pubkey, lamports: int) -> Instruction:
        """System transfer of lamports from payer to a random tip account."""
        return transfer(
            TransferParams(
                from_pubkey=payer,
                to_pubkey=self.random_tip_account(),
                lamports=lamports,
            )
        )

    async def _post(self, client: httpx.AsyncClient, endpoint: str, payload: dict) -> Optional[str]:
        try:
            response = await client.post(endpoint, json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            Logger.warning(f"[JITO] Endpoint {endpoint} failed ({e}), trying next...")
            return None

        bundle_id = data.get("result") if isinstance(data, dict) else None
        if not bundle_id:
            error = data.get("error") if isinstance(data, dict) else data
            Logger.warning(f"[JITO] Endpoint {endpoint} rejected bundle: {error}")
            return None
        return bundle_id

    async def submit_bundle(self, serialized_tx_b64: str) -> Optional[str]:
        """
        Submit a single base64 transaction as a bundle.

        Returns:
            Bundle id from the first endpoint that accepted it, else None
        """
        if not self.endpoints:
            return None

        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "sendBundle",
            "params": [[serialized_tx_b64], {"encoding": "base64"}],
        }
        self._bundles_submitted += 1

        if self._client is not None:
            bundle_id = await self._try_endpoints(self._client, payload)
        else:
            async with httpx.AsyncClient(timeout=self.REQUEST_TIMEOUT) as client:
                bundle_id = await self._try_endpoints(client, payload)

        if bundle_id is None:
            Logger.warning("[JITO] All Jito endpoints failed")
        return bundle_id

    async def _try_endpoints(self, client: httpx.AsyncClient, payload: dict) -> Optional[str]:
        for endpoint in self.endpoints:
            bundle_id = await self._post(client, endpoint, payload)
            if bundle_id:
                self._bundles_accepted += 1
                Logger.info(f"[JITO] 🚀 Bundle submitted: {str(bundle_id)[:16]}...")
                return bundle_id
            self._endpoint_failures += 1
        return None

    def get_stats(self) -> Dict[str, int]:
        return {
            "bundles_submitted": self._bundles_submitted,
            "bundles_accepted": self._bundles_accepted,
            "endpoint_failures": self._endpoint_failures,
        }
