"""
Orca Quote Feed
===============
Orca Whirlpools (CLMM) quotes through the public Orca API.
"""

from typing import List, Optional

import httpx

from arbitrage.config.settings import TOKEN_DECIMALS
from arbitrage.system.logging import Logger
from .price_source import PriceSource, Quote


class OrcaFeed(PriceSource):
    """Orca Whirlpools quote feed. A 404 means no route and is not logged."""

    API_BASE = "https://api.mainnet.orca.so"
    REQUEST_TIMEOUT = 5.0

    def __init__(self, api_base: str = API_BASE, client: Optional[httpx.AsyncClient] = None):
        self.api_base = api_base.rstrip("/")
        self._client = client

    def get_name(self) -> str:
        return "orca"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.REQUEST_TIMEOUT)
        return self._client

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: float,
        decimals: int = 9,
        slippage_bps: int = 50,
    ) -> Optional[Quote]:
        try:
            response = await self._get_client().get(
                f"{self.api_base}/v1/quote",
                params={
                    "inputMint": input_mint,
                    "outputMint": output_mint,
                    "amount": str(int(amount * (10 ** decimals))),
                    "slippageBps": slippage_bps,
                    "swapMode": "ExactIn",
                },
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            Logger.debug(f"[FEED] Orca API error: {e}")
            return None

        if not isinstance(data, dict):
            return None

        out_decimals = TOKEN_DECIMALS.get(output_mint, 9)
        try:
            in_amount = int(data.get("inAmount") or data["amount"]) / (10 ** decimals)
            out_amount = int(data.get("outAmount") or data["estimatedAmountOut"]) / (10 ** out_decimals)
            impact = float(data.get("priceImpactPct") or data.get("priceImpact") or 0)
            fees = float(data.get("fees") or 0) / (10 ** out_decimals)
            liquidity = float(data.get("liquidity") or 0)
        except (KeyError, TypeError, ValueError):
            Logger.debug("[FEED] Orca response missing amounts")
            return None

        if in_amount <= 0:
            return None

        route: List[str] = [r["address"] for r in data.get("route") or [] if r.get("address")]
        return Quote.from_amounts(
            dex=self.get_name(),
            input_mint=input_mint,
            output_mint=output_mint,
            input_amount=in_amount,
            output_amount=out_amount,
            price_impact_pct=impact,
            fees=fees,
            liquidity_usd=liquidity,
            route=route or None,
        )

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
