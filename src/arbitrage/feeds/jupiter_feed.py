"""
Jupiter Quote Feed
==================
Reference PriceSource adapter for the Jupiter aggregator quote API.

Jupiter aggregates liquidity from Raydium, Orca, Meteora, Phoenix and
more, so its quote is the "best execution" price. It does not report
pool liquidity, so liquidity_usd is always 0 (unknown).
"""

import time
from typing import Dict, Optional, Tuple

import httpx

from arbitrage.config.settings import SOL_MINT, TOKEN_DECIMALS, USDC_MINT
from arbitrage.system.logging import Logger
from .price_source import PriceSource, Quote


class JupiterFeed(PriceSource):
    """
    Jupiter quote API feed with a short-lived in-memory cache.

    The HTTP client can be injected for testing; otherwise one is
    created lazily and reused until close().
    """

    API_BASE = "https://public.jupiterapi.com"
    REQUEST_TIMEOUT = 5.0

    def __init__(
        self,
        api_base: str = API_BASE,
        cache_ttl: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self._cache_ttl = cache_ttl
        self._cache: Dict[Tuple[str, str, float], Tuple[Quote, float]] = {}
        self._client = client

    def get_name(self) -> str:
        return "jupiter"

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
        """
        Fetch an executable quote from the Jupiter API.

        Returns:
            Quote with route labels, or None on any API failure
        """
        cache_key = (input_mint, output_mint, amount)
        cached = self._cache.get(cache_key)
        if cached and time.time() - cached[1] < self._cache_ttl:
            return cached[0]

        out_decimals = TOKEN_DECIMALS.get(output_mint, 9)
        amount_atomic = int(amount * (10 ** decimals))

        try:
            response = await self._get_client().get(
                f"{self.api_base}/quote",
                params={
                    "inputMint": input_mint,
                    "outputMint": output_mint,
                    "amount": str(amount_atomic),
                    "slippageBps": slippage_bps,
                    "onlyDirectRoutes": "false",
                    "asLegacyTransaction": "false",
                },
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            Logger.debug(f"[FEED] Jupiter API error: {e}")
            return None

        quote = self._parse_quote(data, input_mint, output_mint, decimals, out_decimals)
        if quote is not None:
            self._cache[cache_key] = (quote, time.time())
        return quote

    def _parse_quote(
        self,
        data: dict,
        input_mint: str,
        output_mint: str,
        in_decimals: int,
        out_decimals: int,
    ) -> Optional[Quote]:
        try:
            in_amount = int(data["inAmount"]) / (10 ** in_decimals)
            out_amount = int(data["outAmount"]) / (10 ** out_decimals)
        except (KeyError, TypeError, ValueError):
            Logger.debug("[FEED] Jupiter response missing amounts")
            return None

        if in_amount <= 0:
            return None

        total_fees = 0.0
        labels = []
        for step in data.get("routePlan", []):
            info = step.get("swapInfo", {})
            fee_decimals = TOKEN_DECIMALS.get(info.get("feeMint", output_mint), out_decimals)
            total_fees += int(info.get("feeAmount", 0) or 0) / (10 ** fee_decimals)
            if info.get("label"):
                labels.append(info["label"])

        return Quote.from_amounts(
            dex=self.get_name(),
            input_mint=input_mint,
            output_mint=output_mint,
            input_amount=in_amount,
            output_amount=out_amount,
            price_impact_pct=float(data.get("priceImpactPct", 0) or 0),
            fees=total_fees,
            liquidity_usd=0.0,
            route=labels or None,
        )

    # =========================================================================
    # USD PRICING
    # =========================================================================

    async def get_price_in_usd(self, token_mint: str, amount: float = 1.0) -> Optional[float]:
        """USD value of amount of token_mint, quoted via USDC."""
        if token_mint == USDC_MINT:
            return amount
        decimals = TOKEN_DECIMALS.get(token_mint, 9)
        quote = await self.get_quote(token_mint, USDC_MINT, amount, decimals, 50)
        return quote.output_amount if quote else None

    async def get_sol_price(self) -> Optional[float]:
        return await self.get_price_in_usd(SOL_MINT, 1.0)

    def clear_cache(self) -> None:
        self._cache.clear()

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
