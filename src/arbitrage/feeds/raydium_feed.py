"""
Raydium Quote Feed
==================
Raydium AMM quotes through the v3 trade API.

A quote is only requested when Raydium lists at least one standard pool
for the pair; the deepest pool's TVL is reported as the quote's
liquidity.
"""

import time
from typing import Dict, List, Optional, Tuple

import httpx

from arbitrage.config.settings import TOKEN_DECIMALS
from arbitrage.system.logging import Logger
from .price_source import PriceSource, Quote


class RaydiumFeed(PriceSource):
    """
    Raydium DEX quote feed.

    Pool listings change slowly and are cached per pair for
    pool_cache_ttl; swap quotes are never cached.
    """

    API_BASE = "https://api-v3.raydium.io"
    REQUEST_TIMEOUT = 5.0

    def __init__(
        self,
        api_base: str = API_BASE,
        pool_cache_ttl: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self._pool_cache_ttl = pool_cache_ttl
        self._pool_cache: Dict[Tuple[str, ...], Tuple[List[dict], float]] = {}
        self._client = client

    def get_name(self) -> str:
        return "raydium"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.REQUEST_TIMEOUT)
        return self._client

    async def get_pools_for_pair(self, mint_a: str, mint_b: str) -> List[dict]:
        """Standard pools for the pair, deepest first. Empty on any error."""
        cache_key = tuple(sorted((mint_a, mint_b)))
        cached = self._pool_cache.get(cache_key)
        if cached and time.time() - cached[1] < self._pool_cache_ttl:
            return cached[0]

        try:
            response = await self._get_client().get(
                f"{self.api_base}/pools/info/mint",
                params={
                    "mint1": mint_a,
                    "mint2": mint_b,
                    "poolType": "standard",
                    "poolSortField": "liquidity",
                    "sortType": "desc",
                    "pageSize": 10,
                    "page": 1,
                },
            )
            response.raise_for_status()
            pools = (response.json().get("data") or {}).get("data") or []
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            Logger.debug(f"[FEED] Raydium pool lookup failed: {e}")
            return []

        self._pool_cache[cache_key] = (pools, time.time())
        return pools

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: float,
        decimals: int = 9,
        slippage_bps: int = 50,
    ) -> Optional[Quote]:
        pools = await self.get_pools_for_pair(input_mint, output_mint)
        if not pools:
            return None

        try:
            response = await self._get_client().get(
                f"{self.api_base}/compute/swap-base-in",
                params={
                    "inputMint": input_mint,
                    "outputMint": output_mint,
                    "amount": str(int(amount * (10 ** decimals))),
                    "slippageBps": slippage_bps,
                    "txVersion": "V0",
                },
            )
            response.raise_for_status()
            data = response.json().get("data")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            Logger.debug(f"[FEED] Raydium quote unavailable for {input_mint[:8]}-{output_mint[:8]}: {e}")
            return None

        if not data:
            return None

        out_decimals = TOKEN_DECIMALS.get(output_mint, 9)
        try:
            in_amount = int(data["inputAmount"]) / (10 ** decimals)
            out_amount = int(data["outputAmount"]) / (10 ** out_decimals)
        except (KeyError, TypeError, ValueError):
            Logger.debug("[FEED] Raydium response missing amounts")
            return None

        if in_amount <= 0:
            return None

        top = pools[0]
        route = [step["poolId"] for step in data.get("routePlan") or [] if step.get("poolId")]
        return Quote.from_amounts(
            dex=self.get_name(),
            input_mint=input_mint,
            output_mint=output_mint,
            input_amount=in_amount,
            output_amount=out_amount,
            price_impact_pct=float(data.get("priceImpactPct", 0) or 0),
            fees=0.0,  # LP fee is already taken out of outputAmount
            liquidity_usd=float(top.get("tvl") or top.get("liquidity") or 0),
            route=route or None,
        )

    def clear_cache(self) -> None:
        self._pool_cache.clear()

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
