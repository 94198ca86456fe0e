"""
DexScreener Data Adapter

Highest-priority price source. Lists pairs from the search endpoint and
resolves single tokens from the tokens endpoint, keeping the most liquid
pair when a token trades in several pools.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from dex_aggregator.core.config import settings
from dex_aggregator.schemas.token import (
    Token,
    TokenQuery,
    UNKNOWN_NAME,
    UNKNOWN_PROTOCOL,
    UNKNOWN_TICKER,
)
from dex_aggregator.services.data_ingestion.http_client import (
    HTTPProviderClient,
    parse_amount,
    parse_float,
    parse_int,
)
from dex_aggregator.services.data_ingestion.interface import TokenProvider
from dex_aggregator.services.data_ingestion.rate_limiter import RateLimiter, rate_limiter

logger = logging.getLogger(__name__)

SOURCE_NAME = "dexscreener"


def transform_pair(pair: dict[str, Any], sol_price_usd: float) -> Token:
    """Map a DexScreener pair onto Token. USD figures are converted to SOL."""
    base_token = pair.get("baseToken") or {}
    volume = pair.get("volume") or {}
    liquidity = pair.get("liquidity") or {}
    changes = pair.get("priceChange") or {}
    txns_24h = (pair.get("txns") or {}).get("h24") or {}

    price_usd = parse_amount(pair.get("priceUsd"))
    market_cap_usd = parse_amount(pair.get("marketCap"))
    volume_usd = parse_amount(volume.get("h24"))
    liquidity_usd = parse_amount(liquidity.get("usd"))

    return Token(
        token_address=base_token["address"],
        token_name=base_token.get("name") or UNKNOWN_NAME,
        token_ticker=base_token.get("symbol") or UNKNOWN_TICKER,
        price_sol=price_usd / sol_price_usd,
        price_usd=price_usd,
        market_cap_sol=market_cap_usd / sol_price_usd,
        market_cap_usd=market_cap_usd,
        volume_sol=volume_usd / sol_price_usd,
        volume_usd=volume_usd,
        liquidity_sol=liquidity_usd / sol_price_usd,
        liquidity_usd=liquidity_usd,
        transaction_count=parse_int(txns_24h.get("buys")) + parse_int(txns_24h.get("sells")),
        price_1hr_change=parse_float(changes.get("h1")),
        price_24hr_change=parse_float(changes.get("h24")) if "h24" in changes else None,
        price_7d_change=parse_float(changes.get("h7d")) if "h7d" in changes else None,
        protocol=pair.get("dexId") or UNKNOWN_PROTOCOL,
        dex=pair.get("dexId"),
        pair_address=pair.get("pairAddress"),
        last_updated=datetime.now(timezone.utc),
        sources=[SOURCE_NAME],
    )


class DexScreenerProvider(TokenProvider):
    """DexScreener adapter."""

    def __init__(
        self,
        client: Optional[HTTPProviderClient] = None,
        limiter: Optional[RateLimiter] = None,
        search_query: Optional[str] = None,
        chain_id: Optional[str] = None,
        sol_price_usd: Optional[float] = None,
    ):
        self._client = client or HTTPProviderClient(
            SOURCE_NAME,
            settings.dexscreener_base_url,
            timeout=settings.dexscreener_timeout,
        )
        self._limiter = limiter or rate_limiter
        self._search_query = search_query or settings.dexscreener_search_query
        self._chain_id = chain_id if chain_id is not None else settings.chain_id
        self._sol_price_usd = sol_price_usd if sol_price_usd is not None else settings.sol_price_usd
        if self._sol_price_usd <= 0:
            raise ValueError(f"sol_price_usd must be positive, got {self._sol_price_usd}")

    @property
    def name(self) -> str:
        return SOURCE_NAME

    @property
    def timeout(self) -> float:
        return settings.provider_deadline_seconds

    def _is_listed(self, pair: dict[str, Any]) -> bool:
        base_token = pair.get("baseToken") or {}
        if not base_token.get("address"):
            return False
        if self._chain_id and pair.get("chainId") != self._chain_id:
            return False
        return parse_float((pair.get("volume") or {}).get("h24")) > 0

    async def fetch_many(self, query: TokenQuery) -> list[Token]:
        await self._limiter.acquire(SOURCE_NAME, settings.dexscreener_rate_limit)
        data = await self._client.get_json("/latest/dex/search", {"q": self._search_query})

        pairs = (data or {}).get("pairs") or []
        if not pairs:
            logger.warning("DexScreener returned no pairs data")
            return []

        tokens = [
            transform_pair(pair, self._sol_price_usd)
            for pair in pairs
            if self._is_listed(pair)
        ]
        tokens = [t for t in tokens if t.volume_sol > 0]
        logger.info(f"DexScreener returned {len(tokens)} valid tokens")
        return tokens

    async def fetch_one(self, address: str) -> Optional[Token]:
        await self._limiter.acquire(SOURCE_NAME, settings.dexscreener_rate_limit)
        data = await self._client.get_json(f"/latest/dex/tokens/{address}")

        pairs = [p for p in (data or {}).get("pairs") or [] if (p.get("baseToken") or {}).get("address")]
        if not pairs:
            return None

        best_pair = max(pairs, key=lambda p: parse_float((p.get("liquidity") or {}).get("usd")))
        return transform_pair(best_pair, self._sol_price_usd)

    async def health_check(self) -> bool:
        try:
            await self._client.get_json("/latest/dex/search", {"q": self._search_query})
            return True
        except Exception as e:
            logger.debug(f"DexScreener health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.close()
