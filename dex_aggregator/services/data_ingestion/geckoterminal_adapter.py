"""
GeckoTerminal Data Adapter

Lowest-priority source. Does not report liquidity or transaction counts,
and labels every token with the generic "GeckoTerminal" venue.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from dex_aggregator.core.config import settings
from dex_aggregator.schemas.token import Token, TokenQuery, UNKNOWN_NAME, UNKNOWN_TICKER
from dex_aggregator.services.data_ingestion.http_client import (
    HTTPProviderClient,
    parse_amount,
    parse_float,
)
from dex_aggregator.services.data_ingestion.interface import TokenProvider

logger = logging.getLogger(__name__)

SOURCE_NAME = "geckoterminal"
VENUE_NAME = "GeckoTerminal"
MAX_PAGE_SIZE = 100


def _address_from(data: dict[str, Any], attributes: dict[str, Any]) -> str:
    # Resource ids look like "solana_<address>"
    address = attributes.get("address")
    if address:
        return address
    resource_id = data.get("id") or ""
    return resource_id.split("_", 1)[-1]


def transform_token_data(data: dict[str, Any], sol_price_usd: float) -> Optional[Token]:
    """Map a GeckoTerminal token resource onto Token, or None without an address."""
    attributes = data.get("attributes") or {}
    address = _address_from(data, attributes)
    if not address:
        return None

    changes = attributes.get("price_change_percentage") or {}
    price_usd = parse_amount(attributes.get("price_usd"))
    market_cap_usd = parse_amount(attributes.get("market_cap_usd") or attributes.get("fdv_usd"))
    volume_usd = parse_amount((attributes.get("volume_usd") or {}).get("h24"))

    return Token(
        token_address=address,
        token_name=attributes.get("name") or UNKNOWN_NAME,
        token_ticker=attributes.get("symbol") or UNKNOWN_TICKER,
        price_sol=price_usd / sol_price_usd,
        price_usd=price_usd,
        market_cap_sol=market_cap_usd / sol_price_usd,
        market_cap_usd=market_cap_usd,
        volume_sol=volume_usd / sol_price_usd,
        volume_usd=volume_usd,
        price_1hr_change=parse_float(changes.get("h1")),
        price_24hr_change=parse_float(changes.get("h24")) if "h24" in changes else None,
        price_7d_change=parse_float(changes.get("h7d")) if "h7d" in changes else None,
        protocol=VENUE_NAME,
        last_updated=datetime.now(timezone.utc),
        sources=[SOURCE_NAME],
    )


class GeckoTerminalProvider(TokenProvider):
    """GeckoTerminal adapter."""

    def __init__(
        self,
        client: Optional[HTTPProviderClient] = None,
        network: Optional[str] = None,
        page_size: Optional[int] = None,
        sol_price_usd: Optional[float] = None,
    ):
        self._client = client or HTTPProviderClient(
            SOURCE_NAME,
            settings.geckoterminal_base_url,
            timeout=settings.geckoterminal_timeout,
        )
        self._network = network or settings.geckoterminal_network
        self._page_size = min(page_size or settings.geckoterminal_page_size, MAX_PAGE_SIZE)
        self._sol_price_usd = sol_price_usd if sol_price_usd is not None else settings.sol_price_usd
        if self._sol_price_usd <= 0:
            raise ValueError(f"sol_price_usd must be positive, got {self._sol_price_usd}")

    @property
    def name(self) -> str:
        return SOURCE_NAME

    @property
    def timeout(self) -> float:
        return settings.provider_deadline_seconds

    async def fetch_many(self, query: TokenQuery) -> list[Token]:
        data = await self._client.get_json(
            f"/api/v2/networks/{self._network}/tokens",
            {"page": 1, "limit": self._page_size},
        )

        items = (data or {}).get("data") or []
        if not items:
            logger.warning("GeckoTerminal returned no data")
            return []

        tokens = []
        for item in items:
            token = transform_token_data(item, self._sol_price_usd)
            if token is not None and token.volume_sol > 0:
                tokens.append(token)

        logger.info(f"GeckoTerminal returned {len(tokens)} valid tokens")
        return tokens

    async def fetch_one(self, address: str) -> Optional[Token]:
        data = await self._client.get_json(f"/api/v2/networks/{self._network}/tokens/{address}")
        item = (data or {}).get("data")
        if not item:
            return None
        return transform_token_data(item, self._sol_price_usd)

    async def health_check(self) -> bool:
        try:
            await self._client.get_json(
                f"/api/v2/networks/{self._network}/tokens", {"page": 1, "limit": 1}
            )
            return True
        except Exception as e:
            logger.debug(f"GeckoTerminal health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.close()
