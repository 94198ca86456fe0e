"""
Jupiter Price Adapter

Secondary USD price feed used to enrich merged tokens. Prices are fetched
in batches; a failing batch is skipped so the rest still enrich.
"""

import logging
from typing import Optional

from dex_aggregator.core.config import settings
from dex_aggregator.services.data_ingestion.http_client import HTTPProviderClient, parse_float
from dex_aggregator.services.data_ingestion.interface import PriceSource
from dex_aggregator.services.base import ServiceError

logger = logging.getLogger(__name__)

SOURCE_NAME = "jupiter"


class JupiterPriceSource(PriceSource):
    """Jupiter price API client."""

    def __init__(
        self,
        client: Optional[HTTPProviderClient] = None,
        batch_size: Optional[int] = None,
    ):
        self._client = client or HTTPProviderClient(
            SOURCE_NAME,
            settings.jupiter_base_url,
            timeout=settings.jupiter_timeout,
        )
        self._batch_size = batch_size or settings.jupiter_batch_size

    @property
    def name(self) -> str:
        return SOURCE_NAME

    @property
    def timeout(self) -> float:
        return settings.provider_deadline_seconds

    async def fetch_prices(self, addresses: list[str]) -> dict[str, float]:
        prices: dict[str, float] = {}
        if not addresses:
            return prices

        for start in range(0, len(addresses), self._batch_size):
            batch = addresses[start:start + self._batch_size]
            try:
                prices.update(await self._fetch_batch(batch))
            except ServiceError as e:
                logger.warning(f"Jupiter price batch of {len(batch)} failed: {e}")

        logger.info(f"Jupiter returned prices for {len(prices)}/{len(addresses)} tokens")
        return prices

    async def _fetch_batch(self, addresses: list[str]) -> dict[str, float]:
        data = await self._client.get_json("/v4/price", {"ids": ",".join(addresses)})

        prices = {}
        for address, entry in ((data or {}).get("data") or {}).items():
            if not isinstance(entry, dict):
                continue
            price = parse_float(entry.get("price"))
            if price > 0:
                prices[address] = price
        return prices

    async def close(self) -> None:
        await self._client.close()
