"""
Data Ingestion (provider adapters)

CONTRACT:
    fetch_many: TokenQuery -> list[Token]
    fetch_one:  address    -> Token | None

RESPONSIBILITIES:
    - Fetch token listings from DexScreener and GeckoTerminal
    - Fetch enrichment prices from Jupiter
    - Normalize every payload into Token
    - Retry transient failures, respect provider rate limits
    - Raise RateLimitError / ServiceUnavailableError / ExternalAPIError

The aggregator never sees provider payloads, only Token.
"""

from dex_aggregator.services.data_ingestion.interface import (
    TokenProvider,
    PriceSource,
)
from dex_aggregator.services.data_ingestion.dexscreener_adapter import DexScreenerProvider
from dex_aggregator.services.data_ingestion.geckoterminal_adapter import GeckoTerminalProvider
from dex_aggregator.services.data_ingestion.jupiter_adapter import JupiterPriceSource
from dex_aggregator.services.data_ingestion.registry import (
    build_default_providers,
    build_price_source,
)

__all__ = [
    "TokenProvider",
    "PriceSource",
    "DexScreenerProvider",
    "GeckoTerminalProvider",
    "JupiterPriceSource",
    "build_default_providers",
    "build_price_source",
]
