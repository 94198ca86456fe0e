"""
Default provider wiring from settings.
"""

from typing import Optional

from dex_aggregator.core.config import settings
from dex_aggregator.services.data_ingestion.dexscreener_adapter import DexScreenerProvider
from dex_aggregator.services.data_ingestion.geckoterminal_adapter import GeckoTerminalProvider
from dex_aggregator.services.data_ingestion.interface import PriceSource, TokenProvider
from dex_aggregator.services.data_ingestion.jupiter_adapter import JupiterPriceSource


def build_default_providers() -> list[TokenProvider]:
    """Listing providers queried on every aggregation."""
    return [DexScreenerProvider(), GeckoTerminalProvider()]


def build_price_source() -> Optional[PriceSource]:
    """Price enrichment source, or None when enrichment is disabled."""
    if not settings.enable_price_enrichment:
        return None
    return JupiterPriceSource()
