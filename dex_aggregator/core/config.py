"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "DEX Token Aggregator"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Redis
    redis_url: str = "redis://localhost:6379"
    cache_ttl_seconds: int = 30

    # CORS (Frontend URL)
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Pagination
    default_page_limit: int = 20
    max_page_limit: int = 100

    # DexScreener
    dexscreener_base_url: str = "https://api.dexscreener.com"
    dexscreener_search_query: str = "solana"
    dexscreener_rate_limit: int = 300  # requests per minute
    dexscreener_timeout: float = 5.0

    # GeckoTerminal
    geckoterminal_base_url: str = "https://api.geckoterminal.com"
    geckoterminal_network: str = "solana"
    geckoterminal_page_size: int = 50
    geckoterminal_timeout: float = 5.0

    # Jupiter (price enrichment)
    jupiter_base_url: str = "https://price.jup.ag"
    jupiter_batch_size: int = 100
    jupiter_timeout: float = 5.0
    enable_price_enrichment: bool = True

    # Retries for provider calls
    provider_max_retries: int = 3
    provider_retry_min_wait: float = 1.0
    provider_retry_max_wait: float = 30.0
    # Longest the aggregator waits on any one provider, retries included
    provider_deadline_seconds: float = 15.0

    # Merge rules
    source_priority: dict[str, int] = {
        "dexscreener": 3,
        "jupiter": 2,
        "geckoterminal": 1,
    }
    generic_venues: list[str] = ["Unknown", "GeckoTerminal"]

    # Approximate SOL price in USD used to derive SOL-denominated figures
    sol_price_usd: float = 100.0

    # Optional override for the chain filter applied to provider results
    chain_id: Optional[str] = "solana"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
