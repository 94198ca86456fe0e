"""Pytest configuration and fixtures for token aggregator tests."""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

# Keep tests off any real Redis before settings are imported
os.environ.setdefault("REDIS_URL", "redis://localhost:1")
os.environ.setdefault("ENABLE_PRICE_ENRICHMENT", "false")

from dex_aggregator.schemas.token import Token, TokenQuery
from dex_aggregator.services.aggregation.merge import MergePolicy
from dex_aggregator.services.cache.redis_client import TokenCache
from dex_aggregator.services.data_ingestion.interface import PriceSource, TokenProvider

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_token(address: str, source: str = "dexscreener", **overrides) -> Token:
    """Build a Token with sensible defaults for tests."""
    fields = {
        "token_address": address,
        "token_name": f"Token {address}",
        "token_ticker": address[:6].upper(),
        "price_sol": 1.0,
        "market_cap_sol": 1000.0,
        "volume_sol": 100.0,
        "liquidity_sol": 50.0,
        "transaction_count": 10,
        "price_1hr_change": 1.0,
        "protocol": "raydium",
        "last_updated": BASE_TIME,
        "sources": [source],
    }
    fields.update(overrides)
    return Token(**fields)


def ranked_tokens(count: int) -> list[Token]:
    """`count` distinct tokens with volume i*50, like a typical listing."""
    return [
        make_token(
            f"TOKEN{i:03d}",
            volume_sol=i * 50.0,
            market_cap_sol=i * 100.0,
            liquidity_sol=i * 20.0,
            price_1hr_change=i * 0.5,
            last_updated=BASE_TIME + timedelta(seconds=i),
        )
        for i in range(count)
    ]


class FakeProvider(TokenProvider):
    """In-memory provider; raises `error` instead of answering when set."""

    def __init__(
        self,
        name: str,
        tokens: Optional[list[Token]] = None,
        error: Optional[BaseException] = None,
        timeout: float = 1.0,
    ):
        self._name = name
        self.tokens = tokens or []
        self.error = error
        self._timeout = timeout
        self.fetch_many_calls = 0
        self.fetch_one_calls = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def timeout(self) -> float:
        return self._timeout

    async def fetch_many(self, query: TokenQuery) -> list[Token]:
        self.fetch_many_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.tokens)

    async def fetch_one(self, address: str) -> Optional[Token]:
        self.fetch_one_calls += 1
        if self.error is not None:
            raise self.error
        return next((t for t in self.tokens if t.token_address == address), None)

    async def health_check(self) -> bool:
        return self.error is None


class FakePriceSource(PriceSource):
    def __init__(self, prices: Optional[dict[str, float]] = None, error: Optional[BaseException] = None):
        self.prices = prices or {}
        self.error = error

    @property
    def name(self) -> str:
        return "jupiter"

    @property
    def timeout(self) -> float:
        return 1.0

    async def fetch_prices(self, addresses: list[str]) -> dict[str, float]:
        if self.error is not None:
            raise self.error
        return {a: p for a, p in self.prices.items() if a in addresses}


@pytest.fixture
def policy() -> MergePolicy:
    return MergePolicy(
        source_priority={"dexscreener": 3, "jupiter": 2, "geckoterminal": 1},
        generic_venues=frozenset({"Unknown", "GeckoTerminal"}),
    )


@pytest.fixture
def memory_cache() -> TokenCache:
    """Cache with no Redis behind it."""
    return TokenCache(redis_client=None, default_ttl=30)
