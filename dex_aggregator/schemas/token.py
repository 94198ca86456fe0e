"""
CONTRACT: Token Aggregation

Input: TokenQuery
Output: TokenPage

Every provider maps its payloads into Token. The aggregator merges tokens
that share an address, filters and sorts them, and pages the result with an
opaque cursor.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class Timeframe(str, Enum):
    H1 = "1h"
    H24 = "24h"
    D7 = "7d"


class SortBy(str, Enum):
    VOLUME = "volume"
    PRICE_CHANGE = "price_change"
    MARKET_CAP = "market_cap"
    LIQUIDITY = "liquidity"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


UNKNOWN_NAME = "Unknown"
UNKNOWN_TICKER = "UNKNOWN"
UNKNOWN_PROTOCOL = "Unknown"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Token (normalized per provider, and merged)
# =============================================================================


class Token(BaseModel):
    """
    One asset as reported by one or more providers.

    Providers emit one Token per asset with a single source tag; the merge
    engine folds tokens sharing `token_address` into one whose `sources` is
    the union of all contributors.
    """

    token_address: str = Field(..., min_length=1)
    token_name: str = UNKNOWN_NAME
    token_ticker: str = UNKNOWN_TICKER

    price_sol: float = Field(default=0.0, ge=0)
    price_usd: Optional[float] = Field(default=None, ge=0)
    market_cap_sol: float = Field(default=0.0, ge=0)
    market_cap_usd: Optional[float] = Field(default=None, ge=0)
    volume_sol: float = Field(default=0.0, ge=0)
    volume_usd: Optional[float] = Field(default=None, ge=0)
    liquidity_sol: float = Field(default=0.0, ge=0)
    liquidity_usd: Optional[float] = Field(default=None, ge=0)
    transaction_count: int = Field(default=0, ge=0)

    price_1hr_change: float = 0.0
    price_24hr_change: Optional[float] = None
    price_7d_change: Optional[float] = None

    protocol: str = UNKNOWN_PROTOCOL
    dex: Optional[str] = None
    pair_address: Optional[str] = None

    last_updated: datetime = Field(default_factory=utc_now)
    sources: list[str] = Field(..., min_length=1)

    @field_validator("sources")
    @classmethod
    def _dedupe_sources(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @field_validator("last_updated")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        # Naive timestamps compare badly against provider timestamps
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# =============================================================================
# INPUT: TokenQuery
# =============================================================================


class TokenQuery(BaseModel):
    """
    Query for a page of tokens.
    Sent by: HTTP routes
    Received by: TokenAggregatorService
    """

    timeframe: Timeframe = Field(
        default=Timeframe.H1,
        description="Window used for price-change sorting and filtering",
    )
    sort_by: SortBy = Field(default=SortBy.VOLUME)
    sort_order: SortOrder = Field(default=SortOrder.DESC)
    limit: Optional[int] = Field(
        default=None,
        ge=1,
        description="Requested page size, capped by max_page_limit",
    )
    cursor: Optional[str] = Field(
        default=None,
        description="Opaque continuation token from a previous page",
    )

    min_volume: Optional[float] = Field(default=None, ge=0)
    min_market_cap: Optional[float] = Field(default=None, ge=0)
    min_liquidity: Optional[float] = Field(default=None, ge=0)
    min_price_change: Optional[float] = None
    max_price_change: Optional[float] = None

    protocol: Optional[str] = None
    source: Optional[str] = None

    def cache_params(self) -> dict[str, Any]:
        """Parameters that identify this query's result, for cache keying."""
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# CURSOR
# =============================================================================


class CursorPayload(BaseModel):
    """Decoded continuation token. Self-contained, never stored server-side."""

    identity: str = Field(..., min_length=1)
    sort_value: float
    offset: int = Field(..., ge=0)


# =============================================================================
# OUTPUT
# =============================================================================


class TokenPage(BaseModel):
    """One page of the filtered and sorted token sequence."""

    tokens: list[Token]
    total: int = Field(..., ge=0, description="Size of the full filtered sequence")
    has_next: bool
    next_cursor: Optional[str] = None


class TokenSearchResult(BaseModel):
    """Tokens whose name, ticker or address contain the search text."""

    query: str
    tokens: list[Token]
    total: int = Field(..., ge=0)
    has_next: bool
    exact_matches: int = Field(..., ge=0)


class TokenStats(BaseModel):
    """Aggregate figures over the current top tokens."""

    total_tokens: int = Field(..., ge=0)
    total_volume: float = Field(..., ge=0)
    total_market_cap: float = Field(..., ge=0)
    average_price: float = Field(..., ge=0)
    top_gainers: list[Token]
    top_losers: list[Token]
    protocol_distribution: dict[str, int]

    class Config:
        json_schema_extra = {
            "example": {
                "total_tokens": 42,
                "total_volume": 125000.5,
                "total_market_cap": 9800000.0,
                "average_price": 0.0132,
                "top_gainers": [],
                "top_losers": [],
                "protocol_distribution": {"raydium": 30, "orca": 12},
            }
        }
