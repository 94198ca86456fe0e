"""
Token Aggregator Schema Contracts

These are the authoritative interfaces between providers, the aggregation
engine and the HTTP layer.
"""

from dex_aggregator.schemas.token import (
    Timeframe,
    SortBy,
    SortOrder,
    Token,
    TokenQuery,
    CursorPayload,
    TokenPage,
    TokenSearchResult,
    TokenStats,
)

__all__ = [
    "Timeframe",
    "SortBy",
    "SortOrder",
    "Token",
    "TokenQuery",
    "CursorPayload",
    "TokenPage",
    "TokenSearchResult",
    "TokenStats",
]
