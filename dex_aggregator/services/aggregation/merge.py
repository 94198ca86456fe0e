"""
Merge Engine

Folds every Token that shares a `token_address` into a single record.

Each field group has its own reducer `(existing, incoming) -> value`:
    price            - highest source priority wins, larger value on a tie
    volume/mcap/liq  - maximum of both sides
    transactions     - sum of both sides
    price changes    - all taken from the fresher side
    name/ticker      - real values beat placeholders, longer beats shorter
    protocol         - specific venues beat generic ones
    sources          - union
    last_updated     - most recent

Price, name, ticker and protocol decisions do not depend on arrival order,
since provider fetches complete in any order.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from dex_aggregator.core.config import settings
from dex_aggregator.schemas.token import (
    Token,
    UNKNOWN_NAME,
    UNKNOWN_TICKER,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_LABELS = frozenset({UNKNOWN_NAME, UNKNOWN_TICKER})


@dataclass(frozen=True)
class MergePolicy:
    """Source ranking and venue rules used when two records disagree."""

    source_priority: dict[str, int] = field(default_factory=dict)
    generic_venues: frozenset[str] = frozenset()

    @classmethod
    def from_settings(cls) -> "MergePolicy":
        return cls(
            source_priority=dict(settings.source_priority),
            generic_venues=frozenset(settings.generic_venues),
        )

    def priority_of(self, sources: Iterable[str]) -> int:
        """Highest priority among a record's sources. Unknown tags rank 0."""
        return max((self.source_priority.get(s, 0) for s in sources), default=0)


# =============================================================================
# Field reducers
# =============================================================================


def resolve_price(
    existing: Token,
    incoming: Token,
    field_name: str,
    policy: MergePolicy,
) -> Optional[float]:
    """
    Pick a price by source priority.

    On a priority tie the larger value is kept. That is a heuristic: a larger
    quote is treated as more informative, not as more correct.
    """
    existing_priority = policy.priority_of(existing.sources)
    incoming_priority = policy.priority_of(incoming.sources)

    existing_value = getattr(existing, field_name)
    incoming_value = getattr(incoming, field_name)

    if existing_priority == incoming_priority:
        return max_metric(existing_value, incoming_value)

    return incoming_value if incoming_priority > existing_priority else existing_value


def max_metric(a: Optional[float], b: Optional[float]) -> Optional[float]:
    """Larger of two figures; a missing figure counts as zero."""
    if a is None and b is None:
        return None
    return max(a or 0, b or 0)


def sum_counts(a: Optional[int], b: Optional[int]) -> int:
    # Providers sample disjoint trades; overlap is accepted as double counting
    return (a or 0) + (b or 0)


def fresher_changes(existing: Token, incoming: Token) -> dict[str, Optional[float]]:
    """
    Price changes from whichever side was observed last.

    All three windows come from the same side, even when the fresher side
    lacks the 24h or 7d figure.
    """
    fresher = existing if existing.last_updated > incoming.last_updated else incoming
    return {
        "price_1hr_change": fresher.price_1hr_change,
        "price_24hr_change": fresher.price_24hr_change,
        "price_7d_change": fresher.price_7d_change,
    }


def best_label(a: str, b: str, placeholders: frozenset[str] = PLACEHOLDER_LABELS) -> str:
    """Prefer a real label over a placeholder, then the longer label."""

    def rank(label: str) -> tuple[bool, int]:
        return (label not in placeholders, len(label))

    # max() keeps the first of equal ranks, so sorting first settles ties
    return max(sorted((a, b)), key=rank)


def best_venue(a: str, b: str, generic_venues: frozenset[str]) -> str:
    """Prefer a specific venue over a generic aggregator label."""
    return max(sorted((a, b)), key=lambda venue: venue not in generic_venues)


def union_sources(a: list[str], b: list[str]) -> list[str]:
    return list(dict.fromkeys([*a, *b]))


def latest(a: datetime, b: datetime) -> datetime:
    return max(a, b)


# =============================================================================
# Record-level fold
# =============================================================================


def merge_pair(
    existing: Token,
    incoming: Token,
    policy: Optional[MergePolicy] = None,
) -> Token:
    """Merge two records describing the same token."""
    policy = policy or MergePolicy.from_settings()

    merged = {
        "token_address": existing.token_address,
        "price_sol": resolve_price(existing, incoming, "price_sol", policy),
        "price_usd": resolve_price(existing, incoming, "price_usd", policy),
        "volume_sol": max_metric(existing.volume_sol, incoming.volume_sol),
        "volume_usd": max_metric(existing.volume_usd, incoming.volume_usd),
        "market_cap_sol": max_metric(existing.market_cap_sol, incoming.market_cap_sol),
        "market_cap_usd": max_metric(existing.market_cap_usd, incoming.market_cap_usd),
        "liquidity_sol": max_metric(existing.liquidity_sol, incoming.liquidity_sol),
        "liquidity_usd": max_metric(existing.liquidity_usd, incoming.liquidity_usd),
        "transaction_count": sum_counts(
            existing.transaction_count, incoming.transaction_count
        ),
        **fresher_changes(existing, incoming),
        "token_name": best_label(existing.token_name, incoming.token_name),
        "token_ticker": best_label(existing.token_ticker, incoming.token_ticker),
        "protocol": best_venue(existing.protocol, incoming.protocol, policy.generic_venues),
        "dex": existing.dex or incoming.dex,
        "pair_address": existing.pair_address or incoming.pair_address,
        "sources": union_sources(existing.sources, incoming.sources),
        "last_updated": latest(existing.last_updated, incoming.last_updated),
    }
    return Token(**merged)


def merge_tokens(
    tokens: Iterable[Token],
    policy: Optional[MergePolicy] = None,
) -> list[Token]:
    """
    Collapse tokens to one record per address.

    Output order follows first appearance; callers sort downstream.
    """
    policy = policy or MergePolicy.from_settings()
    by_address: dict[str, Token] = {}
    duplicates = 0

    for token in tokens:
        existing = by_address.get(token.token_address)
        if existing is None:
            by_address[token.token_address] = token
        else:
            by_address[token.token_address] = merge_pair(existing, token, policy)
            duplicates += 1

    if duplicates:
        logger.debug(
            f"Merged {duplicates} duplicate records into {len(by_address)} tokens"
        )
    return list(by_address.values())
