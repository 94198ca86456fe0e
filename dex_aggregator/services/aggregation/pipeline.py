"""
Filter/Sort Pipeline

Applies threshold filters and a deterministic sort to merged tokens.
"""

from typing import Callable, Iterable

from dex_aggregator.schemas.token import (
    SortBy,
    SortOrder,
    Timeframe,
    Token,
    TokenQuery,
)


def price_change_for(token: Token, timeframe: Timeframe) -> float:
    """Price change for the timeframe, falling back to the 1h figure when absent."""
    if timeframe == Timeframe.H24 and token.price_24hr_change is not None:
        return token.price_24hr_change
    if timeframe == Timeframe.D7 and token.price_7d_change is not None:
        return token.price_7d_change
    return token.price_1hr_change


def sort_value(token: Token, sort_by: SortBy, timeframe: Timeframe = Timeframe.H1) -> float:
    """Numeric projection of a token used for ordering and cursors."""
    if sort_by == SortBy.PRICE_CHANGE:
        return price_change_for(token, timeframe)
    if sort_by == SortBy.MARKET_CAP:
        return token.market_cap_sol
    if sort_by == SortBy.LIQUIDITY:
        return token.liquidity_sol
    return token.volume_sol


def _build_predicates(query: TokenQuery) -> list[Callable[[Token], bool]]:
    # None means "no constraint"; 0 is a real threshold
    predicates: list[Callable[[Token], bool]] = []

    if query.min_volume is not None:
        predicates.append(lambda t: t.volume_sol >= query.min_volume)
    if query.min_market_cap is not None:
        predicates.append(lambda t: t.market_cap_sol >= query.min_market_cap)
    if query.min_liquidity is not None:
        predicates.append(lambda t: t.liquidity_sol >= query.min_liquidity)
    if query.min_price_change is not None:
        predicates.append(
            lambda t: price_change_for(t, query.timeframe) >= query.min_price_change
        )
    if query.max_price_change is not None:
        predicates.append(
            lambda t: price_change_for(t, query.timeframe) <= query.max_price_change
        )
    if query.protocol:
        protocol = query.protocol.lower()
        predicates.append(lambda t: t.protocol.lower() == protocol)
    if query.source:
        source = query.source.lower()
        predicates.append(lambda t: source in (s.lower() for s in t.sources))

    return predicates


def filter_tokens(tokens: Iterable[Token], query: TokenQuery) -> list[Token]:
    """Keep tokens that satisfy every filter set on the query."""
    predicates = _build_predicates(query)
    return [t for t in tokens if all(check(t) for check in predicates)]


def sort_tokens(tokens: Iterable[Token], query: TokenQuery) -> list[Token]:
    """
    Order tokens by the query's sort key.

    Equal sort values are ordered by address so repeated calls page over
    the same sequence.
    """
    by_address = sorted(tokens, key=lambda t: t.token_address)
    # sorted() is stable, including with reverse=True
    return sorted(
        by_address,
        key=lambda t: sort_value(t, query.sort_by, query.timeframe),
        reverse=query.sort_order == SortOrder.DESC,
    )


def filter_and_sort(tokens: Iterable[Token], query: TokenQuery) -> list[Token]:
    return sort_tokens(filter_tokens(tokens, query), query)
