"""
Token API Endpoints

Paginated, filterable token listings plus a few preset views.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from dex_aggregator.core.config import settings
from dex_aggregator.schemas.token import SortBy, SortOrder, Timeframe, TokenQuery
from dex_aggregator.services.aggregation import (
    TokenAggregatorService,
    get_token_aggregator_service,
)
from dex_aggregator.services.base import AggregationError

router = APIRouter()

AVAILABLE_FILTERS = {
    "timeframes": [t.value for t in Timeframe],
    "sort_by": [s.value for s in SortBy],
    "sort_order": [o.value for o in SortOrder],
}


def _unavailable(error: AggregationError) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={
            "message": error.message,
            "retryable": error.retryable,
            "failed_sources": error.details.get("failed_sources", []),
        },
    )


async def _fetch_page(service: TokenAggregatorService, query: TokenQuery):
    try:
        return await service.get_page(query)
    except AggregationError as e:
        raise _unavailable(e)


@router.get("")
async def list_tokens(
    timeframe: Timeframe = Timeframe.H1,
    sort_by: SortBy = SortBy.VOLUME,
    sort_order: SortOrder = SortOrder.DESC,
    limit: int = Query(default=settings.default_page_limit, ge=1, le=settings.max_page_limit),
    cursor: Optional[str] = Query(default=None, description="nextCursor from a previous page"),
    min_volume: Optional[float] = Query(default=None, ge=0),
    min_market_cap: Optional[float] = Query(default=None, ge=0),
    min_liquidity: Optional[float] = Query(default=None, ge=0),
    min_price_change: Optional[float] = None,
    max_price_change: Optional[float] = None,
    protocol: Optional[str] = None,
    source: Optional[str] = None,
    service: TokenAggregatorService = Depends(get_token_aggregator_service),
):
    """
    Get a page of tokens.

    Pass `cursor` from the previous response to get the next page.
    """
    query = TokenQuery(
        timeframe=timeframe,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        cursor=cursor,
        min_volume=min_volume,
        min_market_cap=min_market_cap,
        min_liquidity=min_liquidity,
        min_price_change=min_price_change,
        max_price_change=max_price_change,
        protocol=protocol,
        source=source,
    )
    page = await _fetch_page(service, query)

    return {
        "success": True,
        "data": page.model_dump(mode="json"),
        "pagination": {
            "limit": limit,
            "has_next": page.has_next,
            "next_cursor": page.next_cursor,
        },
        "filters": {
            "applied": query.model_dump(mode="json", exclude={"cursor"}),
            "available": AVAILABLE_FILTERS,
        },
    }


@router.get("/trending")
async def trending_tokens(
    service: TokenAggregatorService = Depends(get_token_aggregator_service),
):
    """Tokens with the strongest positive 1h price change."""
    page = await _fetch_page(
        service,
        TokenQuery(
            sort_by=SortBy.PRICE_CHANGE,
            sort_order=SortOrder.DESC,
            timeframe=Timeframe.H1,
            limit=20,
            min_volume=10,
        ),
    )
    data = page.model_dump(mode="json")
    data["tokens"] = [t for t in data["tokens"] if (t["price_1hr_change"] or 0) > 0]
    return {"success": True, "data": data}


@router.get("/volume-leaders")
async def volume_leaders(
    service: TokenAggregatorService = Depends(get_token_aggregator_service),
):
    """Tokens with the highest volume."""
    page = await _fetch_page(
        service,
        TokenQuery(sort_by=SortBy.VOLUME, sort_order=SortOrder.DESC, limit=20, min_volume=50),
    )
    return {"success": True, "data": page.model_dump(mode="json")}


@router.get("/search/{text}")
async def search_tokens(
    text: str = Path(..., min_length=2, max_length=50),
    timeframe: Timeframe = Timeframe.H1,
    sort_by: SortBy = SortBy.VOLUME,
    sort_order: SortOrder = SortOrder.DESC,
    limit: int = Query(default=settings.default_page_limit, ge=1, le=settings.max_page_limit),
    min_volume: Optional[float] = Query(default=None, ge=0),
    min_market_cap: Optional[float] = Query(default=None, ge=0),
    service: TokenAggregatorService = Depends(get_token_aggregator_service),
):
    """Search tokens by name, ticker or address."""
    query = TokenQuery(
        timeframe=timeframe,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        min_volume=min_volume,
        min_market_cap=min_market_cap,
    )
    try:
        result = await service.search(text, query)
    except AggregationError as e:
        raise _unavailable(e)

    return {"success": True, "data": result.model_dump(mode="json")}


@router.get("/stats/summary")
async def stats_summary(
    service: TokenAggregatorService = Depends(get_token_aggregator_service),
):
    """Aggregate volume, market cap and movers over the top tokens."""
    try:
        stats = await service.get_stats()
    except AggregationError as e:
        raise _unavailable(e)

    return {"success": True, "data": stats.model_dump(mode="json")}


@router.get("/{address}")
async def get_token(
    address: str = Path(..., min_length=32, max_length=44, description="Solana token address"),
    service: TokenAggregatorService = Depends(get_token_aggregator_service),
):
    """Get a single merged token by address."""
    try:
        token = await service.get_by_identity(address)
    except AggregationError as e:
        raise _unavailable(e)

    if token is None:
        raise HTTPException(status_code=404, detail=f"No token found with address: {address}")

    return {"success": True, "data": token.model_dump(mode="json")}
