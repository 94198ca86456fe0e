"""
Token Aggregation Service

CONTRACT:
    Input:  TokenQuery
    Output: TokenPage

PIPELINE:
    providers (concurrent, partial failure tolerated)
      -> merge (one record per token address)
      -> price enrichment (optional, failure tolerated)
      -> filter / sort
      -> cursor pagination
      -> cache

Merge, filter/sort and pagination are pure functions over in-memory
tokens; only provider and cache calls suspend.
"""

from dex_aggregator.services.aggregation.merge import (
    MergePolicy,
    merge_pair,
    merge_tokens,
)
from dex_aggregator.services.aggregation.pipeline import (
    filter_and_sort,
    filter_tokens,
    sort_tokens,
    sort_value,
)
from dex_aggregator.services.aggregation.pagination import (
    decode_cursor,
    encode_cursor,
    paginate,
)
from dex_aggregator.services.aggregation.service import (
    TokenAggregatorService,
    get_token_aggregator_service,
    close_token_aggregator_service,
)

__all__ = [
    "MergePolicy",
    "merge_pair",
    "merge_tokens",
    "filter_and_sort",
    "filter_tokens",
    "sort_tokens",
    "sort_value",
    "decode_cursor",
    "encode_cursor",
    "paginate",
    "TokenAggregatorService",
    "get_token_aggregator_service",
    "close_token_aggregator_service",
]
