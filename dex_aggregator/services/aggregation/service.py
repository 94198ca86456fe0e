"""
Token Aggregation Service Implementation

Fans out to every listing provider concurrently, merges duplicate tokens,
enriches prices, filters, sorts and pages the result. Finished pages are
cached by their canonical query parameters.

A provider that fails contributes no tokens. Only when every provider
fails does the request fail, with AggregationError.
"""

import asyncio
import logging
from collections import Counter
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from dex_aggregator.core.config import settings
from dex_aggregator.schemas.token import (
    SortBy,
    SortOrder,
    Token,
    TokenPage,
    TokenQuery,
    TokenSearchResult,
    TokenStats,
)
from dex_aggregator.services.aggregation.merge import MergePolicy, merge_tokens
from dex_aggregator.services.aggregation.pagination import paginate
from dex_aggregator.services.aggregation.pipeline import filter_and_sort
from dex_aggregator.services.base import AggregationError, BaseService
from dex_aggregator.services.cache.redis_client import (
    TokenCache,
    get_token_cache,
    make_cache_key,
)
from dex_aggregator.services.data_ingestion.interface import PriceSource, TokenProvider
from dex_aggregator.services.data_ingestion.registry import (
    build_default_providers,
    build_price_source,
)

logger = logging.getLogger(__name__)

TOP_MOVERS = 5


class TokenAggregatorService(BaseService[TokenQuery, TokenPage]):
    """
    Token Aggregation Service.

    get_page:         TokenQuery -> TokenPage
    get_by_identity:  address    -> Token | None
    """

    def __init__(
        self,
        providers: Optional[Sequence[TokenProvider]] = None,
        price_source: Optional[PriceSource] = None,
        cache: Optional[TokenCache] = None,
        policy: Optional[MergePolicy] = None,
        cache_ttl: Optional[int] = None,
        default_page_limit: Optional[int] = None,
        max_page_limit: Optional[int] = None,
        sol_price_usd: Optional[float] = None,
    ):
        self._providers = list(providers) if providers is not None else build_default_providers()
        self._price_source = price_source
        self._cache = cache if cache is not None else get_token_cache()
        self._policy = policy or MergePolicy.from_settings()
        self._cache_ttl = cache_ttl if cache_ttl is not None else settings.cache_ttl_seconds
        self.default_page_limit = (
            default_page_limit if default_page_limit is not None else settings.default_page_limit
        )
        self.max_page_limit = max_page_limit if max_page_limit is not None else settings.max_page_limit
        self._sol_price_usd = sol_price_usd if sol_price_usd is not None else settings.sol_price_usd
        if self._sol_price_usd <= 0:
            raise ValueError(f"sol_price_usd must be positive, got {self._sol_price_usd}")

    @property
    def name(self) -> str:
        return "TokenAggregatorService"

    @property
    def providers(self) -> list[TokenProvider]:
        return list(self._providers)

    async def execute(self, input_data: TokenQuery) -> TokenPage:
        return await self.get_page(input_data)

    # ============ Pages ============

    async def get_page(self, query: TokenQuery) -> TokenPage:
        """Return one page of merged, filtered and sorted tokens."""
        cache_key = make_cache_key("tokens", query.cache_params())

        cached = await self._cache.get_json(cache_key)
        if cached is not None:
            try:
                return TokenPage.model_validate(cached)
            except ValidationError as e:
                logger.debug(f"Ignoring stale cache entry {cache_key}: {e}")

        tokens = await self._collect(query)
        merged = merge_tokens(tokens, self._policy)
        enriched = await self._enrich(merged)
        ordered = filter_and_sort(enriched, query)
        page = paginate(ordered, query, self.default_page_limit, self.max_page_limit)

        logger.info(
            f"Aggregated {len(tokens)} records into {len(merged)} tokens, "
            f"{page.total} after filters, returning {len(page.tokens)}"
        )

        await self._cache.set_json(cache_key, page.model_dump(mode="json"), self._cache_ttl)
        return page

    async def _collect(self, query: TokenQuery) -> list[Token]:
        """Fetch from every provider concurrently and keep whatever succeeds."""
        results = await self._gather(
            [provider.fetch_many(query) for provider in self._providers]
        )

        tokens: list[Token] = []
        failures: list[str] = []
        for provider, result in zip(self._providers, results):
            if isinstance(result, BaseException):
                logger.warning(f"{provider.name} failed: {result!r}")
                failures.append(provider.name)
            else:
                tokens.extend(result)

        if len(failures) == len(self._providers):
            logger.error(f"All token providers failed: {', '.join(failures) or 'none configured'}")
            raise AggregationError(
                self.name,
                "Failed to aggregate token data: no provider responded",
                details={"failed_sources": failures},
            )

        return tokens

    async def _gather(self, calls: list) -> list[Any]:
        """
        Await provider calls side by side, each bounded by its own timeout.

        Exceptions come back as results; nothing is cancelled early.
        """
        bounded = [
            asyncio.wait_for(call, timeout=provider.timeout)
            for provider, call in zip(self._providers, calls)
        ]
        return await asyncio.gather(*bounded, return_exceptions=True)

    async def _enrich(self, tokens: list[Token]) -> list[Token]:
        """Apply secondary USD prices. Failure leaves tokens unchanged."""
        if self._price_source is None or not tokens:
            return tokens

        try:
            prices = await asyncio.wait_for(
                self._price_source.fetch_prices([t.token_address for t in tokens]),
                timeout=self._price_source.timeout,
            )
        except Exception as e:
            logger.warning(f"{self._price_source.name} enrichment failed: {e!r}")
            return tokens

        tag = self._price_source.name
        enriched = []
        for token in tokens:
            price = prices.get(token.token_address)
            if price is not None and price > 0:
                token = token.model_copy(
                    update={
                        "price_usd": price,
                        "price_sol": price / self._sol_price_usd,
                        "sources": list(dict.fromkeys([*token.sources, tag])),
                    }
                )
            enriched.append(token)

        applied = sum(1 for t in enriched if tag in t.sources)
        logger.info(f"{tag} enriched {applied}/{len(tokens)} tokens with prices")
        return enriched

    # ============ Single token ============

    async def get_by_identity(self, address: str) -> Optional[Token]:
        """Merged record for one address, or None when no provider lists it."""
        cache_key = f"token:{address}"

        cached = await self._cache.get_json(cache_key)
        if cached is not None:
            try:
                return Token.model_validate(cached)
            except ValidationError as e:
                logger.debug(f"Ignoring stale cache entry {cache_key}: {e}")

        results = await self._gather(
            [provider.fetch_one(address) for provider in self._providers]
        )

        found: list[Token] = []
        failures: list[str] = []
        for provider, result in zip(self._providers, results):
            if isinstance(result, BaseException):
                logger.warning(f"{provider.name} lookup of {address} failed: {result!r}")
                failures.append(provider.name)
            elif result is not None:
                found.append(result)

        if len(failures) == len(self._providers):
            raise AggregationError(
                self.name,
                f"Failed to look up token {address}: no provider responded",
                details={"failed_sources": failures},
            )
        if not found:
            return None

        token = (await self._enrich(merge_tokens(found, self._policy)))[0]
        await self._cache.set_json(cache_key, token.model_dump(mode="json"), self._cache_ttl)
        return token

    # ============ Search & stats ============

    async def search(self, text: str, query: Optional[TokenQuery] = None) -> TokenSearchResult:
        """
        Tokens whose name, ticker or address contain `text`.

        Searches the largest page the query allows. Exact name or ticker
        matches rank first, then volume.
        """
        query = query or TokenQuery()
        limit = min(query.limit or self.default_page_limit, self.max_page_limit)
        wide = query.model_copy(update={"limit": self.max_page_limit, "cursor": None})
        page = await self.get_page(wide)

        needle = text.lower()

        def is_exact(token: Token) -> bool:
            return needle in (token.token_name.lower(), token.token_ticker.lower())

        matches = [
            t for t in page.tokens
            if needle in t.token_name.lower()
            or needle in t.token_ticker.lower()
            or needle in t.token_address.lower()
        ]
        matches.sort(key=lambda t: (not is_exact(t), -t.volume_sol))

        return TokenSearchResult(
            query=text,
            tokens=matches[:limit],
            total=len(matches),
            has_next=len(matches) > limit,
            exact_matches=sum(1 for t in matches if is_exact(t)),
        )

    async def get_stats(self) -> TokenStats:
        """Aggregate figures over the current top tokens by volume."""
        page = await self.get_page(
            TokenQuery(
                sort_by=SortBy.VOLUME,
                sort_order=SortOrder.DESC,
                limit=self.max_page_limit,
            )
        )
        tokens = page.tokens

        gainers = sorted(
            (t for t in tokens if t.price_1hr_change > 0),
            key=lambda t: t.price_1hr_change,
            reverse=True,
        )
        losers = sorted(
            (t for t in tokens if t.price_1hr_change < 0),
            key=lambda t: t.price_1hr_change,
        )

        return TokenStats(
            total_tokens=page.total,
            total_volume=sum(t.volume_sol for t in tokens),
            total_market_cap=sum(t.market_cap_sol for t in tokens),
            average_price=(sum(t.price_sol for t in tokens) / len(tokens)) if tokens else 0.0,
            top_gainers=gainers[:TOP_MOVERS],
            top_losers=losers[:TOP_MOVERS],
            protocol_distribution=dict(Counter(t.protocol for t in tokens)),
        )

    # ============ Health ============

    async def get_data_sources_status(self) -> dict:
        """Availability of every configured provider."""
        checks = await asyncio.gather(
            *(
                asyncio.wait_for(provider.health_check(), timeout=provider.timeout)
                for provider in self._providers
            ),
            return_exceptions=True,
        )

        status = {}
        for provider, ok in zip(self._providers, checks):
            available = ok is True
            status[provider.name] = {
                "available": available,
                "message": "Connected" if available else "Unavailable",
            }

        status["overall"] = {
            "sources_available": sum(1 for s in status.values() if s["available"]),
            "sources_configured": len(self._providers),
        }
        return status

    async def health_check(self) -> bool:
        """Healthy when at least one provider is reachable."""
        try:
            status = await self.get_data_sources_status()
            return status["overall"]["sources_available"] >= 1
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def close(self) -> None:
        for provider in self._providers:
            await provider.close()
        if self._price_source is not None:
            await self._price_source.close()


# Singleton instance
_service_instance: Optional[TokenAggregatorService] = None


def get_token_aggregator_service() -> TokenAggregatorService:
    """Get or create the token aggregator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = TokenAggregatorService(price_source=build_price_source())
    return _service_instance


async def close_token_aggregator_service() -> None:
    global _service_instance
    if _service_instance is not None:
        await _service_instance.close()
        _service_instance = None
