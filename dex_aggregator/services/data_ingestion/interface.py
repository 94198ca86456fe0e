"""
Data Provider Interface

Defines the contract every token data provider implements.
"""

from abc import ABC, abstractmethod
from typing import Optional

from dex_aggregator.schemas.token import Token, TokenQuery


class TokenProvider(ABC):
    """
    Token Provider Contract.

    fetch_many: TokenQuery -> list[Token]
        Tokens the provider currently lists, each tagged with `name` in
        `sources`.
    fetch_one: address -> Token | None
        None when the provider does not know the address.

    Both may raise RateLimitError, ServiceUnavailableError or
    ExternalAPIError. The aggregator treats any of them as the provider
    contributing no tokens.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Source tag written into Token.sources."""
        pass

    @property
    def timeout(self) -> float:
        """Upper bound, in seconds, the aggregator waits for one call."""
        return 30.0

    @abstractmethod
    async def fetch_many(self, query: TokenQuery) -> list[Token]:
        pass

    @abstractmethod
    async def fetch_one(self, address: str) -> Optional[Token]:
        pass

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class PriceSource(ABC):
    """Secondary USD price feed used to enrich merged tokens."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    def timeout(self) -> float:
        return 30.0

    @abstractmethod
    async def fetch_prices(self, addresses: list[str]) -> dict[str, float]:
        """USD price per address. Addresses without a quote are omitted."""
        pass

    async def close(self) -> None:
        pass
