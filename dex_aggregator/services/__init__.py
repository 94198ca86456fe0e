"""
Token Aggregator Services

Each service has a defined contract (input/output schemas).
Services communicate only through these contracts.
"""

from dex_aggregator.services.base import BaseService, ServiceError

__all__ = ["BaseService", "ServiceError"]
