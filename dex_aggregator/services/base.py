"""
Base Service Interface

All services inherit from this base class.
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for all services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Args:
            input_data: Validated input conforming to InputT schema

        Returns:
            Output conforming to OutputT schema

        Raises:
            ServiceError: If execution fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass


class ServiceError(Exception):
    """Base exception for service errors."""

    retryable = False

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class ExternalAPIError(ServiceError):
    """External API call failed."""

    def __init__(
        self,
        service_name: str,
        message: str,
        status_code: Optional[int] = None,
        details: dict = None,
    ):
        self.status_code = status_code
        super().__init__(service_name, message, details)


class RateLimitError(ExternalAPIError):
    """Rate limit exceeded."""

    retryable = True

    def __init__(self, service_name: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        message = f"Rate limit exceeded for {service_name}"
        if retry_after is not None:
            message += f". Retry after {retry_after:.0f}s"
        super().__init__(service_name, message, status_code=429)


class ServiceUnavailableError(ExternalAPIError):
    """Upstream service is down or timed out."""

    retryable = True


class AggregationError(ServiceError):
    """No provider produced any data for a request."""

    retryable = True
