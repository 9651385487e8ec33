from .base import (
    Adapter,
    AuthenticationError,
    BaseAdapter,
    InsufficientCreditError,
    MalformedResponseError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    UnsupportedModalityError,
)
from .catalog import DEFAULT_CATALOGUE, build_providers
from .mock_provider import MockAdapter
from .registry import Provider, ProviderRegistry, ProviderSpec

__all__ = [
    "Adapter",
    "BaseAdapter",
    "ProviderError",
    "AuthenticationError",
    "InsufficientCreditError",
    "MalformedResponseError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "UnsupportedModalityError",
    "DEFAULT_CATALOGUE",
    "build_providers",
    "MockAdapter",
    "Provider",
    "ProviderRegistry",
    "ProviderSpec",
]
