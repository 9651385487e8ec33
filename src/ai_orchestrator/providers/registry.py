"""Provider registry: the catalogue of backends the orchestrator may call."""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

import structlog

from ai_orchestrator.exceptions import ProviderUnavailable
from ai_orchestrator.models import Modality, RateLimit

from .base import Adapter

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of a provider; immutable after registration."""

    name: str
    modality: Modality
    priority: int
    rate_limit: RateLimit
    models: Tuple[str, ...] = ()


@dataclass(eq=False)
class Provider:
    """A registered provider and its mutable health fields.

    ``available``, ``consecutive_failures`` and ``tripped_at`` belong to the
    circuit breaker; ``success_rate`` and ``last_used`` are written by the
    orchestrator after each attempt. All writes happen under ``lock``.
    """

    spec: ProviderSpec
    adapter: Adapter
    available: bool = True
    consecutive_failures: int = 0
    success_rate: float = 100.0
    tripped_at: Optional[float] = None
    last_used: Optional[datetime] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def modality(self) -> Modality:
        return self.spec.modality

    @property
    def priority(self) -> int:
        return self.spec.priority

    @property
    def rate_limit(self) -> RateLimit:
        return self.spec.rate_limit

    @property
    def models(self) -> Tuple[str, ...]:
        return self.spec.models


class AvailabilityCheck(Protocol):
    def is_available(self, provider: Provider) -> bool: ...


class ProviderRegistry:
    """Providers keyed by name.

    When an availability check (the circuit breaker) is supplied,
    :meth:`providers_for` asks it about each provider so that an elapsed
    cool-down is noticed at selection time.
    """

    def __init__(self, availability: Optional[AvailabilityCheck] = None):
        self._providers: Dict[str, Provider] = {}
        self._availability = availability

    def register(self, provider: Provider) -> Provider:
        replaced = provider.name in self._providers
        self._providers[provider.name] = provider
        logger.info(
            "Provider registered",
            provider=provider.name,
            modality=provider.modality.value,
            priority=provider.priority,
            max_requests=provider.rate_limit.max_requests,
            window_seconds=provider.rate_limit.window_seconds,
            replaced=replaced,
        )
        return provider

    def unregister(self, name: str) -> Provider:
        try:
            return self._providers.pop(name)
        except KeyError:
            raise ProviderUnavailable(name, f"Provider '{name}' is not registered") from None

    def get(self, name: str) -> Provider:
        try:
            return self._providers[name]
        except KeyError:
            raise ProviderUnavailable(name, f"Provider '{name}' is not registered") from None

    def all(self) -> List[Provider]:
        return list(self._providers.values())

    def providers_for(self, modality: Modality) -> List[Provider]:
        """Available providers that can serve `modality`, in registration order."""
        matching = [p for p in self._providers.values() if p.modality.serves(modality)]
        if self._availability is not None:
            return [p for p in matching if self._availability.is_available(p)]
        return [p for p in matching if p.available]

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    def __iter__(self) -> Iterator[Provider]:
        return iter(list(self._providers.values()))
