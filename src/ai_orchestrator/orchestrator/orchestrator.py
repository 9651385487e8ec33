"""Provider orchestrator with ordered fallback, rate windows and circuit breaking."""

import asyncio
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from ai_orchestrator.config import Settings, get_settings
from ai_orchestrator.exceptions import (
    AllProvidersFailed,
    NoProvidersAvailable,
    OrchestratorError,
    ProviderCallFailed,
    RateLimited,
)
from ai_orchestrator.models import (
    CircuitState,
    GenerationOptions,
    GenerationResponse,
    Modality,
    ProviderModels,
    ProviderStats,
)
from ai_orchestrator.providers.base import Adapter, MalformedResponseError, ProviderTimeoutError
from ai_orchestrator.providers.catalog import build_providers
from ai_orchestrator.providers.registry import Provider, ProviderRegistry
from ai_orchestrator.telemetry.logger import RequestContext
from ai_orchestrator.telemetry.metrics import OrchestratorMetrics

from .cache import ResponseCache
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .rate_limiter import FixedWindowRateLimiter
from .statistics import ProviderStatistics

logger = structlog.get_logger(__name__)


def candidate_order(provider: Provider) -> tuple:
    """Sort key: most reliable first, then fewest recent failures, then priority."""
    return (-provider.success_rate, provider.consecutive_failures, provider.priority, provider.name)


class ProviderOrchestrator:
    """Routes generation requests across interchangeable providers.

    Candidates are tried one at a time in reliability order and the first
    success wins. Providers are never raced in parallel, so a request spends
    at most one rate-limit slot per provider it actually calls.
    """

    def __init__(
        self,
        providers: Iterable[Provider] = (),
        settings: Settings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        metrics: OrchestratorMetrics | None = None,
    ):
        self.settings = settings or get_settings()
        self.timeout = self.settings.request_timeout
        self.metrics = metrics or OrchestratorMetrics()

        self.breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=self.settings.failure_threshold,
                recovery_timeout=self.settings.recovery_timeout_seconds,
            ),
            clock=clock,
            on_state_change=self._on_circuit_change,
        )
        self.registry = ProviderRegistry(self.breaker)
        self.rate_limiter = FixedWindowRateLimiter(clock=clock)
        self.cache = ResponseCache(
            ttl=self.settings.cache_ttl_seconds,
            enabled=self.settings.cache_enabled,
            sweep_interval=self.settings.cache_sweep_interval_seconds,
            clock=clock,
        )
        self.statistics = ProviderStatistics()
        self.active_model = "auto"
        self._initialized = False

        for provider in providers:
            self.register(provider)

    # Registry management

    def register(self, provider: Provider) -> Provider:
        """Add or replace a provider; its rate window starts fresh."""
        self.registry.register(provider)
        self.rate_limiter.configure(provider.name, provider.rate_limit)
        self.metrics.set_circuit_state(
            provider.name, CircuitState.CLOSED if provider.available else CircuitState.OPEN
        )
        return provider

    def unregister(self, name: str) -> Provider:
        """Remove a provider together with its rate window and statistics."""
        provider = self.registry.unregister(name)
        self.rate_limiter.remove(name)
        self.statistics.reset(name)
        self.metrics.forget_provider(name)
        logger.info("Provider unregistered", provider=name)
        return provider

    def reset_provider(self, name: str) -> None:
        """Operator reset: close the circuit and clear window and statistics."""
        provider = self.registry.get(name)
        self.breaker.reset(provider)
        self.rate_limiter.reset(name)
        self.statistics.reset(name)
        with provider.lock:
            provider.success_rate = 100.0
        logger.info("Provider reset", provider=name)

    # Lifecycle

    async def initialize(self) -> None:
        """Start the cache sweep and probe each provider for the startup log."""
        if self._initialized:
            return
        await self.cache.start()

        providers = self.registry.all()
        results = await asyncio.gather(
            *(p.adapter.health_check() for p in providers), return_exceptions=True
        )
        for provider, result in zip(providers, results):
            if result is True:
                logger.info("Provider is available", provider=provider.name)
            else:
                error = str(result) if isinstance(result, BaseException) else None
                logger.warning("Provider test failed", provider=provider.name, error=error)

        self._initialized = True
        logger.info("API orchestrator initialized", providers=len(providers))

    async def close(self) -> None:
        await self.cache.stop()
        results = await asyncio.gather(
            *(p.adapter.aclose() for p in self.registry.all()), return_exceptions=True
        )
        for provider, result in zip(self.registry.all(), results):
            if isinstance(result, Exception):
                logger.warning("Adapter close failed", provider=provider.name, error=str(result))
        self._initialized = False

    async def __aenter__(self) -> "ProviderOrchestrator":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Generation

    def candidates(self, modality: Modality) -> list[Provider]:
        """Available providers for `modality` in the order they will be tried."""
        return sorted(self.registry.providers_for(modality), key=candidate_order)

    async def generate(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
        modality: Modality | str = Modality.TEXT,
    ) -> GenerationResponse:
        """Generate content with the first provider that succeeds.

        Raises:
            NoProvidersAvailable: nothing registered and available serves `modality`
            AllProvidersFailed: every candidate failed or was rate limited
        """
        options = options or GenerationOptions()
        modality = Modality(modality)

        with RequestContext(modality=modality.value) as ctx:
            key = self.cache.make_key(prompt, options, modality)
            cached = self.cache.get(key)
            if cached is not None:
                self.metrics.record_cache(hit=True)
                logger.info("Cache hit", cache_key=key[:8], provider=cached.provider)
                return cached.model_copy(update={"cached": True, "request_id": ctx.request_id})
            if self.cache.enabled:
                self.metrics.record_cache(hit=False)

            candidates = self.candidates(modality)
            if not candidates:
                logger.warning("No providers available")
                raise NoProvidersAvailable(modality.value)

            last_error: OrchestratorError | None = None
            attempted: list[str] = []

            for provider in candidates:
                if not self.rate_limiter.try_reserve(provider.name):
                    logger.info("Provider skipped, rate limit reached", provider=provider.name)
                    self.metrics.record_rate_limited(provider.name)
                    last_error = RateLimited(provider.name)
                    continue

                attempted.append(provider.name)
                try:
                    response = await self._attempt(provider, prompt, options, modality, ctx.request_id)
                except ProviderCallFailed as e:
                    last_error = e
                    continue

                self.cache.put(key, response)
                return response

            self.metrics.record_exhausted(modality.value)
            logger.error(
                "All providers failed",
                attempted=attempted,
                last_error=last_error.message if last_error else None,
            )
            cause = last_error.cause if isinstance(last_error, ProviderCallFailed) else last_error
            raise AllProvidersFailed(last_error, attempted, modality.value) from cause

    async def generate_text(
        self, prompt: str, options: GenerationOptions | None = None
    ) -> GenerationResponse:
        return await self.generate(prompt, options, Modality.TEXT)

    async def generate_image(
        self, prompt: str, options: GenerationOptions | None = None
    ) -> GenerationResponse:
        return await self.generate(prompt, options, Modality.IMAGE)

    async def _attempt(
        self,
        provider: Provider,
        prompt: str,
        options: GenerationOptions,
        modality: Modality,
        request_id: str,
    ) -> GenerationResponse:
        start = time.perf_counter()
        try:
            content = await asyncio.wait_for(
                provider.adapter.invoke(prompt, options, modality), timeout=self.timeout
            )
            if not isinstance(content, (str, bytes)):
                raise MalformedResponseError(
                    f"{provider.name} returned {type(content).__name__} instead of text or bytes",
                    provider=provider.name,
                    error_code="malformed_response",
                )
        except asyncio.TimeoutError as e:
            error = ProviderTimeoutError(
                f"{provider.name} did not answer within {self.timeout}s",
                provider=provider.name,
                error_code="timeout",
            )
            self._record_failure(provider)
            logger.warning("Provider attempt timed out", provider=provider.name, timeout=self.timeout)
            raise ProviderCallFailed(provider.name, error) from e
        except Exception as e:
            self._record_failure(provider)
            logger.warning(
                "Provider attempt failed",
                provider=provider.name,
                error_type=type(e).__name__,
                error=str(e),
                consecutive_failures=provider.consecutive_failures,
            )
            raise ProviderCallFailed(provider.name, e) from e

        latency_ms = (time.perf_counter() - start) * 1000
        self._record_success(provider, latency_ms)
        logger.info("Provider succeeded", provider=provider.name, latency_ms=round(latency_ms, 2))

        return GenerationResponse(
            provider=provider.name,
            content=content,
            modality=modality,
            model=options.model,
            latency_ms=latency_ms,
            request_id=request_id,
        )

    def _record_success(self, provider: Provider, latency_ms: float) -> None:
        record = self.statistics.record_attempt(provider.name, True, latency_ms)
        self.breaker.record_success(provider)
        with provider.lock:
            provider.success_rate = record.success_rate
            provider.last_used = datetime.now(timezone.utc)
        self.metrics.record_attempt(provider.name, True, latency_ms)

    def _record_failure(self, provider: Provider) -> None:
        record = self.statistics.record_attempt(provider.name, False)
        self.breaker.record_failure(provider)
        with provider.lock:
            provider.success_rate = record.success_rate
        self.metrics.record_attempt(provider.name, False, 0.0)

    def _on_circuit_change(self, provider: Provider, state: CircuitState) -> None:
        self.metrics.set_circuit_state(provider.name, state)

    # Operational views

    def get_provider_stats(self) -> list[ProviderStats]:
        """Per-provider view, busiest provider first.

        Ordering comes from :meth:`ProviderStatistics.snapshot`; providers
        that have never been attempted follow by name.
        """
        providers = {p.name: p for p in self.registry.all()}
        records = [r for r in self.statistics.snapshot() if r.provider in providers]
        tracked = {r.provider for r in records}
        records.extend(self.statistics.get(name) for name in sorted(providers) if name not in tracked)

        stats = []
        for record in records:
            provider = providers[record.provider]
            stats.append(
                ProviderStats(
                    name=provider.name,
                    modality=provider.modality,
                    available=self.breaker.is_available(provider),
                    consecutive_failures=provider.consecutive_failures,
                    success_rate=record.success_rate,
                    requests_in_current_window=self.rate_limiter.requests_in_window(provider.name),
                    rate_limit=provider.rate_limit,
                    last_used=provider.last_used,
                    total_requests=record.total_requests,
                    average_latency=record.average_latency,
                )
            )
        return stats

    def list_available_models(self) -> list[ProviderModels]:
        return [
            ProviderModels(provider=p.name, models=list(p.models)) for p in self.registry.all()
        ]

    def switch_active_model(self, name: str) -> None:
        """Record the preferred model label; provider selection is unaffected."""
        self.active_model = name
        logger.info("Switched to model", model=name)

    def status(self) -> dict[str, Any]:
        return {
            "active_model": self.active_model,
            "cache": {"enabled": self.cache.enabled, "entries": len(self.cache), "ttl": self.cache.ttl},
            "providers": [s.model_dump(mode="json") for s in self.get_provider_stats()],
        }


def build_orchestrator(
    settings: Settings | None = None,
    adapters: Mapping[str, Adapter] | None = None,
    **kwargs: Any,
) -> ProviderOrchestrator:
    """Construct an orchestrator from settings and the built-in catalogue."""
    settings = settings or get_settings()
    return ProviderOrchestrator(build_providers(settings, adapters), settings, **kwargs)
