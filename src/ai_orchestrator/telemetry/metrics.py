"""Prometheus metrics for provider orchestration."""

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from ai_orchestrator.models import CircuitState

_STATE_VALUES = {
    CircuitState.CLOSED: 0,
    CircuitState.OPEN: 1,
}


class OrchestratorMetrics:
    """Prometheus collectors bound to a private registry.

    Each orchestrator owns its registry so several instances (tests, or more
    than one orchestrator per process) never collide on metric names.
    """

    def __init__(
        self,
        namespace: str = "ai_orchestrator",
        registry: CollectorRegistry | None = None,
    ):
        self.namespace = namespace
        self.registry = registry or CollectorRegistry()

        self.provider_requests = Counter(
            f"{namespace}_provider_requests_total",
            "Provider attempts by outcome",
            ["provider", "outcome"],
            registry=self.registry,
        )
        self.provider_latency = Histogram(
            f"{namespace}_provider_latency_seconds",
            "Latency of successful provider calls",
            ["provider"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self.registry,
        )
        self.cache_hits = Counter(
            f"{namespace}_cache_hits_total",
            "Response cache hits",
            registry=self.registry,
        )
        self.cache_misses = Counter(
            f"{namespace}_cache_misses_total",
            "Response cache misses",
            registry=self.registry,
        )
        self.rate_limited = Counter(
            f"{namespace}_rate_limited_total",
            "Candidates skipped because their rate window was exhausted",
            ["provider"],
            registry=self.registry,
        )
        self.circuit_state = Gauge(
            f"{namespace}_circuit_breaker_state",
            "Circuit breaker state (0=closed, 1=open)",
            ["provider"],
            registry=self.registry,
        )
        self.exhausted = Counter(
            f"{namespace}_all_providers_failed_total",
            "Requests that exhausted every candidate",
            ["modality"],
            registry=self.registry,
        )

    def record_attempt(self, provider: str, success: bool, latency_ms: float) -> None:
        self.provider_requests.labels(
            provider=provider, outcome="success" if success else "failure"
        ).inc()
        if success:
            self.provider_latency.labels(provider=provider).observe(latency_ms / 1000)

    def record_cache(self, hit: bool) -> None:
        if hit:
            self.cache_hits.inc()
        else:
            self.cache_misses.inc()

    def record_rate_limited(self, provider: str) -> None:
        self.rate_limited.labels(provider=provider).inc()

    def set_circuit_state(self, provider: str, state: CircuitState) -> None:
        self.circuit_state.labels(provider=provider).set(_STATE_VALUES[state])

    def forget_provider(self, provider: str) -> None:
        self.circuit_state.remove(provider)

    def record_exhausted(self, modality: str) -> None:
        self.exhausted.labels(modality=modality).inc()

    def export(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)
