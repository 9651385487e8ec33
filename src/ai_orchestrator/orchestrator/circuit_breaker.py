"""Circuit breaker implementation for fault tolerance."""

import time
from collections.abc import Callable

import structlog
from pydantic import BaseModel, Field

from ai_orchestrator.models import CircuitState
from ai_orchestrator.providers.registry import Provider

logger = structlog.get_logger(__name__)


class CircuitBreakerConfig(BaseModel):
    """Circuit breaker configuration."""

    failure_threshold: int = Field(default=5, ge=1)
    recovery_timeout: float = Field(default=300, ge=0)


class CircuitBreaker:
    """Consecutive-failure breaker shared by all providers.

    State lives on each :class:`Provider` (``available``,
    ``consecutive_failures``, ``tripped_at``) and is only written here.
    Recovery is time based: an open provider closes the first time
    :meth:`is_available` runs after the cool-down, with its failure count
    cleared. There is no half-open probing.
    """

    def __init__(
        self,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Callable[[Provider, CircuitState], None] | None = None,
    ):
        """Initialize circuit breaker."""
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._on_state_change = on_state_change

    def is_available(self, provider: Provider) -> bool:
        """Check availability, closing the circuit if the cool-down elapsed."""
        with provider.lock:
            if provider.available:
                return True
            if not self._should_attempt_reset(provider):
                return False
            self._close(provider)

        logger.info("Provider re-enabled after cool-down", provider=provider.name)
        self._notify(provider, CircuitState.CLOSED)
        return True

    def state(self, provider: Provider) -> CircuitState:
        return CircuitState.CLOSED if self.is_available(provider) else CircuitState.OPEN

    def record_success(self, provider: Provider) -> None:
        """Handle successful call."""
        with provider.lock:
            provider.consecutive_failures = 0

    def record_failure(self, provider: Provider) -> bool:
        """Handle failed call; returns True when this failure opened the circuit."""
        with provider.lock:
            provider.consecutive_failures += 1
            if not provider.available:
                return False
            if provider.consecutive_failures < self.config.failure_threshold:
                return False
            provider.available = False
            provider.tripped_at = self._clock()
            failures = provider.consecutive_failures

        logger.warning(
            "Provider disabled due to repeated errors",
            provider=provider.name,
            consecutive_failures=failures,
            recovery_timeout=self.config.recovery_timeout,
        )
        self._notify(provider, CircuitState.OPEN)
        return True

    def force_open(self, provider: Provider) -> None:
        with provider.lock:
            provider.available = False
            provider.tripped_at = self._clock()
        self._notify(provider, CircuitState.OPEN)

    def reset(self, provider: Provider) -> None:
        """Reset circuit breaker."""
        with provider.lock:
            self._close(provider)
        self._notify(provider, CircuitState.CLOSED)

    def seconds_until_retry(self, provider: Provider) -> float:
        with provider.lock:
            if provider.available or provider.tripped_at is None:
                return 0.0
            elapsed = self._clock() - provider.tripped_at
        return max(0.0, self.config.recovery_timeout - elapsed)

    def _should_attempt_reset(self, provider: Provider) -> bool:
        if provider.tripped_at is None:
            return True
        return self._clock() - provider.tripped_at >= self.config.recovery_timeout

    @staticmethod
    def _close(provider: Provider) -> None:
        provider.available = True
        provider.consecutive_failures = 0
        provider.tripped_at = None

    def _notify(self, provider: Provider, state: CircuitState) -> None:
        if self._on_state_change is not None:
            self._on_state_change(provider, state)
