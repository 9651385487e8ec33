"""Orchestrator module for provider selection and resilience patterns."""

from ai_orchestrator.orchestrator.cache import ResponseCache
from ai_orchestrator.orchestrator.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from ai_orchestrator.orchestrator.orchestrator import (
    ProviderOrchestrator,
    build_orchestrator,
    candidate_order,
)
from ai_orchestrator.orchestrator.rate_limiter import FixedWindowRateLimiter
from ai_orchestrator.orchestrator.statistics import ProviderStatistics, StatisticsRecord

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "FixedWindowRateLimiter",
    "ProviderOrchestrator",
    "ProviderStatistics",
    "ResponseCache",
    "StatisticsRecord",
    "build_orchestrator",
    "candidate_order",
]
