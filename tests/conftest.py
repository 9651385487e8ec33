"""Pytest configuration and fixtures."""

import pytest

from ai_orchestrator.config import Settings
from ai_orchestrator.models import Modality, RateLimit
from ai_orchestrator.orchestrator import ProviderOrchestrator
from ai_orchestrator.providers import MockAdapter, Provider, ProviderSpec

PROVIDER_ENV_VARS = [
    "HUGGINGFACE_API_KEY",
    "COHERE_API_KEY",
    "GOOGLE_AI_API_KEY",
    "GROQ_API_KEY",
    "DEEPAI_API_KEY",
    "STABILITY_API_KEY",
    "PROVIDER_OVERRIDES",
    "HUGGINGFACE_MODELS",
    "CACHE_ENABLED",
    "CACHE_TTL_SECONDS",
    "REQUEST_TIMEOUT",
]


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_provider_env(monkeypatch):
    """Keep real credentials in the developer's shell out of the tests."""
    for var in PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def make_provider():
    def _make(
        name,
        modality=Modality.TEXT,
        priority=1,
        max_requests=100,
        window_seconds=60,
        adapter=None,
        models=(),
    ):
        spec = ProviderSpec(
            name=name,
            modality=modality,
            priority=priority,
            rate_limit=RateLimit(max_requests=max_requests, window_seconds=window_seconds),
            models=tuple(models),
        )
        return Provider(spec=spec, adapter=adapter or MockAdapter(name=name))

    return _make


@pytest.fixture
def make_orchestrator(clock):
    def _make(*providers, **overrides):
        settings = Settings(_env_file=None, **overrides)
        return ProviderOrchestrator(providers, settings, clock=clock)

    return _make
