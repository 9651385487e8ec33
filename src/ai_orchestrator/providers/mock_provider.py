"""Mock adapter for testing and offline demos."""

import asyncio
from collections.abc import Callable, Sequence
from typing import Any

from ai_orchestrator.models import GenerationOptions, Modality

from .base import Content, ProviderError


class MockAdapter:
    """Scriptable adapter that never touches the network.

    Failures are consumed first: the first ``fail_times`` calls raise
    ``error`` (or a generic :class:`ProviderError`), later calls succeed.
    ``fail_times=None`` fails forever.
    """

    def __init__(
        self,
        name: str = "mock",
        response: Content | Callable[[str, GenerationOptions, Modality], Content] | None = None,
        fail_times: int | None = 0,
        error: BaseException | None = None,
        delay: float = 0.0,
        healthy: bool = True,
    ):
        self.name = name
        self.response = response
        self.fail_times = fail_times
        self.error = error
        self.delay = delay
        self.healthy = healthy
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def invoke(
        self,
        prompt: str,
        options: GenerationOptions,
        modality: Modality = Modality.TEXT,
    ) -> Content:
        self.calls.append({"prompt": prompt, "options": options, "modality": modality})

        if self.delay:
            await asyncio.sleep(self.delay)  # Simulate API delay

        if self.fail_times is None or len(self.calls) <= self.fail_times:
            raise self.error or ProviderError(
                f"{self.name} scripted failure", provider=self.name, error_code="mock"
            )

        if callable(self.response):
            return self.response(prompt, options, modality)
        if self.response is not None:
            return self.response
        if modality is Modality.IMAGE:
            return f"mock-image:{prompt}".encode()
        return f"Mock response from {self.name} to: {prompt}"

    async def health_check(self) -> bool:
        return self.healthy

    async def aclose(self) -> None:
        self.closed = True

    def script(self, fail_times: int | None = 0, error: BaseException | None = None) -> None:
        """Reset the call log and install a new failure script."""
        self.calls.clear()
        self.fail_times = fail_times
        self.error = error


def mock_fleet(names: Sequence[str], **kwargs: Any) -> dict[str, MockAdapter]:
    """Build one mock adapter per provider name."""
    return {name: MockAdapter(name=name, **kwargs) for name in names}
