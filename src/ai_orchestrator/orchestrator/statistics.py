"""Per-provider attempt counters."""

import threading
from dataclasses import dataclass, field


@dataclass(frozen=True)
class StatisticsRecord:
    """Immutable view of one provider's counters."""

    provider: str
    total_requests: int
    successful_requests: int
    total_latency_ms: float

    @property
    def failed_requests(self) -> int:
        return self.total_requests - self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 100.0
        return self.successful_requests / self.total_requests * 100

    @property
    def average_latency(self) -> float:
        if self.successful_requests == 0:
            return 0.0
        return self.total_latency_ms / self.successful_requests


@dataclass
class _Counters:
    total_requests: int = 0
    successful_requests: int = 0
    total_latency_ms: float = 0.0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class ProviderStatistics:
    """Additive attempt statistics.

    Untested providers report a 100% success rate so they are not ranked
    below providers with a track record.
    """

    def __init__(self):
        self._counters: dict[str, _Counters] = {}
        self._create_lock = threading.Lock()

    def _for(self, provider: str) -> _Counters:
        counters = self._counters.get(provider)
        if counters is None:
            with self._create_lock:
                counters = self._counters.setdefault(provider, _Counters())
        return counters

    def record_attempt(self, provider: str, success: bool, latency_ms: float = 0.0) -> StatisticsRecord:
        counters = self._for(provider)
        with counters.lock:
            counters.total_requests += 1
            if success:
                counters.successful_requests += 1
                counters.total_latency_ms += latency_ms
            return self._record(provider, counters)

    def success_rate(self, provider: str) -> float:
        return self.get(provider).success_rate

    def average_latency(self, provider: str) -> float:
        return self.get(provider).average_latency

    def get(self, provider: str) -> StatisticsRecord:
        counters = self._counters.get(provider)
        if counters is None:
            return StatisticsRecord(provider, 0, 0, 0.0)
        with counters.lock:
            return self._record(provider, counters)

    def snapshot(self) -> list[StatisticsRecord]:
        """All records, busiest provider first."""
        records = [self.get(name) for name in list(self._counters)]
        return sorted(records, key=lambda r: (-r.total_requests, r.provider))

    def reset(self, provider: str | None = None) -> None:
        """Forget one provider's counters, or every provider's."""
        with self._create_lock:
            if provider is None:
                self._counters.clear()
            else:
                self._counters.pop(provider, None)

    @staticmethod
    def _record(provider: str, counters: _Counters) -> StatisticsRecord:
        return StatisticsRecord(
            provider=provider,
            total_requests=counters.total_requests,
            successful_requests=counters.successful_requests,
            total_latency_ms=counters.total_latency_ms,
        )
