"""Time-bounded response cache keyed by request content."""

import asyncio
import hashlib
import time
from collections.abc import Callable

import orjson
import structlog

from ai_orchestrator.models import GenerationOptions, GenerationResponse, Modality

logger = structlog.get_logger(__name__)


class ResponseCache:
    """In-memory TTL cache for generation responses.

    Reads and writes touch a single dict key and never take a lock, so
    requests for distinct keys do not wait on each other. An expired entry
    is reported as a miss whether or not the sweep has removed it yet.
    """

    def __init__(
        self,
        ttl: float = 3600,
        enabled: bool = True,
        sweep_interval: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.enabled = enabled
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, tuple[GenerationResponse, float]] = {}
        self._sweep_task: asyncio.Task | None = None

    @staticmethod
    def make_key(
        prompt: str,
        options: GenerationOptions | None = None,
        modality: Modality = Modality.TEXT,
    ) -> str:
        """Generate cache key from request."""
        key_data = {
            "modality": modality.value,
            "prompt": prompt,
            "options": (options or GenerationOptions()).model_dump(mode="json"),
        }
        key_bytes = orjson.dumps(key_data, option=orjson.OPT_SORT_KEYS)
        return hashlib.sha256(key_bytes).hexdigest()

    def get(self, key: str) -> GenerationResponse | None:
        """Get cached response if present and fresh."""
        if not self.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            return None

        response, inserted_at = entry
        if self._clock() - inserted_at >= self.ttl:
            self._evict(key, inserted_at)
            return None
        return response

    def put(self, key: str, response: GenerationResponse) -> None:
        """Cache a response."""
        if not self.enabled:
            return
        self._entries[key] = (response, self._clock())

    def clear_expired(self) -> int:
        """Clear expired cache entries."""
        now = self._clock()
        expired = [
            (key, inserted_at)
            for key, (_, inserted_at) in list(self._entries.items())
            if now - inserted_at >= self.ttl
        ]
        for key, inserted_at in expired:
            self._evict(key, inserted_at)
        if expired:
            logger.debug("Expired cache entries purged", count=len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def _evict(self, key: str, inserted_at: float) -> None:
        # Leave the entry alone if a concurrent put already replaced it
        current = self._entries.get(key)
        if current is not None and current[1] == inserted_at:
            self._entries.pop(key, None)

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._sweep_task is not None or not self.enabled:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            pass
        self._sweep_task = None

    async def _sweep_loop(self) -> None:
        """Periodically clean up expired cache entries."""
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.clear_expired()
            except Exception as e:
                logger.error("Cache cleanup error", error=str(e))

    def __len__(self) -> int:
        return len(self._entries)
