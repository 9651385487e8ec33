"""Integration tests for provider fallback, circuit breaking and caching."""

import asyncio

import pytest

from ai_orchestrator.config import Settings
from ai_orchestrator.exceptions import (
    AllProvidersFailed,
    NoProvidersAvailable,
    ProviderCallFailed,
    ProviderUnavailable,
    RateLimited,
)
from ai_orchestrator.models import GenerationOptions, Modality
from ai_orchestrator.orchestrator import build_orchestrator
from ai_orchestrator.providers import (
    InsufficientCreditError,
    MalformedResponseError,
    MockAdapter,
    ProviderError,
    ProviderTimeoutError,
)
from ai_orchestrator.providers.mock_provider import mock_fleet


@pytest.mark.integration
class TestProviderFailover:
    """Test provider failover mechanisms."""

    @pytest.mark.asyncio
    async def test_first_candidate_wins(self, make_provider, make_orchestrator):
        primary = MockAdapter("primary", response="from primary")
        backup = MockAdapter("backup", response="from backup")
        orchestrator = make_orchestrator(
            make_provider("primary", priority=1, adapter=primary),
            make_provider("backup", priority=2, adapter=backup),
        )

        response = await orchestrator.generate("Hello")

        assert response.content == "from primary"
        assert response.provider == "primary"
        assert response.cached is False
        assert backup.call_count == 0

    @pytest.mark.asyncio
    async def test_automatic_failover_on_provider_error(self, make_provider, make_orchestrator):
        primary = MockAdapter(
            "primary", fail_times=None, error=InsufficientCreditError("no credit", provider="primary")
        )
        backup = MockAdapter("backup", response="from backup")
        orchestrator = make_orchestrator(
            make_provider("primary", priority=1, adapter=primary),
            make_provider("backup", priority=2, adapter=backup),
        )

        response = await orchestrator.generate("Hello")

        assert response.provider == "backup"
        assert primary.call_count == 1
        primary_provider = orchestrator.registry.get("primary")
        assert primary_provider.consecutive_failures == 1
        assert primary_provider.success_rate == 0.0

    @pytest.mark.asyncio
    async def test_all_providers_failed_carries_last_error(self, make_provider, make_orchestrator):
        first_error = ProviderError("first broke", provider="a")
        last_error = ProviderError("second broke", provider="b")
        orchestrator = make_orchestrator(
            make_provider("a", priority=1, adapter=MockAdapter("a", fail_times=None, error=first_error)),
            make_provider("b", priority=2, adapter=MockAdapter("b", fail_times=None, error=last_error)),
        )

        with pytest.raises(AllProvidersFailed) as exc_info:
            await orchestrator.generate("Hello")

        error = exc_info.value
        assert error.attempted == ["a", "b"]
        assert isinstance(error.last_error, ProviderCallFailed)
        assert error.last_error.cause is last_error
        assert error.__cause__ is last_error
        assert "second broke" in error.message

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self, make_provider, make_orchestrator):
        slow = MockAdapter("slow", delay=1.0)
        fast = MockAdapter("fast")
        orchestrator = make_orchestrator(
            make_provider("slow", priority=1, adapter=slow),
            make_provider("fast", priority=2, adapter=fast),
            request_timeout=0.05,
        )

        response = await orchestrator.generate("Hello")

        assert response.provider == "fast"
        assert orchestrator.registry.get("slow").consecutive_failures == 1
        assert orchestrator.statistics.get("slow").failed_requests == 1

    @pytest.mark.asyncio
    async def test_timeout_error_type(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("slow", adapter=MockAdapter("slow", delay=1.0)),
            request_timeout=0.05,
        )

        with pytest.raises(AllProvidersFailed) as exc_info:
            await orchestrator.generate("Hello")

        assert isinstance(exc_info.value.last_error.cause, ProviderTimeoutError)

    @pytest.mark.asyncio
    async def test_cancellation_is_not_recorded(self, make_provider, make_orchestrator):
        adapter = MockAdapter("slow", delay=10)
        orchestrator = make_orchestrator(make_provider("slow", adapter=adapter))

        task = asyncio.create_task(orchestrator.generate("Hello"))
        while adapter.call_count == 0:
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        provider = orchestrator.registry.get("slow")
        assert provider.consecutive_failures == 0
        assert orchestrator.statistics.get("slow").total_requests == 0


@pytest.mark.integration
class TestCandidateOrdering:
    def test_reliability_beats_priority(self, make_provider, make_orchestrator):
        a = make_provider("A", priority=1)
        b = make_provider("B", priority=2)
        a.consecutive_failures = 2
        a.success_rate = 40.0
        b.success_rate = 90.0
        orchestrator = make_orchestrator(a, b)

        assert [p.name for p in orchestrator.candidates(Modality.TEXT)] == ["B", "A"]

    def test_priority_breaks_ties(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("late", priority=3),
            make_provider("early", priority=1),
            make_provider("middle", priority=2),
        )

        assert [p.name for p in orchestrator.candidates(Modality.TEXT)] == ["early", "middle", "late"]

    def test_multimodal_serves_image(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("text-only", Modality.TEXT),
            make_provider("images", Modality.IMAGE, priority=2),
            make_provider("omni", Modality.MULTIMODAL, priority=5),
        )

        assert [p.name for p in orchestrator.candidates(Modality.IMAGE)] == ["images", "omni"]

    @pytest.mark.asyncio
    async def test_no_providers_for_modality(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(make_provider("text-only", Modality.TEXT))

        with pytest.raises(NoProvidersAvailable) as exc_info:
            await orchestrator.generate("beep", modality=Modality.AUDIO)

        assert exc_info.value.modality == "audio"


@pytest.mark.integration
class TestCircuitBreaking:
    @pytest.mark.asyncio
    async def test_provider_disabled_after_five_failures(self, make_provider, make_orchestrator, clock):
        adapter = MockAdapter("D", fail_times=None)
        orchestrator = make_orchestrator(make_provider("D", adapter=adapter))

        for _ in range(5):
            with pytest.raises(AllProvidersFailed):
                await orchestrator.generate("Hello")

        provider = orchestrator.registry.get("D")
        assert provider.available is False
        assert provider.consecutive_failures == 5

        with pytest.raises(NoProvidersAvailable):
            await orchestrator.generate("Hello")
        assert adapter.call_count == 5

    @pytest.mark.asyncio
    async def test_provider_retried_after_cool_down(self, make_provider, make_orchestrator, clock):
        adapter = MockAdapter("D", fail_times=5)
        orchestrator = make_orchestrator(make_provider("D", adapter=adapter))

        for _ in range(5):
            with pytest.raises(AllProvidersFailed):
                await orchestrator.generate("Hello")

        clock.advance(299)
        assert orchestrator.candidates(Modality.TEXT) == []

        clock.advance(1)
        response = await orchestrator.generate("Hello")

        provider = orchestrator.registry.get("D")
        assert response.provider == "D"
        assert provider.available is True
        assert provider.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_success_resets_consecutive_failures(self, make_provider, make_orchestrator):
        adapter = MockAdapter("D", fail_times=3)
        orchestrator = make_orchestrator(make_provider("D", adapter=adapter), cache_enabled=False)

        for _ in range(3):
            with pytest.raises(AllProvidersFailed):
                await orchestrator.generate("Hello")
        assert orchestrator.registry.get("D").consecutive_failures == 3

        await orchestrator.generate("Hello")

        provider = orchestrator.registry.get("D")
        assert provider.consecutive_failures == 0
        assert provider.available is True
        assert provider.success_rate == pytest.approx(25.0)

    @pytest.mark.asyncio
    async def test_reset_provider(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("D", adapter=MockAdapter("D", fail_times=5)), failure_threshold=1
        )
        with pytest.raises(AllProvidersFailed):
            await orchestrator.generate("Hello")
        assert orchestrator.registry.get("D").available is False

        orchestrator.reset_provider("D")

        provider = orchestrator.registry.get("D")
        assert provider.available is True
        assert provider.success_rate == 100.0
        assert orchestrator.statistics.get("D").total_requests == 0

    def test_reset_unknown_provider(self, make_orchestrator):
        with pytest.raises(ProviderUnavailable):
            make_orchestrator().reset_provider("missing")

    @pytest.mark.asyncio
    async def test_circuit_state_exported(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("D", adapter=MockAdapter("D", fail_times=None)), failure_threshold=1
        )
        with pytest.raises(AllProvidersFailed):
            await orchestrator.generate("Hello")

        exported = orchestrator.metrics.export().decode()
        assert 'ai_orchestrator_circuit_breaker_state{provider="D"} 1.0' in exported
        assert 'ai_orchestrator_all_providers_failed_total{modality="text"} 1.0' in exported


@pytest.mark.integration
class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_rate_limited_sole_provider_makes_no_call(self, make_provider, make_orchestrator):
        adapter = MockAdapter("C")
        orchestrator = make_orchestrator(
            make_provider("C", Modality.IMAGE, max_requests=1, adapter=adapter)
        )
        await orchestrator.generate_image("a cat")

        with pytest.raises(AllProvidersFailed) as exc_info:
            await orchestrator.generate_image("a dog")

        assert adapter.call_count == 1
        assert exc_info.value.attempted == []
        assert isinstance(exc_info.value.last_error, RateLimited)
        # A skipped provider is not penalised
        assert orchestrator.registry.get("C").consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_rate_limited_provider_falls_through(self, make_provider, make_orchestrator):
        first = MockAdapter("first")
        second = MockAdapter("second")
        orchestrator = make_orchestrator(
            make_provider("first", priority=1, max_requests=2, adapter=first),
            make_provider("second", priority=2, adapter=second),
            cache_enabled=False,
        )

        providers = [(await orchestrator.generate("Hello")).provider for _ in range(3)]

        assert providers == ["first", "first", "second"]
        assert orchestrator.rate_limiter.requests_in_window("first") == 2

    @pytest.mark.asyncio
    async def test_window_resets(self, make_provider, make_orchestrator, clock):
        adapter = MockAdapter("C")
        orchestrator = make_orchestrator(
            make_provider("C", max_requests=1, window_seconds=60, adapter=adapter),
            cache_enabled=False,
        )
        await orchestrator.generate("Hello")
        with pytest.raises(AllProvidersFailed):
            await orchestrator.generate("Hello")

        clock.advance(60)
        response = await orchestrator.generate("Hello")

        assert response.provider == "C"
        assert adapter.call_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_requests_never_exceed_budget(self, make_provider, make_orchestrator):
        budgeted = MockAdapter("budgeted", delay=0.01)
        overflow = MockAdapter("overflow", delay=0.01)
        orchestrator = make_orchestrator(
            make_provider("budgeted", priority=1, max_requests=5, adapter=budgeted),
            make_provider("overflow", priority=2, adapter=overflow),
        )

        responses = await asyncio.gather(
            *(orchestrator.generate(f"prompt {i}") for i in range(10))
        )

        assert budgeted.call_count == 5
        assert overflow.call_count == 5
        assert sorted(r.provider for r in responses).count("budgeted") == 5


@pytest.mark.integration
class TestResponseCaching:
    @pytest.mark.asyncio
    async def test_cache_hit_skips_provider(self, make_provider, make_orchestrator):
        adapter = MockAdapter("cohere", response="cached answer")
        orchestrator = make_orchestrator(make_provider("cohere", adapter=adapter))
        options = GenerationOptions(temperature=0.3)

        first = await orchestrator.generate("What is 2+2?", options)
        second = await orchestrator.generate("What is 2+2?", GenerationOptions(temperature=0.3))

        assert adapter.call_count == 1
        assert second.content == first.content
        assert second.cached is True
        assert first.cached is False
        assert orchestrator.rate_limiter.requests_in_window("cohere") == 1

    @pytest.mark.asyncio
    async def test_different_options_miss(self, make_provider, make_orchestrator):
        adapter = MockAdapter("cohere")
        orchestrator = make_orchestrator(make_provider("cohere", adapter=adapter))

        await orchestrator.generate("Hello", GenerationOptions(temperature=0.1))
        await orchestrator.generate("Hello", GenerationOptions(temperature=0.9))

        assert adapter.call_count == 2

    @pytest.mark.asyncio
    async def test_expired_entry_reinvokes_provider(self, make_provider, make_orchestrator, clock):
        adapter = MockAdapter("cohere")
        orchestrator = make_orchestrator(
            make_provider("cohere", adapter=adapter), cache_ttl_seconds=1.0
        )

        await orchestrator.generate("Hello")
        clock.advance(1.5)
        response = await orchestrator.generate("Hello")

        assert adapter.call_count == 2
        assert response.cached is False

    @pytest.mark.asyncio
    async def test_cache_disabled(self, make_provider, make_orchestrator):
        adapter = MockAdapter("cohere")
        orchestrator = make_orchestrator(make_provider("cohere", adapter=adapter), cache_enabled=False)

        await orchestrator.generate("Hello")
        await orchestrator.generate("Hello")

        assert adapter.call_count == 2
        assert len(orchestrator.cache) == 0

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, make_provider, make_orchestrator):
        adapter = MockAdapter("cohere", fail_times=1)
        orchestrator = make_orchestrator(make_provider("cohere", adapter=adapter))

        with pytest.raises(AllProvidersFailed):
            await orchestrator.generate("Hello")
        response = await orchestrator.generate("Hello")

        assert response.content == "Mock response from cohere to: Hello"
        assert adapter.call_count == 2


@pytest.mark.integration
class TestOperationalViews:
    @pytest.mark.asyncio
    async def test_provider_stats(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("busy", priority=1, max_requests=10, adapter=MockAdapter("busy", fail_times=1)),
            make_provider("idle", priority=2),
            cache_enabled=False,
        )
        await orchestrator.generate("one")
        await orchestrator.generate("two")

        stats = orchestrator.get_provider_stats()
        assert [s.name for s in stats] == ["idle", "busy"]
        idle, busy = stats


        assert busy.total_requests == 1
        assert busy.consecutive_failures == 1
        assert busy.success_rate == 0.0
        assert busy.requests_in_current_window == 1
        assert busy.rate_limit.max_requests == 10
        assert idle.name == "idle"
        assert idle.total_requests == 2
        assert idle.success_rate == 100.0
        assert idle.last_used is not None
        assert idle.average_latency >= 0.0
        assert idle.available is True

    def test_list_available_models(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("groq", models=["llama-3.1-8b-instant"]),
            make_provider("deepai", Modality.MULTIMODAL),
        )

        models = {m.provider: m.models for m in orchestrator.list_available_models()}

        assert models == {"groq": ["llama-3.1-8b-instant"], "deepai": []}

    @pytest.mark.asyncio
    async def test_switch_active_model_keeps_selection(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("a", priority=1), make_provider("b", priority=2)
        )

        orchestrator.switch_active_model("b")

        assert orchestrator.status()["active_model"] == "b"
        assert (await orchestrator.generate("Hello")).provider == "a"

    @pytest.mark.asyncio
    async def test_lifecycle_closes_adapters(self, make_provider, make_orchestrator):
        healthy = MockAdapter("healthy")
        broken = MockAdapter("broken", healthy=False)
        orchestrator = make_orchestrator(
            make_provider("healthy", adapter=healthy), make_provider("broken", adapter=broken)
        )

        async with orchestrator:
            assert orchestrator._initialized is True
            await orchestrator.generate("Hello")

        assert healthy.closed is True
        assert broken.closed is True
        assert orchestrator.cache._sweep_task is None

    @pytest.mark.asyncio
    async def test_build_orchestrator_from_catalogue(self):
        settings = Settings(_env_file=None)
        orchestrator = build_orchestrator(settings, adapters=mock_fleet(["cohere", "stability"]))

        text = await orchestrator.generate_text("Hello")
        image = await orchestrator.generate_image("a cat")

        assert text.provider == "cohere"
        assert image.provider == "stability"
        assert image.is_binary
        assert image.content == b"mock-image:a cat"


@pytest.mark.integration
class TestMalformedContent:
    @pytest.mark.asyncio
    async def test_non_text_content_falls_through(self, make_provider, make_orchestrator):
        broken = MockAdapter("broken", response=lambda *args: {"unexpected": 1})
        healthy = MockAdapter("healthy")
        orchestrator = make_orchestrator(
            make_provider("broken", priority=1, adapter=broken),
            make_provider("healthy", priority=2, adapter=healthy),
        )

        response = await orchestrator.generate("hi")

        assert response.provider == "healthy"
        assert healthy.call_count == 1
        record = orchestrator.statistics.get("broken")
        assert record.total_requests == 1
        assert record.successful_requests == 0
        assert orchestrator.registry.get("broken").consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_non_text_content_from_sole_provider(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("broken", adapter=MockAdapter("broken", response=lambda *args: 42))
        )

        with pytest.raises(AllProvidersFailed) as exc_info:
            await orchestrator.generate("hi")

        assert isinstance(exc_info.value.last_error.cause, MalformedResponseError)


@pytest.mark.integration
class TestProviderManagement:
    @pytest.mark.asyncio
    async def test_unregister_drops_window_and_statistics(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(make_provider("groq"), make_provider("cohere", priority=2))
        await orchestrator.generate("Hello")

        orchestrator.unregister("groq")

        assert "groq" not in orchestrator.registry
        assert "groq" not in orchestrator.rate_limiter
        assert orchestrator.statistics.snapshot() == []
        assert [s.name for s in orchestrator.get_provider_stats()] == ["cohere"]
        assert 'circuit_breaker_state{provider="groq"}' not in orchestrator.metrics.export().decode()
        assert (await orchestrator.generate("Hello again")).provider == "cohere"

    def test_unregister_unknown_provider(self, make_orchestrator):
        with pytest.raises(ProviderUnavailable):
            make_orchestrator().unregister("missing")

    @pytest.mark.asyncio
    async def test_stats_order_follows_snapshot(self, make_provider, make_orchestrator):
        orchestrator = make_orchestrator(
            make_provider("alpha", priority=1, max_requests=1),
            make_provider("beta", priority=2, max_requests=2),
            make_provider("gamma", priority=3),
            make_provider("delta", priority=4),
            cache_enabled=False,
        )
        for _ in range(4):
            await orchestrator.generate("Hello")
        orchestrator.reset_provider("gamma")

        names = [s.name for s in orchestrator.get_provider_stats()]

        assert names[:2] == ["beta", "alpha"]
        assert names[2:] == ["delta", "gamma"]
        assert names[:2] == [r.provider for r in orchestrator.statistics.snapshot()]
