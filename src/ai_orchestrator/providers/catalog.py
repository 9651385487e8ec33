"""Built-in provider catalogue and its construction from settings."""

from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Type

import structlog

from ai_orchestrator.config import ProviderOverride, Settings
from ai_orchestrator.models import Modality, RateLimit

from .base import Adapter, BaseAdapter
from .cohere import CohereAdapter
from .deepai import DeepAIAdapter
from .google import GoogleAIAdapter
from .groq import GroqAdapter
from .huggingface import HuggingFaceAdapter
from .registry import Provider, ProviderSpec
from .stability import StabilityAdapter

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CatalogueEntry:
    spec: ProviderSpec
    adapter_cls: Type[BaseAdapter]
    credential: str


def _entry(name, modality, priority, max_requests, window_seconds, adapter_cls, credential=None):
    return CatalogueEntry(
        spec=ProviderSpec(
            name=name,
            modality=modality,
            priority=priority,
            rate_limit=RateLimit(max_requests=max_requests, window_seconds=window_seconds),
            models=tuple(getattr(adapter_cls, "models", ())),
        ),
        adapter_cls=adapter_cls,
        credential=credential or name,
    )


DEFAULT_CATALOGUE: List[CatalogueEntry] = [
    _entry("huggingface", Modality.TEXT, 1, 100, 3600, HuggingFaceAdapter),
    _entry("cohere", Modality.TEXT, 2, 1000, 60, CohereAdapter),
    _entry("googleai", Modality.TEXT, 3, 60, 60, GoogleAIAdapter, credential="google_ai"),
    _entry("groq", Modality.TEXT, 4, 30, 60, GroqAdapter),
    _entry("deepai", Modality.MULTIMODAL, 5, 50, 60, DeepAIAdapter),
    _entry("stability", Modality.IMAGE, 1, 25, 60, StabilityAdapter),
]


def apply_override(spec: ProviderSpec, override: Optional[ProviderOverride]) -> ProviderSpec:
    if override is None:
        return spec
    rate_limit = RateLimit(
        max_requests=override.max_requests or spec.rate_limit.max_requests,
        window_seconds=override.window_seconds or spec.rate_limit.window_seconds,
    )
    return replace(
        spec,
        priority=spec.priority if override.priority is None else override.priority,
        rate_limit=rate_limit,
        models=spec.models if override.models is None else tuple(override.models),
    )


def build_providers(
    settings: Settings,
    adapters: Optional[Mapping[str, Adapter]] = None,
    catalogue: Optional[List[CatalogueEntry]] = None,
) -> List[Provider]:
    """Create providers for every enabled catalogue entry.

    A catalogue entry is enabled when its credential is configured or when
    an adapter for it is injected through `adapters`.
    """
    adapters = dict(adapters or {})
    providers: List[Provider] = []

    for entry in catalogue or DEFAULT_CATALOGUE:
        spec = entry.spec
        if spec.name == "huggingface":
            spec = replace(spec, models=tuple(settings.huggingface_models))
        spec = apply_override(spec, settings.provider_overrides.get(spec.name))

        adapter = adapters.pop(spec.name, None)
        if adapter is None:
            api_key = settings.api_key_for(entry.credential)
            if not api_key:
                logger.debug("Provider disabled, no credential", provider=spec.name)
                continue
            kwargs: Dict[str, object] = {"timeout": settings.request_timeout}
            if entry.adapter_cls is HuggingFaceAdapter:
                kwargs["models"] = list(spec.models)
            adapter = entry.adapter_cls(api_key, **kwargs)

        providers.append(Provider(spec=spec, adapter=adapter))

    if adapters:
        logger.warning("Adapters supplied for unknown providers", providers=sorted(adapters))

    return providers
