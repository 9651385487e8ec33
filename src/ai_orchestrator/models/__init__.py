from .generation import GenerationOptions, GenerationResponse
from .provider import CircuitState, Modality, ProviderModels, ProviderStats, RateLimit

__all__ = [
    "CircuitState",
    "GenerationOptions",
    "GenerationResponse",
    "Modality",
    "ProviderModels",
    "ProviderStats",
    "RateLimit",
]
