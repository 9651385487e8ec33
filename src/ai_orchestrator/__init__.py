"""Routes generation requests across free-tier AI providers with fallback."""

__version__ = "0.1.0"

from ai_orchestrator.config import Settings, get_settings
from ai_orchestrator.exceptions import (
    AllProvidersFailed,
    NoProvidersAvailable,
    OrchestratorError,
    ProviderCallFailed,
    ProviderUnavailable,
    RateLimited,
)
from ai_orchestrator.models import GenerationOptions, GenerationResponse, Modality
from ai_orchestrator.orchestrator import ProviderOrchestrator, build_orchestrator


def get_version():
    return __version__


__all__ = [
    "__version__",
    "get_version",
    "Settings",
    "get_settings",
    "GenerationOptions",
    "GenerationResponse",
    "Modality",
    "ProviderOrchestrator",
    "build_orchestrator",
    "OrchestratorError",
    "ProviderUnavailable",
    "RateLimited",
    "ProviderCallFailed",
    "NoProvidersAvailable",
    "AllProvidersFailed",
]
