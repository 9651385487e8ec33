"""Custom exceptions for the provider orchestrator."""

from typing import Any, Dict, List, Optional


class OrchestratorError(Exception):
    """Base exception for the provider orchestrator."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.details = details or {}


class ProviderUnavailable(OrchestratorError):
    """Provider is unknown, disabled, or held open by the circuit breaker."""

    def __init__(self, provider: str, message: Optional[str] = None, **kwargs):
        super().__init__(
            message or f"Provider '{provider}' is unavailable",
            error_code="PROVIDER_UNAVAILABLE",
            **kwargs,
        )
        self.provider = provider
        self.details["provider"] = provider


class RateLimited(OrchestratorError):
    """Rate window reservation was denied for a provider."""

    def __init__(self, provider: str, **kwargs):
        super().__init__(
            f"Rate limit reached for provider '{provider}'",
            error_code="RATE_LIMITED",
            **kwargs,
        )
        self.provider = provider
        self.details["provider"] = provider


class ProviderCallFailed(OrchestratorError):
    """A single provider attempt failed."""

    def __init__(self, provider: str, cause: BaseException, **kwargs):
        super().__init__(
            f"Provider '{provider}' failed: {type(cause).__name__}: {cause}",
            error_code="PROVIDER_CALL_FAILED",
            **kwargs,
        )
        self.provider = provider
        self.cause = cause
        self.details["provider"] = provider
        self.details["cause"] = type(cause).__name__


class NoProvidersAvailable(OrchestratorError):
    """No available provider serves the requested modality."""

    def __init__(self, modality: str, **kwargs):
        super().__init__(
            f"No providers available for modality '{modality}'",
            error_code="NO_PROVIDERS_AVAILABLE",
            **kwargs,
        )
        self.modality = modality
        self.details["modality"] = modality


class AllProvidersFailed(OrchestratorError):
    """Every candidate provider failed or was rate limited."""

    def __init__(
        self,
        last_error: Optional[OrchestratorError],
        attempted: Optional[List[str]] = None,
        modality: Optional[str] = None,
        **kwargs,
    ):
        label = f"{modality} generation" if modality else "generation"
        message = f"All {label} providers failed"
        if last_error is not None:
            message = f"{message}; last error: {last_error.message}"
        super().__init__(message, error_code="ALL_PROVIDERS_FAILED", **kwargs)
        self.last_error = last_error
        self.attempted = list(attempted or [])
        self.details["attempted"] = self.attempted
        if modality:
            self.details["modality"] = modality


__all__ = [
    "OrchestratorError",
    "ProviderUnavailable",
    "RateLimited",
    "ProviderCallFailed",
    "NoProvidersAvailable",
    "AllProvidersFailed",
]
