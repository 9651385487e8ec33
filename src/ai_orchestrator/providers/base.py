"""
Base adapter abstract class and error hierarchy for AI providers.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol, Union, runtime_checkable

import httpx

from ai_orchestrator.models import GenerationOptions, Modality

Content = Union[str, bytes]

CREDIT_MARKERS = ("insufficient", "credit", "quota", "billing", "payment")


class ProviderError(Exception):
    """Base exception for provider-related errors."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict] = None,
        error_code: Optional[str] = None,
    ):
        """
        Initialize provider error.

        Args:
            message: Error message
            provider: Provider name
            status_code: HTTP status code if applicable
            details: Additional error details
            error_code: Error code for categorization
        """
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code or "provider_error"
        self.timestamp = datetime.now(timezone.utc)


class ProviderRateLimitError(ProviderError):
    """The provider itself answered with a rate limit."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        retry_after: Optional[float] = None,
        status_code: Optional[int] = 429,
    ):
        super().__init__(message, provider=provider, status_code=status_code, error_code="rate_limit")
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    """Authentication/API key error."""

    pass


class InsufficientCreditError(ProviderError):
    """Account has run out of free-tier credit or quota."""

    pass


class ProviderTimeoutError(ProviderError):
    """Request timeout error."""

    pass


class MalformedResponseError(ProviderError):
    """Response payload did not have the expected shape."""

    pass


class UnsupportedModalityError(ProviderError):
    """The adapter cannot produce the requested modality."""

    pass


@runtime_checkable
class Adapter(Protocol):
    """Uniform call shape the orchestrator relies on."""

    async def invoke(
        self, prompt: str, options: GenerationOptions, modality: Modality = Modality.TEXT
    ) -> Content: ...

    async def health_check(self) -> bool: ...

    async def aclose(self) -> None: ...


class BaseAdapter(ABC):
    """Abstract base class for provider adapters.

    An adapter turns ``(prompt, options)`` into one HTTP call against its
    provider and returns the generated text or binary payload. Every failure
    is raised as a :class:`ProviderError` subclass.
    """

    name: str = "base"
    base_url: str = ""

    def __init__(
        self,
        api_key: str,
        timeout: float = 30,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
    ):
        """
        Initialize the adapter.

        Args:
            api_key: API key for the provider
            timeout: Request timeout in seconds
            client: Pre-built HTTP client, mainly for tests
            base_url: Override for the provider endpoint
        """
        self.api_key = api_key
        self.timeout = timeout
        if base_url:
            self.base_url = base_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.default_headers(),
            timeout=timeout,
        )

    def default_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    @abstractmethod
    async def invoke(
        self,
        prompt: str,
        options: GenerationOptions,
        modality: Modality = Modality.TEXT,
    ) -> Content:
        """
        Issue one generation call.

        Args:
            prompt: Prompt text
            options: Shared generation options
            modality: Requested modality

        Returns:
            Generated text, or bytes for binary media

        Raises:
            ProviderError: If the call fails or the payload is malformed
        """

    async def health_check(self) -> bool:
        """Cheap reachability probe; only used for startup logging."""
        try:
            response = await self.client.get("/")
        except httpx.HTTPError:
            return False
        return response.status_code < 500

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def require_modality(self, modality: Modality, *supported: Modality) -> None:
        if modality not in supported:
            raise UnsupportedModalityError(
                f"{self.name} cannot generate {modality.value} content",
                provider=self.name,
                error_code="unsupported_modality",
            )

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and classify transport and status failures."""
        return await self._send(self.client.build_request(method, url, **kwargs))

    async def _send(self, request: httpx.Request, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.send(request, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"{self.name} request timed out", provider=self.name, error_code="timeout"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"{self.name} request failed: {e}", provider=self.name, error_code="network"
            ) from e

        self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        body = response.text[:500]
        if status in (401, 403):
            raise AuthenticationError(
                f"{self.name} rejected credentials", provider=self.name,
                status_code=status, error_code="authentication",
            )
        if status == 402 or (status == 400 and any(m in body.lower() for m in CREDIT_MARKERS)):
            raise InsufficientCreditError(
                f"{self.name} reports insufficient credit", provider=self.name,
                status_code=status, details={"body": body}, error_code="insufficient_credit",
            )
        if status == 429:
            retry_after = response.headers.get("retry-after")
            raise ProviderRateLimitError(
                f"{self.name} rate limit exceeded",
                provider=self.name,
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        raise ProviderError(
            f"{self.name} returned HTTP {status}", provider=self.name,
            status_code=status, details={"body": body}, error_code="http_status",
        )

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"{self.name} returned invalid JSON", provider=self.name,
                error_code="malformed_response",
            ) from e

    def _extract(self, payload: Any, getter: Callable[[Any], Any]) -> Any:
        """Apply `getter` to a decoded payload, mapping shape errors."""
        try:
            value = getter(payload)
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(
                f"{self.name} response is missing expected fields",
                provider=self.name, details={"payload": str(payload)[:500]},
                error_code="malformed_response",
            ) from e
        if value is None:
            raise MalformedResponseError(
                f"{self.name} response contained no content", provider=self.name,
                error_code="malformed_response",
            )
        if not isinstance(value, (str, bytes)):
            raise MalformedResponseError(
                f"{self.name} response content is {type(value).__name__}, expected text",
                provider=self.name, details={"payload": str(payload)[:500]},
                error_code="malformed_response",
            )
        return value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self.base_url!r})"
