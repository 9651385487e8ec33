"""Generation request options and responses."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .provider import Modality


class GenerationOptions(BaseModel):
    """Options shared by every provider adapter.

    Unknown fields are rejected; provider-specific settings go into
    ``provider_options`` keyed by provider name and are only read by that
    provider's adapter.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        json_schema_extra={
            "example": {
                "model": "command-light",
                "max_tokens": 200,
                "temperature": 0.7,
                "system_prompt": "You are a helpful assistant.",
            }
        },
    )

    model: Optional[str] = Field(default=None, description="Preferred model label")
    max_tokens: Optional[int] = Field(default=None, ge=1, description="Maximum tokens in response")
    temperature: Optional[float] = Field(default=None, ge=0, le=2, description="Sampling temperature")
    top_p: Optional[float] = Field(default=None, gt=0, le=1, description="Nucleus sampling mass")
    system_prompt: Optional[str] = Field(default=None, description="System instruction")
    stream: bool = Field(default=False, description="Whether the caller asked for streaming")
    provider_options: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict, description="Provider-specific extensions keyed by provider name"
    )

    def for_provider(self, provider: str) -> Dict[str, Any]:
        """Extension settings addressed to one provider."""
        return dict(self.provider_options.get(provider, {}))


class GenerationResponse(BaseModel):
    """Response returned by the orchestrator."""

    provider: str = Field(..., description="Provider that produced the content")
    content: Union[str, bytes] = Field(..., description="Generated text or binary payload")
    modality: Modality = Field(..., description="Requested modality")
    model: Optional[str] = Field(default=None, description="Model label sent to the provider")
    latency_ms: float = Field(default=0.0, description="Provider call latency in milliseconds")
    cached: bool = Field(default=False, description="Whether the response came from the cache")
    request_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), description="Unique request ID"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Response timestamp"
    )

    @property
    def is_binary(self) -> bool:
        return isinstance(self.content, bytes)
