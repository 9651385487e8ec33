"""Provider configuration and reporting models."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Modality(str, Enum):
    """Category of generation task."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    MULTIMODAL = "multimodal"

    def serves(self, requested: "Modality") -> bool:
        """Whether a provider of this modality can take a request of `requested`."""
        return self is Modality.MULTIMODAL or self is requested


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"


class RateLimit(BaseModel):
    """Fixed-window request budget."""

    model_config = ConfigDict(frozen=True)

    max_requests: int = Field(..., ge=1, description="Requests allowed per window")
    window_seconds: float = Field(..., gt=0, description="Window length in seconds")


class ProviderStats(BaseModel):
    """Operational view of one provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    modality: Modality
    available: bool
    consecutive_failures: int
    success_rate: float
    requests_in_current_window: int
    rate_limit: RateLimit
    last_used: Optional[datetime] = None
    total_requests: int = 0
    average_latency: float = Field(default=0.0, description="Average latency in milliseconds")


class ProviderModels(BaseModel):
    """Models advertised by one provider."""

    model_config = ConfigDict(frozen=True)

    provider: str
    models: List[str] = Field(default_factory=list)
