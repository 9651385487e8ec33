"""Settings configuration"""
import json
from functools import lru_cache
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class ProviderOverride(BaseModel):
    """Per-provider adjustments applied on top of the built-in catalogue."""

    priority: Optional[int] = None
    max_requests: Optional[int] = Field(default=None, ge=1)
    window_seconds: Optional[float] = Field(default=None, gt=0)
    models: Optional[List[str]] = None


class Settings(BaseSettings):
    """Orchestrator settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False, populate_by_name=True,
        validate_assignment=True
    )

    # Application
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # Provider credentials; a provider is enabled only when its key is present
    huggingface_api_key: Optional[SecretStr] = Field(default=None, validation_alias="HUGGINGFACE_API_KEY")
    cohere_api_key: Optional[SecretStr] = Field(default=None, validation_alias="COHERE_API_KEY")
    google_ai_api_key: Optional[SecretStr] = Field(default=None, validation_alias="GOOGLE_AI_API_KEY")
    groq_api_key: Optional[SecretStr] = Field(default=None, validation_alias="GROQ_API_KEY")
    deepai_api_key: Optional[SecretStr] = Field(default=None, validation_alias="DEEPAI_API_KEY")
    stability_api_key: Optional[SecretStr] = Field(default=None, validation_alias="STABILITY_API_KEY")

    huggingface_models: Annotated[List[str], NoDecode] = Field(
        default=["microsoft/DialoGPT-medium", "gpt2", "EleutherAI/gpt-neo-2.7B"],
        validation_alias="HUGGINGFACE_MODELS",
    )
    provider_overrides: Dict[str, ProviderOverride] = Field(
        default_factory=dict, validation_alias="PROVIDER_OVERRIDES"
    )

    # Cache
    cache_enabled: bool = Field(default=True, validation_alias="CACHE_ENABLED")
    cache_ttl_seconds: float = Field(default=3600, validation_alias="CACHE_TTL_SECONDS", gt=0)
    cache_sweep_interval_seconds: float = Field(
        default=300, validation_alias="CACHE_SWEEP_INTERVAL_SECONDS", gt=0
    )

    # Resilience
    request_timeout: float = Field(default=30, validation_alias="REQUEST_TIMEOUT", gt=0)
    failure_threshold: int = Field(default=5, validation_alias="FAILURE_THRESHOLD", ge=1)
    recovery_timeout_seconds: float = Field(
        default=300, validation_alias="RECOVERY_TIMEOUT_SECONDS", ge=0
    )

    @field_validator("huggingface_models", mode="before")
    @classmethod
    def parse_models(cls, v):
        if isinstance(v, str):
            # Handle JSON array format
            if v.startswith("["):
                try:
                    return json.loads(v)
                except (json.JSONDecodeError, ValueError):
                    pass
            # Handle comma-separated format
            return [model.strip() for model in v.split(",") if model.strip()]
        return v

    # Properties
    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def api_key_for(self, provider: str) -> Optional[str]:
        """Return the plain credential for a provider, or None when unset."""
        secret = getattr(self, f"{provider}_api_key", None)
        if secret is None:
            return None
        value = secret.get_secret_value()
        return value or None


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
