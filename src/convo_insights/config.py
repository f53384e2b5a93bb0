"""Configuration management for the insight pipeline."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from convo_insights.schemas import ModelTier


class Settings(BaseSettings):
    """Pipeline settings, loaded from env vars and optionally overridden by a YAML config file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider
    llm_provider: Literal["openai", "mock"] = "openai"
    openai_api_key: str = ""
    azure_openai_api_key: str = ""
    openai_base_url: str = ""
    azure_openai_endpoint: str = ""
    azure_openai_base_url: str = ""

    # Model config
    fast_model: str = "gpt-4.1-mini"
    powerful_model: str = "gpt-4.1"
    azure_fast_deployment: str = ""
    azure_powerful_deployment: str = ""
    fast_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    powerful_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    fast_max_output_tokens: int = Field(default=3072, gt=0)
    powerful_max_output_tokens: int = Field(default=4096, gt=0)
    llm_timeout_seconds: float = Field(default=90.0, gt=0)
    client_max_retries: int = Field(default=2, ge=1)
    client_backoff_seconds: float = Field(default=1.0, ge=0.0)

    # Stage 1 extraction
    max_conversations: int = Field(default=100, gt=0)
    extraction_batch_size: int = Field(default=10, gt=0)
    extraction_batch_pause_seconds: float = Field(default=1.0, ge=0.0)
    max_conversation_chars: int = Field(default=20_000, gt=0)

    # Aggregation
    top_topics_count: int = Field(default=15, gt=0)
    top_patterns_count: int = Field(default=10, gt=0)
    spotlight_size: int = Field(default=5, gt=0)
    pii_sample_size: int = Field(default=3, ge=0)
    profile_sample_size: int = Field(default=10, ge=0)

    # Entitlements ("*" grants every user)
    premium_user_ids: list[str] = Field(default_factory=list)

    # Tracing
    langsmith_tracing: bool = False
    langsmith_api_key: str = ""
    langsmith_project: str = ""
    langsmith_endpoint: str = ""

    # Paths / logging
    output_dir: Path = Field(default=Path("runs"))
    log_level: str = "INFO"

    @classmethod
    def from_yaml(cls, config_path: str | Path, **overrides) -> "Settings":
        """Load settings from a YAML config file, with overrides applied on top."""
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_config = yaml.safe_load(f) or {}
        else:
            yaml_config = {}
        merged = {**yaml_config, **overrides}
        return cls(**merged)

    def resolved_openai_base_url(self) -> str:
        """Resolve effective base URL, preferring explicit base URL then Azure endpoint."""

        candidate = (
            self.openai_base_url.strip()
            or self.azure_openai_base_url.strip()
            or self.azure_openai_endpoint.strip()
        )
        if not candidate:
            return ""

        normalized = candidate.rstrip("/")
        if "azure.com" in normalized.lower() and "openai/v1" not in normalized:
            normalized = f"{normalized}/openai/v1"
        return f"{normalized}/"

    def uses_azure_openai(self) -> bool:
        return "azure.com" in self.resolved_openai_base_url().lower()

    def resolved_openai_api_key(self) -> str:
        """Resolve API key with Azure-aware safeguard."""

        if self.uses_azure_openai():
            return self.azure_openai_api_key.strip()
        if self.openai_api_key.strip():
            return self.openai_api_key.strip()
        return self.azure_openai_api_key.strip()

    def resolved_model(self, tier: ModelTier) -> str:
        """Resolve model/deployment name for one tier, honoring Azure deployments."""

        if tier is ModelTier.FAST:
            deployment, model = self.azure_fast_deployment, self.fast_model
        else:
            deployment, model = self.azure_powerful_deployment, self.powerful_model
        if self.uses_azure_openai() and deployment.strip():
            return deployment.strip()
        return model.strip()

    def resolved_openai_key_source(self) -> str:
        """Return non-secret key source label for diagnostics."""

        if self.uses_azure_openai():
            if self.azure_openai_api_key.strip():
                return "AZURE_OPENAI_API_KEY"
            return "AZURE_OPENAI_API_KEY (missing)"
        if self.openai_api_key.strip():
            return "OPENAI_API_KEY"
        if self.azure_openai_api_key.strip():
            return "AZURE_OPENAI_API_KEY"
        return "none"

    def temperature_for(self, tier: ModelTier) -> float:
        return self.fast_temperature if tier is ModelTier.FAST else self.powerful_temperature

    def max_output_tokens_for(self, tier: ModelTier) -> int:
        if tier is ModelTier.FAST:
            return self.fast_max_output_tokens
        return self.powerful_max_output_tokens
