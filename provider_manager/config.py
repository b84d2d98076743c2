"""
Provider Manager Configuration Module

Two layers of configuration:
- ProviderManagerConfig: the constructor-time config of a ProviderManager
  (provider credentials, per-use-case overrides, tracking flag). Hosts
  build it directly when embedding the manager as a library.
- Settings: environment-driven settings for the bundled operations API,
  loaded with pydantic-settings and converted with to_manager_config().

Environment variables are loaded from .env file or system environment.
All API keys use SecretStr to prevent accidental logging.
"""

from functools import lru_cache
from typing import Any, Literal
import logging
import sys

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from provider_manager.registry.use_cases import UseCase


class ProviderCredentials(BaseModel):
    """Connection settings for one provider."""

    api_key: SecretStr | None = Field(default=None, description="Provider API key")

    base_url: str | None = Field(
        default=None,
        description="Alternative API endpoint (proxies, compatible gateways)",
    )

    timeout: float | None = Field(
        default=None,
        gt=0,
        description="HTTP client timeout in seconds",
    )

    max_retries: int = Field(
        default=2,
        ge=0,
        description="SDK-level retries for transient HTTP failures",
    )

    @property
    def is_configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())


class ProviderManagerConfig(BaseModel):
    """
    Constructor-time configuration of a ProviderManager.

    Example:
        config = ProviderManagerConfig(
            providers={"openai": ProviderCredentials(api_key="sk-...")},
            use_cases={UseCase.RAG_QA: {"provider": "groq"}},
        )
        manager = ProviderManager(config)
    """

    providers: dict[str, ProviderCredentials] = Field(
        default_factory=dict,
        description="Credentials keyed by provider name",
    )

    use_cases: dict[UseCase, dict[str, Any]] = Field(
        default_factory=dict,
        description="Partial UseCaseConfig overrides keyed by use case",
    )

    enable_cost_tracking: bool = Field(
        default=True,
        description="Record every attempted operation in the CostTracker",
    )

    cost_alert_threshold: float | None = Field(
        default=None,
        gt=0,
        description="Daily USD limit applied to every use case by the host",
    )

    timeouts: dict[str, float] = Field(
        default_factory=dict,
        description="Per-operation timeout overrides in seconds (text, embedding, ...)",
    )


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic Settings automatically reads from:
    1. Environment variables
    2. .env file in working directory
    3. Default values defined here

    Every provider key is optional; adapters are only registered for
    providers whose key is present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )

    openai_api_key: SecretStr | None = Field(
        default=None, description="OpenAI API key (text, embeddings, extraction)"
    )

    openai_base_url: str | None = Field(
        default=None, description="Override for the OpenAI API base URL"
    )

    anthropic_api_key: SecretStr | None = Field(
        default=None, description="Anthropic API key for Claude extraction and text fallback"
    )

    groq_api_key: SecretStr | None = Field(
        default=None, description="Groq API key for Llama text generation"
    )

    serper_api_key: SecretStr | None = Field(
        default=None, description="Serper API key for web search"
    )

    enable_cost_tracking: bool = Field(
        default=True, description="Enable operation tracking and cost statistics"
    )

    cost_alert_threshold: float | None = Field(
        default=None,
        gt=0,
        description="Daily USD limit per use case; breaches are logged",
    )

    cost_retention_days: int = Field(
        default=30,
        ge=0,
        description="Age after which POST /metrics/prune drops tracked operations",
    )

    use_case_overrides: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description='JSON map of use case overrides, e.g. {"rag-qa": {"provider": "groq"}}',
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Application log level"
    )

    host: str = Field(default="0.0.0.0", description="Server bind host")

    port: int = Field(default=8000, description="Server bind port")

    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("use_case_overrides")
    @classmethod
    def validate_use_case_names(cls, v: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
        """Ensure every override targets a known use case."""
        valid = {use_case.value for use_case in UseCase}
        unknown = set(v) - valid
        if unknown:
            raise ValueError(f"Unknown use cases {sorted(unknown)}; expected one of {sorted(valid)}")
        return v

    def to_manager_config(self) -> ProviderManagerConfig:
        """Build the ProviderManager configuration from these settings."""
        providers: dict[str, ProviderCredentials] = {}
        if self.openai_api_key is not None:
            providers["openai"] = ProviderCredentials(
                api_key=self.openai_api_key, base_url=self.openai_base_url
            )
        if self.anthropic_api_key is not None:
            providers["anthropic"] = ProviderCredentials(api_key=self.anthropic_api_key)
        if self.groq_api_key is not None:
            providers["groq"] = ProviderCredentials(api_key=self.groq_api_key)
        if self.serper_api_key is not None:
            providers["serper"] = ProviderCredentials(api_key=self.serper_api_key)

        return ProviderManagerConfig(
            providers=providers,
            use_cases={UseCase(name): patch for name, patch in self.use_case_overrides.items()},
            enable_cost_tracking=self.enable_cost_tracking,
            cost_alert_threshold=self.cost_alert_threshold,
        )


@lru_cache
def get_settings() -> Settings:
    """
    Returns cached settings instance.

    Using lru_cache ensures settings are loaded once and reused,
    avoiding repeated file reads and environment parsing.

    Returns:
        Settings: The application settings singleton.
    """
    return Settings()


def configure_logging(settings: Settings) -> None:
    """
    Configure application logging based on settings.

    Sets up structured logging with timestamps and reduces noise
    from third-party HTTP libraries.

    Args:
        settings: The application settings instance.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("groq").setLevel(logging.WARNING)
