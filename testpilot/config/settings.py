"""Configuration management for testpilot."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_PROVIDERS = ("openai", "google", "groq", "cerebras")

# OpenAI-compatible endpoints for providers served through the OpenAI SDK
PROVIDER_BASE_URLS: Dict[str, str] = {
    "groq": "https://api.groq.com/openai/v1",
    "cerebras": "https://api.cerebras.ai/v1",
}

LLM_ROLES = ("default", "fast")


class ProviderModels(BaseModel):
    """Model names used for each LLM role of a provider."""

    default: str
    fast: str


DEFAULT_PROVIDER_MODELS: Dict[str, ProviderModels] = {
    "openai": ProviderModels(default="gpt-4.1", fast="gpt-4.1-mini"),
    "google": ProviderModels(default="gemini-2.5-pro", fast="gemini-2.5-flash"),
    "groq": ProviderModels(
        default="llama-3.3-70b-versatile", fast="llama-3.1-8b-instant"
    ),
    "cerebras": ProviderModels(default="llama-3.3-70b", fast="llama3.1-8b"),
}


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM Configuration
    llm_provider: str = Field(
        default="openai", description="LLM provider (openai, google, groq, cerebras)"
    )
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_base_url: Optional[str] = Field(
        default=None, description="Override for OpenAI-compatible endpoints"
    )
    google_api_key: str = Field(default="", description="Google Gemini API key")
    groq_api_key: str = Field(default="", description="Groq API key")
    cerebras_api_key: str = Field(default="", description="Cerebras API key")
    default_model: Optional[str] = Field(
        default=None, description="Model for healing and normalization"
    )
    fast_model: Optional[str] = Field(
        default=None, description="Model for planning, locating and extraction"
    )
    llm_temperature: float = Field(
        default=0.2, ge=0.0, le=2.0, description="Sampling temperature"
    )
    llm_max_retries: int = Field(
        default=3, ge=0, description="Transport-level retries inside the SDK"
    )
    llm_request_timeout_seconds: int = Field(
        default=120, ge=5, description="Request timeout for LLM calls"
    )

    # Browser Configuration
    browser_headless: bool = Field(
        default=False, description="Run browser in headless mode"
    )
    browser_viewport_width: int = Field(
        default=1280, ge=320, description="Browser viewport width"
    )
    browser_viewport_height: int = Field(
        default=720, ge=240, description="Browser viewport height"
    )
    navigation_timeout_ms: int = Field(
        default=30000, ge=1000, description="Navigation timeout (ms)"
    )
    load_state_timeout_ms: int = Field(
        default=15000, ge=1000, description="Load-state wait timeout (ms)"
    )

    # Engine Configuration
    max_healing_attempts: int = Field(
        default=2, ge=0, description="Self-healing retries after the first attempt"
    )
    diagnostic_buffer_size: int = Field(
        default=5, ge=1, description="Console/network lines kept for diagnosis"
    )
    healing_snapshot_char_limit: int = Field(
        default=2000, ge=100, description="Page snapshot length sent for healing"
    )
    max_locate_elements: int = Field(
        default=300, ge=10, description="Interactive elements offered to the locator"
    )
    extraction_char_limit: int = Field(
        default=20000, ge=500, description="Page text length sent for extraction"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="text",
        description="Log format (json or text)",
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file path"
    )

    # Storage Configuration
    results_dir: Path = Field(
        default=Path("test-results"), description="Reports and screenshots directory"
    )

    @field_validator("llm_provider")
    def validate_llm_provider(cls, v: str) -> str:
        """Validate LLM provider."""
        provider = v.lower()
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported LLM provider: {v}")
        return provider

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ["json", "text"]:
            raise ValueError(f"Invalid log format: {v}")
        return v

    @model_validator(mode="after")
    def populate_role_models(self) -> "Settings":
        """Resolve role models from <PROVIDER>_<ROLE>_MODEL or provider defaults."""
        env = os.environ
        defaults = DEFAULT_PROVIDER_MODELS[self.llm_provider]
        prefix = self.llm_provider.upper()

        if not self.default_model:
            self.default_model = env.get(f"{prefix}_DEFAULT_MODEL") or defaults.default
        if not self.fast_model:
            self.fast_model = env.get(f"{prefix}_FAST_MODEL") or defaults.fast
        return self

    def get_model_name(self, role: str) -> str:
        """Return the model configured for an LLM role."""
        if role not in LLM_ROLES:
            raise ValueError(f"Unknown LLM role: {role}")
        return self.default_model if role == "default" else self.fast_model

    def get_api_key(self, provider: Optional[str] = None) -> str:
        """Return the API key for a provider (defaults to the active one)."""
        return getattr(self, f"{provider or self.llm_provider}_api_key", "")

    def get_base_url(self, provider: Optional[str] = None) -> Optional[str]:
        """Return the endpoint used for OpenAI-compatible providers."""
        provider = provider or self.llm_provider
        if provider == "openai":
            return self.openai_base_url
        return PROVIDER_BASE_URLS.get(provider)

    def create_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.results_dir.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    return Settings()
