"""
LLM client selection by provider and role.
"""

from typing import Optional

from testpilot.config.settings import Settings, get_settings
from testpilot.core.interfaces import StructuredCompletion
from testpilot.models.gemini_client import GeminiClient
from testpilot.models.openai_client import OpenAIClient


def create_llm_client(
    role: str = "default", settings: Optional[Settings] = None
) -> StructuredCompletion:
    """
    Build the structured-completion client for an LLM role.

    Args:
        role: "default" (normalization, healing) or "fast" (planning, locating)
        settings: Settings to read from (defaults to the cached settings)

    Returns:
        Client for the configured provider

    Raises:
        ValueError: If the role is unknown or the provider has no API key
    """
    settings = settings or get_settings()
    provider = settings.llm_provider
    model = settings.get_model_name(role)
    api_key = settings.get_api_key(provider)

    if not api_key:
        raise ValueError(
            f"No API key configured for provider '{provider}'. "
            f"Set {provider.upper()}_API_KEY."
        )

    if provider == "google":
        return GeminiClient(
            model=model,
            api_key=api_key,
            temperature=settings.llm_temperature,
        )

    return OpenAIClient(
        model=model,
        api_key=api_key,
        base_url=settings.get_base_url(provider),
        max_retries=settings.llm_max_retries,
        temperature=settings.llm_temperature,
        request_timeout=float(settings.llm_request_timeout_seconds),
        provider=provider,
    )
