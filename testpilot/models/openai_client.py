"""OpenAI API client wrapper for testpilot."""

import json
import logging
from typing import Any, Dict, List, Optional, Type

import openai
from openai import AsyncOpenAI

from testpilot.config.settings import get_settings
from testpilot.core.interfaces import ModelT, StructuredCompletion
from testpilot.error_handling.exceptions import CollaboratorError
from testpilot.models.structured import build_system_prompt, parse_structured_content


class OpenAIClient(StructuredCompletion):
    """
    Wrapper for OpenAI chat completions.

    Also serves OpenAI-compatible endpoints (Groq, Cerebras) through
    ``base_url``.
    """

    def __init__(
        self,
        model: str = "gpt-4.1-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        max_retries: int = 3,
        temperature: Optional[float] = None,
        request_timeout: Optional[float] = None,
        provider: str = "openai",
    ) -> None:
        """
        Initialize OpenAI client.

        Args:
            model: Model to use for completions
            api_key: Optional API key (defaults to env/config)
            base_url: Endpoint override for OpenAI-compatible providers
            max_retries: Maximum number of transport retries
            temperature: Sampling temperature (defaults to config)
            request_timeout: Request timeout in seconds (defaults to config)
            provider: Provider name used in logs and errors
        """
        self.model = model
        self.max_retries = max_retries
        self.provider = provider
        self.logger = logging.getLogger("testpilot.models.openai_client")

        settings = get_settings()
        self.api_key = api_key or settings.openai_api_key
        self.temperature = (
            settings.llm_temperature if temperature is None else temperature
        )
        self.request_timeout = request_timeout or float(
            settings.llm_request_timeout_seconds
        )

        if not self.api_key:
            raise ValueError(
                f"API key for provider '{provider}' not provided. "
                f"Set {provider.upper()}_API_KEY environment variable."
            )

        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=base_url,
            max_retries=self.max_retries,
        )

    async def call(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        system_prompt: Optional[str] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make a chat completions call."""
        final_messages = []
        if system_prompt:
            final_messages.append({"role": "system", "content": system_prompt})
        final_messages.extend(messages)

        temperature = self.temperature if temperature is None else temperature
        self.logger.debug(
            f"{self.provider} API call: model={self.model}, "
            f"messages={len(final_messages)}, temperature={temperature}"
        )

        try:
            return await self._call_chat_completions(
                final_messages=final_messages,
                temperature=temperature,
                max_tokens=max_tokens,
                response_format=response_format,
            )
        except openai.APIError as e:
            self.logger.error(f"{self.provider} API error: {e}")
            raise

    async def _call_chat_completions(
        self,
        final_messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: Optional[int],
        response_format: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": final_messages,
            "temperature": temperature,
        }

        if max_tokens:
            kwargs["max_completion_tokens"] = max_tokens

        if response_format:
            kwargs["response_format"] = response_format

        response = await self.client.chat.completions.create(
            timeout=self.request_timeout,
            **kwargs,
        )

        content = response.choices[0].message.content or ""
        if response_format and response_format.get("type") == "json_object":
            try:
                content = json.loads(content)
            except json.JSONDecodeError as exc:
                self.logger.error(f"Failed to parse JSON response: {exc}")
                content = {"error": "Invalid JSON response", "raw": content}

        usage = response.usage
        return {
            "content": content,
            "usage": {
                "prompt_tokens": getattr(usage, "prompt_tokens", 0),
                "completion_tokens": getattr(usage, "completion_tokens", 0),
                "total_tokens": getattr(usage, "total_tokens", 0),
            },
            "model": response.model,
            "finish_reason": response.choices[0].finish_reason,
        }

    async def create_structured_output(
        self,
        prompt: str,
        response_schema: Dict[str, Any],
        temperature: Optional[float] = None,
    ) -> Any:
        """
        Create structured output in JSON mode.

        Args:
            prompt: User prompt
            response_schema: JSON schema for response
            temperature: Temperature for response

        Returns:
            Parsed JSON content
        """
        response = await self.call(
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            system_prompt=build_system_prompt(response_schema),
            response_format={"type": "json_object"},
        )
        return response["content"]

    async def complete(self, prompt: str, result_model: Type[ModelT]) -> ModelT:
        try:
            content = await self.create_structured_output(
                prompt, result_model.model_json_schema()
            )
        except openai.APIError as exc:
            raise CollaboratorError(
                f"{self.provider} request failed: {exc}",
                collaborator=self.provider,
                cause=exc,
            ) from exc

        if isinstance(content, dict) and content.get("error") == "Invalid JSON response":
            raise CollaboratorError(
                f"{self.provider} returned invalid JSON",
                collaborator=self.provider,
                details={"raw": content.get("raw")},
            )

        return parse_structured_content(content, result_model, self.provider)
