"""
Google Gemini API client wrapper for testpilot.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from google import genai
from google.genai import types

from testpilot.config.settings import get_settings
from testpilot.core.interfaces import ModelT, StructuredCompletion
from testpilot.error_handling.exceptions import CollaboratorError
from testpilot.models.structured import build_system_prompt, parse_structured_content


class GeminiClient(StructuredCompletion):
    """Wrapper for Google Gemini API interactions."""

    def __init__(
        self,
        model: str = "gemini-2.5-flash",
        api_key: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> None:
        """
        Initialize Gemini client.

        Args:
            model: Model to use for completions
            api_key: Optional API key (defaults to env/config)
            temperature: Sampling temperature (defaults to config)
        """
        self.model = model
        self.logger = logging.getLogger("testpilot.models.gemini_client")

        settings = get_settings()
        self.api_key = api_key or settings.google_api_key
        self.temperature = (
            settings.llm_temperature if temperature is None else temperature
        )

        if not self.api_key:
            raise ValueError(
                "Gemini API key not provided. Set GOOGLE_API_KEY environment variable."
            )

        self.client = genai.Client(api_key=self.api_key)

    async def call(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        json_output: bool = False,
    ) -> Dict[str, Any]:
        """
        Call Gemini API with OpenAI-style messages.

        Args:
            messages: List of message dictionaries with OpenAI format
            temperature: Temperature for generation
            json_output: Ask for an application/json response

        Returns:
            Dictionary with response content and usage info
        """
        system_prompt, contents = self._convert_messages_to_contents(messages)

        config = types.GenerateContentConfig(
            temperature=self.temperature if temperature is None else temperature,
            system_instruction=system_prompt,
            response_mime_type="application/json" if json_output else None,
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            self.logger.error(f"Gemini API call failed: {str(e)}")
            raise

        usage = getattr(response, "usage_metadata", None)
        return {
            "content": response.text or "",
            "usage": {
                "total_tokens": getattr(usage, "total_token_count", 0) or 0,
                "prompt_tokens": getattr(usage, "prompt_token_count", 0) or 0,
                "completion_tokens": getattr(usage, "candidates_token_count", 0) or 0,
            },
        }

    def _convert_messages_to_contents(
        self, messages: List[Dict[str, Any]]
    ) -> tuple[Optional[str], List[types.Content]]:
        """Split the system message out and map the rest to Gemini contents."""
        system_prompt = None
        contents: List[types.Content] = []

        for msg in messages:
            if msg["role"] == "system":
                system_prompt = msg["content"]
                continue
            role = "model" if msg["role"] == "assistant" else "user"
            contents.append(
                types.Content(role=role, parts=[types.Part(text=msg["content"])])
            )

        return system_prompt, contents

    async def complete(self, prompt: str, result_model: Type[ModelT]) -> ModelT:
        messages = [
            {
                "role": "system",
                "content": build_system_prompt(result_model.model_json_schema()),
            },
            {"role": "user", "content": prompt},
        ]
        try:
            response = await self.call(messages, json_output=True)
        except Exception as exc:
            raise CollaboratorError(
                f"Gemini request failed: {exc}",
                collaborator="google",
                cause=exc,
            ) from exc

        return parse_structured_content(response["content"], result_model, "google")
