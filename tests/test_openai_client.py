"""Tests for the OpenAI and Gemini structured-completion clients."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from testpilot.config.settings import Settings
from testpilot.core.types import ActionPlan, ExtractionResult, HealingPlan
from testpilot.error_handling.exceptions import CollaboratorError
from testpilot.models.gemini_client import GeminiClient
from testpilot.models.openai_client import OpenAIClient
from testpilot.models.structured import parse_structured_content, strip_code_fences


@pytest.fixture
def client():
    return OpenAIClient(model="gpt-4.1-mini", api_key="test-key", temperature=0.0, request_timeout=30)


def _chat_response(content: str) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content), finish_reason="stop")],
        usage=SimpleNamespace(prompt_tokens=120, completion_tokens=30, total_tokens=150),
        model="gpt-4.1-mini",
    )


class TestStructuredHelpers:
    """Tests for shared parsing helpers."""

    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_parse_string_content(self):
        result = parse_structured_content('{"extraction": "hi"}', ExtractionResult, "openai")
        assert result.extraction == "hi"

    def test_invalid_json(self):
        with pytest.raises(CollaboratorError, match="invalid JSON"):
            parse_structured_content("not json", ExtractionResult, "openai")

    def test_schema_mismatch(self):
        with pytest.raises(CollaboratorError, match="does not match HealingPlan") as exc_info:
            parse_structured_content({"cause_analysis": "x"}, HealingPlan, "openai")

        assert exc_info.value.details["collaborator"] == "openai"
        assert exc_info.value.details["errors"]


class TestOpenAIClient:
    """Tests for OpenAIClient."""

    def test_missing_api_key(self):
        with patch(
            "testpilot.models.openai_client.get_settings",
            return_value=Settings(_env_file=None, openai_api_key=""),
        ):
            with pytest.raises(ValueError, match="OPENAI_API_KEY"):
                OpenAIClient()

    @pytest.mark.asyncio
    async def test_chat_completion_request(self, client):
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(
            return_value=_chat_response('{"locate_query": "Find the login button", "intended_action": "click"}')
        )

        plan = await client.complete("The user clicks Login", ActionPlan)

        assert plan.locate_query == "Find the login button"
        kwargs = client.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4.1-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["timeout"] == 30
        assert kwargs["temperature"] == 0.0
        system, user = kwargs["messages"]
        assert system["role"] == "system"
        assert '"locate_query"' in system["content"]
        assert user == {"role": "user", "content": "The user clicks Login"}

    @pytest.mark.asyncio
    async def test_usage_is_reported(self, client):
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(return_value=_chat_response("plain text"))

        response = await client.call([{"role": "user", "content": "hi"}])

        assert response["content"] == "plain text"
        assert response["usage"]["total_tokens"] == 150
        assert response["finish_reason"] == "stop"

    @pytest.mark.asyncio
    async def test_invalid_json_response(self, client):
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(return_value=_chat_response("{broken"))

        with pytest.raises(CollaboratorError, match="invalid JSON") as exc_info:
            await client.complete("x", ExtractionResult)

        assert exc_info.value.details["raw"] == "{broken"

    @pytest.mark.asyncio
    async def test_provider_name_is_used_for_errors(self):
        groq = OpenAIClient(model="llama", api_key="k", base_url="https://api.groq.com/openai/v1", provider="groq")

        with patch.object(groq, "_call_chat_completions", AsyncMock(return_value={"content": {"other": 1}})):
            with pytest.raises(CollaboratorError) as exc_info:
                await groq.complete("x", HealingPlan)

        assert exc_info.value.collaborator == "groq"


class TestGeminiClient:
    """Tests for GeminiClient."""

    @pytest.fixture
    def gemini(self):
        return GeminiClient(model="gemini-2.5-flash", api_key="test-key", temperature=0.0)

    def test_message_conversion(self, gemini):
        system, contents = gemini._convert_messages_to_contents([
            {"role": "system", "content": "Be strict"},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ])

        assert system == "Be strict"
        assert [c.role for c in contents] == ["user", "model"]
        assert contents[1].parts[0].text == "hello"

    @pytest.mark.asyncio
    async def test_complete_parses_json_text(self, gemini):
        with patch.object(
            gemini, "call", AsyncMock(return_value={"content": '```json\n{"extraction": "Welcome"}\n```'})
        ) as call:
            result = await gemini.complete("Extract the greeting", ExtractionResult)

        assert result.extraction == "Welcome"
        messages = call.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert call.call_args.kwargs == {"json_output": True}

    @pytest.mark.asyncio
    async def test_transport_failure(self, gemini):
        with patch.object(gemini, "call", AsyncMock(side_effect=RuntimeError("429 RESOURCE_EXHAUSTED"))):
            with pytest.raises(CollaboratorError, match="RESOURCE_EXHAUSTED") as exc_info:
                await gemini.complete("x", ExtractionResult)

        assert exc_info.value.collaborator == "google"
