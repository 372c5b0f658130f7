"""
Shared fixtures: scripted LLM, mocked page automation and settings.
"""

from typing import Any, Dict, List, Tuple, Type
from unittest.mock import AsyncMock, Mock

import pytest

from testpilot.config.settings import Settings
from testpilot.core.context import ExecutionContext
from testpilot.core.interfaces import ModelT, StructuredCompletion
from testpilot.core.types import ExecutionMode


class ScriptedCompletion(StructuredCompletion):
    """
    Structured completion that replays queued answers per result model.

    Answers are consumed in order; the last one keeps being returned.
    Queued exceptions are raised, dictionaries are validated into the model.
    """

    def __init__(self) -> None:
        self.responses: Dict[type, List[Any]] = {}
        self.calls: List[Tuple[type, str]] = []

    def queue(self, result_model: type, *answers: Any) -> None:
        self.responses.setdefault(result_model, []).extend(answers)

    def calls_for(self, result_model: type) -> List[str]:
        return [prompt for model, prompt in self.calls if model is result_model]

    async def complete(self, prompt: str, result_model: Type[ModelT]) -> ModelT:
        self.calls.append((result_model, prompt))
        answers = self.responses.get(result_model)
        if not answers:
            raise AssertionError(f"No answer queued for {result_model.__name__}")

        answer = answers.pop(0) if len(answers) > 1 else answers[0]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, dict):
            return result_model.model_validate(answer)
        return answer


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        results_dir=tmp_path / "results",
    )


@pytest.fixture
def llm() -> ScriptedCompletion:
    return ScriptedCompletion()


@pytest.fixture
def mock_page():
    """Mock page automation."""
    page = AsyncMock()
    page.navigate = AsyncMock()
    page.wait_for_load = AsyncMock()
    page.current_location = AsyncMock(return_value="about:blank")
    page.locate = AsyncMock(return_value=[])
    page.execute = AsyncMock()
    page.act = AsyncMock()
    page.extract = AsyncMock(return_value={"extraction": ""})
    page.state_probe = AsyncMock(return_value=True)
    page.capture_diagnostic_snapshot = AsyncMock(return_value="- main:\n  - button \"Login\"")
    page.screenshot = AsyncMock()
    page.start_capture = Mock()
    page.stop_capture = Mock(return_value=[])
    return page


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(ExecutionMode.AUTONOMOUS, "Log in and check the greeting")
