"""
Collaborator interfaces consumed by the step-execution engine.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel

from testpilot.core.types import CandidateAction, GherkinDocument

ModelT = TypeVar("ModelT", bound=BaseModel)


class StructuredCompletion(ABC):
    """LLM capability that answers a prompt with a schema-conforming value."""

    @abstractmethod
    async def complete(self, prompt: str, result_model: Type[ModelT]) -> ModelT:
        """
        Generate a value for the prompt and validate it against the model.

        Args:
            prompt: Complete user prompt
            result_model: Pydantic model describing the expected result

        Returns:
            Validated instance of result_model
        """
        pass


class PageAutomation(ABC):
    """Browser control primitives used by the engine."""

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: int) -> None:
        """Navigate the page to a URL."""
        pass

    @abstractmethod
    async def wait_for_load(self, state: str, timeout_ms: int) -> None:
        """Wait until the page reaches a load state."""
        pass

    @abstractmethod
    async def current_location(self) -> str:
        """Return the current page URL."""
        pass

    @abstractmethod
    async def locate(self, query: str) -> List[CandidateAction]:
        """Return candidate actions for a natural-language query, best first."""
        pass

    @abstractmethod
    async def execute(self, candidate: CandidateAction) -> None:
        """Perform a candidate action."""
        pass

    @abstractmethod
    async def act(self, instruction: str) -> None:
        """Locate and perform a single natural-language instruction."""
        pass

    @abstractmethod
    async def extract(
        self, query: str, schema: Optional[Type[BaseModel]] = None
    ) -> Any:
        """
        Extract data from the page.

        Without a schema the result carries the text in an ``extraction``
        field; callers normalize it with ``normalize_extraction``.
        """
        pass

    @abstractmethod
    async def state_probe(self, selector: str, kind: str) -> Union[bool, str]:
        """Query one element state (visible, hidden, enabled, ..., value)."""
        pass

    @abstractmethod
    async def capture_diagnostic_snapshot(self) -> str:
        """Return a structural snapshot of the page for diagnosis."""
        pass

    @abstractmethod
    async def screenshot(self, path: Path) -> None:
        """Save a screenshot of the page."""
        pass

    def start_capture(self) -> None:
        """Start recording executed commands."""
        return None

    def stop_capture(self) -> List[Dict[str, Any]]:
        """Stop recording and return the recorded commands."""
        return []


class ScenarioNormalizer(ABC):
    """Turns free-text scenarios into structured Gherkin documents."""

    @abstractmethod
    async def normalize(self, scenario_text: str) -> GherkinDocument:
        """Convert scenario text to a Gherkin document."""
        pass
