"""
Base implementation for the LLM-backed agents of testpilot.
"""

from typing import Type

from testpilot.core.interfaces import ModelT, StructuredCompletion
from testpilot.error_handling.exceptions import CollaboratorError, TestPilotError
from testpilot.monitoring.logger import get_logger


class BaseAgent:
    """Agent with a named logger and a structured-completion collaborator."""

    def __init__(self, name: str, llm: StructuredCompletion) -> None:
        """
        Initialize the base agent.

        Args:
            name: Name identifier for the agent
            llm: Structured-completion client the agent asks
        """
        self.name = name
        self.llm = llm
        self.logger = get_logger(f"testpilot.agent.{name}")

    async def ask(self, prompt: str, result_model: Type[ModelT]) -> ModelT:
        """
        Ask the LLM for a value conforming to result_model.

        Raises:
            CollaboratorError: If the client fails with a non-testpilot error
        """
        self.logger.debug(f"Requesting {result_model.__name__} from LLM")
        try:
            return await self.llm.complete(prompt, result_model)
        except TestPilotError:
            raise
        except Exception as exc:
            raise CollaboratorError(
                f"LLM call for {result_model.__name__} failed: {exc}",
                collaborator="llm",
                cause=exc,
            ) from exc
