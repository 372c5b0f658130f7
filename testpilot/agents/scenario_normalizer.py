"""
Scenario Normalizer Agent: free-text scenario to structured Gherkin.
"""

from testpilot.agents.base_agent import BaseAgent
from testpilot.config.agent_prompts import PromptTemplates
from testpilot.core.interfaces import ScenarioNormalizer, StructuredCompletion
from testpilot.core.types import GherkinDocument


class ScenarioNormalizerAgent(BaseAgent, ScenarioNormalizer):
    """Converts a free-text scenario into a GherkinDocument via the LLM."""

    def __init__(self, llm: StructuredCompletion) -> None:
        super().__init__("scenario_normalizer", llm)

    async def normalize(self, scenario_text: str) -> GherkinDocument:
        if not scenario_text.strip():
            raise ValueError("Scenario text is empty")

        document = await self.ask(
            PromptTemplates.scenario_normalization(scenario_text), GherkinDocument
        )
        step_count = len(document.executable_steps)
        self.logger.info(
            f"Normalized scenario into feature '{document.feature}' "
            f"with {step_count} executable step(s)"
        )
        return document
