"""
Action Planner: turns an action step into one executable candidate action.
"""

from typing import Dict, FrozenSet, List, Optional, Sequence

from testpilot.agents.base_agent import BaseAgent
from testpilot.agents.form_filler import fill_form_from_table
from testpilot.config.agent_prompts import PromptTemplates
from testpilot.core.interfaces import PageAutomation, StructuredCompletion
from testpilot.core.types import ActionIntent, ActionPlan, CandidateAction, TableRow
from testpilot.error_handling.exceptions import (
    CollaboratorError,
    ElementNotFoundError,
    IntentMismatchError,
    TestPilotError,
)

# Method names accepted for each inferred interaction
INTENT_METHODS: Dict[ActionIntent, FrozenSet[str]] = {
    ActionIntent.CLICK: frozenset({"click"}),
    ActionIntent.DOUBLE_CLICK: frozenset({"dblclick", "doubleClick", "double_click"}),
    ActionIntent.FILL: frozenset({"fill", "type", "press_sequentially"}),
    ActionIntent.PRESS: frozenset({"press", "pressKey", "press_key"}),
    ActionIntent.SELECT: frozenset({"selectOption", "select_option"}),
    ActionIntent.HOVER: frozenset({"hover"}),
    ActionIntent.SCROLL: frozenset({
        "scroll",
        "scrollTo",
        "scrollIntoView",
        "scroll_into_view",
        "scrollByPixelOffset",
        "mouse.wheel",
        "nextChunk",
        "prevChunk",
    }),
    ActionIntent.DRAG: frozenset({"dragAndDrop", "drag_and_drop", "drag_to"}),
}


def filter_candidates_by_intent(
    candidates: Sequence[CandidateAction], intent: ActionIntent
) -> List[CandidateAction]:
    """Keep candidates whose method fits the intent, in their original order."""
    allowed = INTENT_METHODS.get(intent)
    if allowed is None:
        return list(candidates)
    return [candidate for candidate in candidates if candidate.method in allowed]


class ActionPlanner(BaseAgent):
    """Plans a single action step against the current page."""

    def __init__(self, page: PageAutomation, llm: StructuredCompletion) -> None:
        super().__init__("action_planner", llm)
        self.page = page

    async def plan(
        self, step_text: str, table: Optional[List[TableRow]] = None
    ) -> CandidateAction:
        """
        Plan one action step.

        Args:
            step_text: Instruction text of the step (possibly rewritten by healing)
            table: Optional data table; rows are filled into the form first

        Returns:
            Exactly one candidate action

        Raises:
            ElementNotFoundError: If the locate query returned nothing
            IntentMismatchError: If no candidate supports the intended action
            CollaboratorError: If the LLM or the page automation failed
        """
        if table:
            filled = await fill_form_from_table(self.page, table)
            self.logger.info(f"Filled {filled} form field(s) from the data table")

        action_plan = await self.ask(PromptTemplates.action_plan(step_text), ActionPlan)
        query = action_plan.locate_query
        intent = action_plan.intended_action
        self.logger.debug(f"Action plan: query={query!r}, intent={intent.value}")

        candidates = await self._locate(query)
        if not candidates:
            raise ElementNotFoundError(query)

        if len(candidates) == 1 or intent == ActionIntent.UNKNOWN:
            return candidates[0]

        matching = filter_candidates_by_intent(candidates, intent)
        if not matching:
            raise IntentMismatchError(
                query, intent.value, [candidate.method for candidate in candidates]
            )

        self.logger.debug(
            f"{len(matching)} of {len(candidates)} candidates match intent "
            f"'{intent.value}'"
        )
        return matching[0]

    async def _locate(self, query: str) -> List[CandidateAction]:
        try:
            return list(await self.page.locate(query))
        except TestPilotError:
            raise
        except Exception as exc:
            raise CollaboratorError(
                f"Locating '{query}' failed: {exc}",
                collaborator="page",
                cause=exc,
            ) from exc
