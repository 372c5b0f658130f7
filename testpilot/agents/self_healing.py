"""
Self-Healing Controller: bounded LLM-assisted re-planning.

A planning function is tried with the original step text. Each failure is
diagnosed by the LLM, which proposes a rewritten instruction for the next
attempt, until the healing budget runs out.
"""

from typing import Awaitable, Callable, List, Optional, TypeVar

from testpilot.agents.base_agent import BaseAgent
from testpilot.config.agent_prompts import PromptTemplates
from testpilot.core.context import ExecutionContext
from testpilot.core.interfaces import PageAutomation, StructuredCompletion
from testpilot.core.types import HealingAttempt, HealingPlan
from testpilot.error_handling.exceptions import SelfHealingExhaustedError

ResultT = TypeVar("ResultT")
Planner = Callable[[str], Awaitable[ResultT]]

DEFAULT_MAX_HEALING_ATTEMPTS = 2
DEFAULT_SNAPSHOT_CHAR_LIMIT = 2000


class SelfHealingController(BaseAgent):
    """
    Wraps a planner in an explicit retry loop.

    ``attempts``, ``healing_calls`` and ``last_error`` describe the most
    recent ``run`` and are kept for inspection.
    """

    def __init__(
        self,
        page: PageAutomation,
        llm: StructuredCompletion,
        context: ExecutionContext,
        max_healing_attempts: int = DEFAULT_MAX_HEALING_ATTEMPTS,
        snapshot_char_limit: int = DEFAULT_SNAPSHOT_CHAR_LIMIT,
    ) -> None:
        super().__init__("self_healing", llm)
        self.page = page
        self.context = context
        self.max_healing_attempts = max_healing_attempts
        self.snapshot_char_limit = snapshot_char_limit

        self.attempts: List[HealingAttempt] = []
        self.healing_calls = 0
        self.last_error: Optional[Exception] = None

    @property
    def max_attempts(self) -> int:
        return self.max_healing_attempts + 1

    async def run(self, original_text: str, planner: Planner) -> ResultT:
        """
        Run planner until it succeeds or the budget is spent.

        Args:
            original_text: Step text used for the first attempt
            planner: Async function planning from an instruction text

        Returns:
            The planner's first successful result

        Raises:
            SelfHealingExhaustedError: If every attempt failed
        """
        self.attempts = []
        self.healing_calls = 0
        self.last_error = None
        current_text = original_text

        for attempt_number in range(1, self.max_attempts + 1):
            try:
                result = await planner(current_text)
            except Exception as exc:
                self.last_error = exc
                attempt = HealingAttempt(
                    attempt_number=attempt_number,
                    instruction=current_text,
                    error=str(exc),
                )
                self.attempts.append(attempt)

                if attempt_number >= self.max_attempts:
                    break

                self.logger.warning(
                    f"Planning failed, attempting self-healing "
                    f"({attempt_number}/{self.max_healing_attempts}): {exc}",
                    extra={"attempt": attempt_number, "instruction": current_text},
                )
                current_text = await self._heal(original_text, current_text, exc, attempt)
                continue

            if attempt_number > 1:
                self.logger.info(
                    f"Self-healing succeeded on attempt {attempt_number} "
                    f"with instruction: {current_text!r}",
                    extra={"attempt": attempt_number, "instruction": current_text},
                )
            return result

        raise SelfHealingExhaustedError(
            original_text, len(self.attempts), last_error=self.last_error
        )

    async def _heal(
        self,
        original_text: str,
        current_text: str,
        error: Exception,
        attempt: HealingAttempt,
    ) -> str:
        """Ask the LLM for an alternative instruction; keep the current one on failure."""
        try:
            snapshot = await self._diagnostic_snapshot()
            prompt = PromptTemplates.self_healing(
                failed_step=original_text,
                current_instruction=current_text,
                error=error,
                page_snapshot=snapshot,
                console_messages=self.context.console_messages,
                network_errors=self.context.network_errors,
            )
            self.healing_calls += 1
            healing_plan = await self.ask(prompt, HealingPlan)
        except Exception as exc:
            self.logger.error(f"Self-healing diagnosis failed: {exc}")
            return current_text

        attempt.cause_analysis = healing_plan.cause_analysis
        attempt.alternative_instruction = healing_plan.alternative_instruction
        self.logger.info(f"Healing cause analysis: {healing_plan.cause_analysis}")
        self.logger.info(
            f"Retrying with instruction: {healing_plan.alternative_instruction!r}",
            extra={
                "attempt": attempt.attempt_number + 1,
                "instruction": healing_plan.alternative_instruction,
            },
        )
        return healing_plan.alternative_instruction

    async def _diagnostic_snapshot(self) -> str:
        try:
            snapshot = await self.page.capture_diagnostic_snapshot()
        except Exception as exc:
            self.logger.warning(f"Could not capture diagnostic snapshot: {exc}")
            return ""
        return (snapshot or "")[: self.snapshot_char_limit]
