"""
Per-run execution state shared by the orchestrator and the engine.
"""

from collections import deque
from typing import Deque, List, Optional

from testpilot.core.types import (
    ExecutionMode,
    GherkinDocument,
    StepResult,
    StepStatus,
)
from testpilot.monitoring.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BUFFER_SIZE = 5
CONSOLE_LEVELS = {"error", "warning", "warn"}


class ExecutionContext:
    """
    Mutable state of one test run.

    Holds the scenario, its structured form once normalized, the step results
    in dispatch order and two bounded buffers of recent console and network
    diagnostics. The buffers drop their oldest entries when full and are only
    read by the self-healing controller.
    """

    def __init__(
        self,
        mode: ExecutionMode,
        scenario: str,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        self.mode = mode
        self.original_scenario = scenario
        self.gherkin_document: Optional[GherkinDocument] = None
        self.step_results: List[StepResult] = []
        self._console_messages: Deque[str] = deque(maxlen=buffer_size)
        self._network_errors: Deque[str] = deque(maxlen=buffer_size)

    def add_result(self, result: StepResult) -> None:
        """Append a step result."""
        self.step_results.append(result)

    def set_gherkin_document(self, document: GherkinDocument) -> None:
        """Store the normalized scenario."""
        self.gherkin_document = document

    def add_console_message(self, level: str, text: str) -> None:
        """Record a console line; only errors and warnings are kept."""
        normalized = level.lower()
        if normalized not in CONSOLE_LEVELS:
            return
        self._console_messages.append(f"[{normalized}] {text}")

    def add_network_error(self, description: str) -> None:
        """Record a failed request or error response."""
        self._network_errors.append(description)

    @property
    def console_messages(self) -> List[str]:
        return list(self._console_messages)

    @property
    def network_errors(self) -> List[str]:
        return list(self._network_errors)

    @property
    def has_failures(self) -> bool:
        return any(r.status == StepStatus.FAIL for r in self.step_results)

    def reset_for_new_scenario(self, new_scenario: str) -> None:
        """
        Prepare the context for another scenario in the same browser session.

        The run mode is kept; results, the structured scenario and the
        diagnostic buffers are cleared.
        """
        self.original_scenario = new_scenario
        self.gherkin_document = None
        self.step_results = []
        self._console_messages.clear()
        self._network_errors.clear()
        logger.debug("Execution context reset for new scenario")
