"""
Test orchestrator: runs a normalized scenario step by step.
"""

import time
from pathlib import Path
from typing import Optional, Tuple

from testpilot.agents.scenario_normalizer import ScenarioNormalizerAgent
from testpilot.agents.test_agent import TestAgent
from testpilot.config.settings import Settings, get_settings
from testpilot.core.context import ExecutionContext
from testpilot.core.interfaces import PageAutomation, StructuredCompletion
from testpilot.core.types import ExecutionMode, Step, StepResult, StepStatus
from testpilot.error_handling.exceptions import StepCancelledError
from testpilot.monitoring.console import TestConsole
from testpilot.monitoring.logger import get_logger, log_performance_metric
from testpilot.monitoring.reporter import MarkdownReporter
from testpilot.security.sanitizer import DataSanitizer

CONFIRM_PLAN_MODES = {ExecutionMode.INTERACTIVE, ExecutionMode.INTERACTIVE_AUTO}


class TestOrchestrator:
    """
    Drives one run: normalization, step execution, summary and report.

    Background steps run first, then the steps of the first scenario. The
    first failing step aborts the run; the report is written either way.
    """

    __test__ = False

    def __init__(
        self,
        page: PageAutomation,
        context: ExecutionContext,
        console: TestConsole,
        fast_llm: StructuredCompletion,
        default_llm: StructuredCompletion,
        settings: Optional[Settings] = None,
        reporter: Optional[MarkdownReporter] = None,
    ) -> None:
        self.page = page
        self.context = context
        self.console = console
        self.settings = settings or get_settings()
        self.logger = get_logger("testpilot.orchestration.orchestrator")

        self.normalizer = ScenarioNormalizerAgent(default_llm)
        self.test_agent = TestAgent(page, context, fast_llm, default_llm, self.settings)
        self.reporter = reporter or MarkdownReporter(self.settings.results_dir)
        self.sanitizer = DataSanitizer()

    async def run(self) -> Optional[Path]:
        """
        Run the scenario held by the execution context.

        Returns:
            Path of the written report, or None if the user cancelled

        Raises:
            Exception: The error of the first failing step, after reporting
        """
        try:
            self.console.log("Normalizing scenario...")
            document = await self.normalizer.normalize(self.context.original_scenario)
            self.context.set_gherkin_document(document)
            self.console.show_document(document)

            if self.context.mode in CONFIRM_PLAN_MODES:
                if not self.console.confirm("Run the test with this plan?"):
                    self.console.log("Test run cancelled.")
                    return None

            for step in document.executable_steps:
                await self.execute_step(step)

        except Exception:
            self.console.summary(self.context.step_results)
            self._write_report()
            raise

        self.console.summary(self.context.step_results)
        return self._write_report()

    async def execute_step(self, step: Step) -> StepResult:
        """
        Execute one step and record its result.

        Raises:
            Exception: The step's error, after the result was recorded
        """
        label = step.label
        self.console.step_start(label)
        start_time = time.time()

        status = StepStatus.FAIL
        details: Optional[str] = None
        screenshot_path: Optional[str] = None
        error: Optional[Exception] = None

        self.page.start_capture()
        try:
            if self.context.mode == ExecutionMode.INTERACTIVE:
                if not self.console.confirm("Execute this step?"):
                    raise StepCancelledError(label)

            await self.test_agent.execute_step(step)
            status = StepStatus.PASS
        except Exception as exc:
            error = exc
            details = str(exc)
            self.logger.error(f"Step failed: {label}: {exc}")
            screenshot_path, screenshot_error = await self._capture_failure_screenshot()
            if screenshot_error:
                details += f"\nScreenshot capture also failed: {screenshot_error}"
        finally:
            trace = self.page.stop_capture()

        duration_ms = int((time.time() - start_time) * 1000)
        log_performance_metric("step_duration", duration_ms, context={"step": label})

        result = StepResult(
            step_label=label,
            status=status,
            duration_ms=duration_ms,
            details=details,
            screenshot_path=screenshot_path,
            command_trace=self.sanitizer.redact_command_trace(trace) if trace else None,
        )
        self.context.add_result(result)
        self.console.step_result(result)

        if error is not None:
            raise error
        return result

    async def _capture_failure_screenshot(self) -> Tuple[Optional[str], Optional[str]]:
        """Return (path, None) on success or (None, error message) on failure."""
        try:
            screenshot_dir = Path(self.settings.results_dir)
            screenshot_dir.mkdir(parents=True, exist_ok=True)
            path = screenshot_dir / f"failure-{int(time.time() * 1000)}.png"
            await self.page.screenshot(path)
        except Exception as exc:
            self.logger.warning(f"Failure screenshot could not be captured: {exc}")
            return None, str(exc)
        return str(path), None

    def _write_report(self) -> Optional[Path]:
        try:
            report_path = self.reporter.generate_report(self.context)
        except OSError as exc:
            self.logger.error(f"Could not write report: {exc}")
            return None
        self.console.log(f"Report written to {report_path}")
        return report_path
