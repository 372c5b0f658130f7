"""
Instrumented page automation that captures executed browser commands.

The orchestrator records the capture of each step as the step's command
trace. Typed values are not stored, only their length.
"""

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel

from testpilot.browser.driver import PlaywrightPageAutomation
from testpilot.core.types import CandidateAction
from testpilot.monitoring.logger import get_logger

logger = get_logger(__name__)

# Methods whose first argument is text entered by the user
TEXT_ENTRY_METHODS = {"fill", "type", "press_sequentially"}


class InstrumentedPageAutomation(PlaywrightPageAutomation):
    """
    Page automation that records its commands between start and stop of a capture.
    """

    def __init__(self, *args, **kwargs):
        """Initialize the instrumented automation."""
        super().__init__(*args, **kwargs)
        self.captured_calls: List[Dict[str, Any]] = []
        self._capturing = False

    def start_capture(self) -> None:
        """Start capturing browser calls."""
        self._capturing = True
        self.captured_calls = []
        logger.debug("Started capturing browser calls")

    def stop_capture(self) -> List[Dict[str, Any]]:
        """Stop capturing and return captured calls."""
        self._capturing = False
        calls = self.captured_calls.copy()
        self.captured_calls = []
        logger.debug(f"Stopped capturing browser calls, captured {len(calls)} calls")
        return calls

    def _capture_call(self, method_name: str, parameters: Dict[str, Any], duration_ms: float) -> None:
        """Capture a browser method call."""
        if self._capturing:
            self.captured_calls.append({
                "method": method_name,
                "parameters": parameters,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "duration_ms": round(duration_ms, 1),
            })

    async def navigate(self, url: str, timeout_ms: int) -> None:
        start_time = time.time()
        await super().navigate(url, timeout_ms)
        duration_ms = (time.time() - start_time) * 1000
        self._capture_call("page.goto", {"url": url, "timeout_ms": timeout_ms}, duration_ms)

    async def execute(self, candidate: CandidateAction) -> None:
        start_time = time.time()
        await super().execute(candidate)
        duration_ms = (time.time() - start_time) * 1000

        parameters: Dict[str, Any] = {"selector": candidate.resolve_selector()}
        if candidate.method in TEXT_ENTRY_METHODS:
            parameters["text_length"] = len(candidate.arguments[0]) if candidate.arguments else 0
        else:
            parameters["arguments"] = list(candidate.arguments)
        self._capture_call(f"locator.{candidate.method}", parameters, duration_ms)

    async def act(self, instruction: str) -> None:
        # Sub-commands are captured by execute()
        start_time = time.time()
        await super().act(instruction)
        duration_ms = (time.time() - start_time) * 1000
        self._capture_call("act", {"instruction_length": len(instruction)}, duration_ms)

    async def extract(self, query: str, schema: Optional[Type[BaseModel]] = None) -> Any:
        start_time = time.time()
        result = await super().extract(query, schema)
        duration_ms = (time.time() - start_time) * 1000
        self._capture_call(
            "extract",
            {"query": query, "schema": schema.__name__ if schema else None},
            duration_ms,
        )
        return result

    async def screenshot(self, path: Path) -> None:
        start_time = time.time()
        await super().screenshot(path)
        duration_ms = (time.time() - start_time) * 1000
        self._capture_call("page.screenshot", {"path": str(path), "type": "png"}, duration_ms)
