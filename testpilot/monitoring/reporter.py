"""
Markdown test report generation.
"""

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Template

from testpilot.core.context import ExecutionContext
from testpilot.core.types import StepResult, StepStatus
from testpilot.monitoring.logger import get_logger

MARKDOWN_TEMPLATE = """# Test Report

{% if feature %}
**Feature**: {{ feature }}
**Scenario**: {{ scenario }}

{% endif %}
**Mode**: {{ mode }} | **Steps**: {{ total }} | **Passed**: {{ passed }} | **Failed**: {{ failed }}

{% for step in steps %}
## {{ step.icon }} {{ step.label }}
- **Status**: {{ step.status }}
- **Duration**: {{ step.duration_ms }}ms
{% if step.details %}
- **Details**:
```
{{ step.details }}
```
{% endif %}
{% if step.screenshot %}
- **Evidence**: ![Failure Screenshot]({{ step.screenshot }})
{% endif %}
{% if step.command_trace %}
- **Commands**:
```json
{{ step.command_trace }}
```
{% endif %}

{% endfor %}
"""

STATUS_ICONS = {
    StepStatus.PASS: "✅",
    StepStatus.FAIL: "❌",
    StepStatus.SKIPPED: "⏭️",
}


class MarkdownReporter:
    """Writes the results of a run as a Markdown file."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)
        self.logger = get_logger("testpilot.monitoring.reporter")

    def generate_report(self, context: ExecutionContext) -> Path:
        """
        Render the context's document and step results to report-<ms>.md.

        Args:
            context: Execution context of the finished (or aborted) run

        Returns:
            Path of the written report
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        report_path = self.output_dir / f"report-{int(time.time() * 1000)}.md"

        content = self.render(context)
        report_path.write_text(content, encoding="utf-8")

        self.logger.info(f"Generated Markdown report: {report_path}")
        return report_path

    def render(self, context: ExecutionContext) -> str:
        """Render the report text without writing it."""
        template = Template(MARKDOWN_TEMPLATE, trim_blocks=True, lstrip_blocks=True)
        return template.render(**self._template_data(context))

    def _template_data(self, context: ExecutionContext) -> Dict[str, Any]:
        document = context.gherkin_document
        results = context.step_results

        return {
            "feature": document.feature if document else None,
            "scenario": document.scenarios[0].title if document else None,
            "mode": context.mode.value,
            "total": len(results),
            "passed": sum(1 for r in results if r.status == StepStatus.PASS),
            "failed": sum(1 for r in results if r.status == StepStatus.FAIL),
            "steps": [self._step_data(result) for result in results],
        }

    def _step_data(self, result: StepResult) -> Dict[str, Any]:
        return {
            "icon": STATUS_ICONS[result.status],
            "label": result.step_label,
            "status": result.status.value,
            "duration_ms": result.duration_ms,
            "details": result.details,
            "screenshot": self._relative_path(result.screenshot_path),
            "command_trace": self._format_trace(result.command_trace),
        }

    def _relative_path(self, path: Optional[str]) -> Optional[str]:
        # Relative links keep the report portable with its screenshots
        if not path:
            return None
        return Path(os.path.relpath(path, self.output_dir)).as_posix()

    @staticmethod
    def _format_trace(trace: Optional[List[Dict[str, Any]]]) -> Optional[str]:
        if not trace:
            return None
        return json.dumps(trace, indent=2, ensure_ascii=False, default=str)
