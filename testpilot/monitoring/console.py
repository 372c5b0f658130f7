"""
Rich console output and prompts for test runs.
"""

from typing import List, Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from testpilot.core.types import GherkinDocument, StepResult, StepStatus


class TestConsole:
    """User-facing output: step progress, summary and confirmations."""

    __test__ = False

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def log(self, message: str) -> None:
        self.console.print(message)

    def error(self, message: str) -> None:
        self.console.print(f"[red]{message}[/red]")

    def show_document(self, document: GherkinDocument) -> None:
        """Print the normalized scenario."""
        self.console.print(f"\n[bold]Feature:[/bold] {document.feature}")
        if document.background:
            self.console.print("[bold]Background:[/bold]")
            for step in document.background:
                self.console.print(f"  {step.label}")
        self.console.print(f"[bold]Scenario:[/bold] {document.scenarios[0].title}")
        for step in document.scenarios[0].steps:
            self.console.print(f"  {step.label}")
            for row in step.table or []:
                self.console.print(f"    [dim]| {' | '.join(row.values())} |[/dim]")

    def step_start(self, label: str) -> None:
        self.console.print(f"\n[yellow]▶ Running:[/yellow] {label}")

    def step_result(self, result: StepResult) -> None:
        if result.status == StepStatus.PASS:
            self.console.print(f"[green]✓ Passed ({result.duration_ms}ms)[/green]")
            return

        self.console.print(f"[red]✗ Failed ({result.duration_ms}ms)[/red]")
        if result.details:
            self.console.print(f"[red]  Details: {result.details}[/red]")

    def summary(self, results: List[StepResult]) -> None:
        """Print a results table with totals."""
        table = Table(title="Test Report")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Step")
        table.add_column("Status")
        table.add_column("Duration", justify="right")

        for index, result in enumerate(results, start=1):
            style = "green" if result.status == StepStatus.PASS else "red"
            table.add_row(
                str(index),
                result.step_label,
                f"[{style}]{result.status.value}[/{style}]",
                f"{result.duration_ms}ms",
            )

        self.console.print()
        self.console.print(table)

        passed = sum(1 for r in results if r.status == StepStatus.PASS)
        failed = sum(1 for r in results if r.status == StepStatus.FAIL)
        self.console.print(f"Total: {len(results)}, Passed: {passed}, Failed: {failed}")

    def ask(self, question: str) -> str:
        """Ask until a non-empty answer is given."""
        while True:
            answer = Prompt.ask(f"[cyan]{question}[/cyan]", console=self.console).strip()
            if answer:
                return answer
            self.console.print("[yellow]Input is empty, please try again.[/yellow]")

    def confirm(self, question: str) -> bool:
        return Confirm.ask(f"[cyan]{question}[/cyan]", console=self.console)
