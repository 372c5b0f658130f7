"""
testpilot - LLM-driven browser test runner.
Main entry point for the application.
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

from testpilot import __version__
from testpilot.browser.instrumented_driver import InstrumentedPageAutomation
from testpilot.config.settings import get_settings
from testpilot.core.context import ExecutionContext
from testpilot.core.types import ExecutionMode
from testpilot.models.provider import create_llm_client
from testpilot.monitoring.console import TestConsole
from testpilot.monitoring.logger import get_logger, setup_logging
from testpilot.orchestration.orchestrator import TestOrchestrator

console = Console()
logger = get_logger("testpilot.main")


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="testpilot",
        description=f"testpilot - LLM-driven browser test runner v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a scenario file autonomously (CI)
  testpilot scenarios/login.txt --headless

  # Type the scenario, confirm the plan and every step
  testpilot --interactive

  # Confirm the plan once, then run without further prompts
  testpilot --interactive-auto scenarios/login.txt
        """,
    )

    parser.add_argument(
        "scenario_file",
        nargs="?",
        type=Path,
        help="Path to a free-text scenario file",
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--interactive",
        action="store_true",
        help="Confirm the plan and every step before it runs",
    )
    mode_group.add_argument(
        "--interactive-auto",
        action="store_true",
        help="Confirm the plan once, then run autonomously",
    )

    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run browser in headless mode (implied when CI is set)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: from settings)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        help="Log format (default: from settings)",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information",
    )

    return parser


def resolve_mode(parsed_args: argparse.Namespace) -> ExecutionMode:
    """Map command line flags to an execution mode."""
    if parsed_args.interactive:
        return ExecutionMode.INTERACTIVE
    if parsed_args.interactive_auto:
        return ExecutionMode.INTERACTIVE_AUTO
    return ExecutionMode.AUTONOMOUS


def read_scenario_file(file_path: Path) -> Optional[str]:
    """Read scenario text, or print an error and return None."""
    if not file_path.exists():
        console.print(f"[red]Error: File not found: {file_path}[/red]")
        return None

    try:
        text = file_path.read_text(encoding="utf-8").strip()
    except OSError as e:
        console.print(f"[red]Error reading file: {e}[/red]")
        return None

    if not text:
        console.print(f"[red]Error: Scenario file is empty: {file_path}[/red]")
        return None
    return text


def show_version() -> int:
    """Show version information."""
    console.print("\n[bold cyan]testpilot - LLM-driven browser test runner[/bold cyan]")
    console.print(f"Version: [green]{__version__}[/green]")
    return 0


async def async_main(args: Optional[list[str]] = None) -> int:
    """Async main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.version:
        return show_version()

    overrides: Dict[str, Any] = {}
    if parsed_args.log_level:
        overrides["log_level"] = parsed_args.log_level
    if parsed_args.log_format:
        overrides["log_format"] = parsed_args.log_format
    if parsed_args.headless or os.environ.get("CI"):
        overrides["browser_headless"] = True
    # The cached instance is shared; CLI flags only apply to this run
    settings = get_settings().model_copy(update=overrides)

    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
    )

    mode = resolve_mode(parsed_args)
    test_console = TestConsole(console)
    test_console.log("[bold cyan]Starting testpilot...[/bold cyan]")

    if parsed_args.scenario_file:
        scenario_text = read_scenario_file(parsed_args.scenario_file)
        if scenario_text is None:
            return 1
    elif mode == ExecutionMode.AUTONOMOUS:
        test_console.error(
            "Error: autonomous mode needs a scenario file, "
            "e.g. testpilot scenarios/login.txt"
        )
        return 1
    else:
        scenario_text = test_console.ask("Describe the test scenario in natural language")

    try:
        fast_llm = create_llm_client("fast", settings)
        default_llm = create_llm_client("default", settings)
    except ValueError as e:
        test_console.error(f"Configuration error: {e}")
        return 1

    settings.create_directories()
    context = ExecutionContext(
        mode, scenario_text, buffer_size=settings.diagnostic_buffer_size
    )
    page = InstrumentedPageAutomation(fast_llm, settings=settings, context=context)

    try:
        await page.start()
        orchestrator = TestOrchestrator(
            page, context, test_console, fast_llm, default_llm, settings=settings
        )
        await orchestrator.run()
    except Exception as e:
        logger.debug("Run aborted", exc_info=True)
        test_console.error(f"\nFatal error: {e}")
        return 1
    finally:
        test_console.log("\nClosing session.")
        await page.stop()

    return 1 if context.has_failures else 0


def main(args: Optional[list[str]] = None) -> int:
    """
    Main entry point for testpilot.

    Args:
        args: Command line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130
    except Exception as e:
        console.print(f"[red]Fatal error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
