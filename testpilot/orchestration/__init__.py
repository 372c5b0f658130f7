"""
Orchestration components for test runs.
"""

from testpilot.orchestration.orchestrator import TestOrchestrator

__all__ = ["TestOrchestrator"]
