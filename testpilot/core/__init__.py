"""
Core module exports.
"""

from testpilot.core.context import ExecutionContext
from testpilot.core.interfaces import (
    PageAutomation,
    ScenarioNormalizer,
    StructuredCompletion,
)
from testpilot.core.types import (
    ActionIntent,
    ActionPlan,
    CandidateAction,
    ElementCheck,
    ElementStateAssertion,
    ExecutionMode,
    GherkinDocument,
    HealingPlan,
    Scenario,
    Step,
    StepKind,
    StepResult,
    StepStatus,
    TextAssertion,
    TextOperator,
    VerificationPlan,
)

__all__ = [
    # Interfaces
    "PageAutomation",
    "StructuredCompletion",
    "ScenarioNormalizer",
    # State
    "ExecutionContext",
    # Types
    "ActionIntent",
    "ActionPlan",
    "CandidateAction",
    "ElementCheck",
    "ElementStateAssertion",
    "ExecutionMode",
    "GherkinDocument",
    "HealingPlan",
    "Scenario",
    "Step",
    "StepKind",
    "StepResult",
    "StepStatus",
    "TextAssertion",
    "TextOperator",
    "VerificationPlan",
]
