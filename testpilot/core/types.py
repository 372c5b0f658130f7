"""
Core data models and types for the testpilot step-execution engine.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class StepKind(str, Enum):
    """Dispatcher state derived from a step keyword."""

    PRECONDITION = "precondition"
    ACTION = "action"
    VERIFICATION = "verification"
    UNKNOWN = "unknown"


class StepStatus(str, Enum):
    """Outcome of an executed step."""

    PASS = "pass"
    FAIL = "fail"
    SKIPPED = "skipped"


class ExecutionMode(str, Enum):
    """How the orchestrator interacts with the user during a run."""

    AUTONOMOUS = "autonomous"  # CI: no confirmation at all
    INTERACTIVE = "interactive"  # confirm the plan and every step
    INTERACTIVE_AUTO = "interactive:auto"  # confirm the plan only


class ActionIntent(str, Enum):
    """Interaction the LLM inferred from a step's text."""

    CLICK = "click"
    DOUBLE_CLICK = "double_click"
    FILL = "fill"
    PRESS = "press"
    SELECT = "select"
    HOVER = "hover"
    SCROLL = "scroll"
    DRAG = "drag"
    UNKNOWN = "unknown"


class TextOperator(str, Enum):
    """Comparison applied to extracted text."""

    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    EQUALS = "equals"


class ElementCheck(str, Enum):
    """Discrete element-state checks."""

    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    VISIBLE = "visible"
    HIDDEN = "hidden"
    ENABLED = "enabled"
    DISABLED = "disabled"
    CHECKED = "checked"
    UNCHECKED = "unchecked"
    VALUE_EQUALS = "value_equals"


TableRow = Dict[str, str]


class Step(BaseModel):
    """A single Gherkin step produced by the scenario normalizer."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    keyword: str = Field(..., description="Gherkin keyword (Given, When, Then)")
    text: str = Field(..., description="Step content without the keyword")
    table: Optional[List[TableRow]] = Field(
        None, description="Optional data table, one mapping per row"
    )

    @property
    def label(self) -> str:
        """Keyword and text joined, as shown in reports."""
        return f"{self.keyword} {self.text}"


class Scenario(BaseModel):
    """A titled, ordered list of steps."""

    model_config = ConfigDict(frozen=True)

    title: str
    steps: List[Step]


class GherkinDocument(BaseModel):
    """Structured scenario document returned by the normalizer."""

    model_config = ConfigDict(frozen=True)

    feature: str = Field(..., description="Feature under test")
    background: Optional[List[Step]] = Field(
        None, description="Steps run before the scenario"
    )
    scenarios: List[Scenario] = Field(..., min_length=1)

    @property
    def executable_steps(self) -> List[Step]:
        """Background steps followed by the steps of the first scenario."""
        return list(self.background or []) + list(self.scenarios[0].steps)


class CandidateAction(BaseModel):
    """
    A located element plus the interaction method to apply to it.

    The engine reads only ``method`` and the selector fields; everything else
    is passed through untouched to the page automation's ``execute``.
    """

    model_config = ConfigDict(extra="allow")

    method: str
    selector: Optional[str] = None
    xpath: Optional[str] = None
    arguments: List[str] = Field(default_factory=list)
    description: str = ""

    def resolve_selector(self) -> Optional[str]:
        """Prefer the explicit selector, fall back to an xpath selector."""
        if self.selector:
            return self.selector
        if self.xpath:
            if self.xpath.startswith("xpath="):
                return self.xpath
            return f"xpath={self.xpath}"
        return None


class ActionPlan(BaseModel):
    """LLM plan for an action step."""

    locate_query: str = Field(
        ..., description="Natural-language instruction that finds the target element"
    )
    intended_action: ActionIntent = Field(
        ActionIntent.UNKNOWN, description="Interaction the step asks for"
    )


class TextAssertion(BaseModel):
    """Compare extracted page text against an expected value."""

    kind: Literal["text"] = "text"
    extract_query: str = Field(..., description="What text to extract from the page")
    expected: str
    operator: TextOperator


class ElementStateAssertion(BaseModel):
    """Check the state of a located element."""

    kind: Literal["element_state"] = "element_state"
    locate_query: str = Field(..., description="Instruction that finds the element")
    check: ElementCheck
    expected_value: Optional[str] = Field(
        None, description="Expected value for value_equals checks"
    )


AssertionPlan = Annotated[
    Union[TextAssertion, ElementStateAssertion], Field(discriminator="kind")
]


class VerificationPlan(BaseModel):
    """LLM result shape wrapping exactly one assertion variant."""

    assertion: AssertionPlan


class HealingPlan(BaseModel):
    """LLM diagnosis of a planning failure."""

    cause_analysis: str = Field(..., description="Short root-cause analysis")
    alternative_instruction: str = Field(
        ..., description="Rewritten instruction to try next"
    )


class ExtractionResult(BaseModel):
    """Default extraction shape when no schema is requested."""

    extraction: str = ""


class HealingAttempt(BaseModel):
    """One failed planning attempt seen by the self-healing controller."""

    attempt_number: int
    instruction: str
    error: str
    cause_analysis: Optional[str] = None
    alternative_instruction: Optional[str] = None


class StepResult(BaseModel):
    """Result of a single executed step."""

    model_config = ConfigDict(frozen=True)

    step_label: str
    status: StepStatus
    duration_ms: int = Field(..., ge=0)
    details: Optional[str] = None
    screenshot_path: Optional[str] = None
    command_trace: Optional[List[Dict[str, Any]]] = None
