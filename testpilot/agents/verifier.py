"""
Verification Engine: evaluates a single assertion step to a boolean.

Steps with a data table are matched row by row against data extracted from
the page. Other steps are turned into an assertion plan by the LLM, which is
either a text comparison or an element-state check.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

from pydantic import BaseModel, ConfigDict, Field, create_model

from testpilot.agents.base_agent import BaseAgent
from testpilot.config.agent_prompts import PromptTemplates
from testpilot.core.interfaces import PageAutomation, StructuredCompletion
from testpilot.core.types import (
    ElementCheck,
    ElementStateAssertion,
    Step,
    TableRow,
    TextAssertion,
    TextOperator,
    VerificationPlan,
)

# Checks that hold when the element is absent
ABSENCE_TOLERANT_CHECKS = {ElementCheck.NOT_EXISTS, ElementCheck.HIDDEN}


def normalize_extraction(result: Any) -> str:
    """
    Reduce an extraction result of any shape to one string.

    Priority: a bare string as is, then the ``extraction`` field, then the
    ``page_text`` field, else the empty string.
    """
    if isinstance(result, str):
        return result
    if result is None:
        return ""

    for field in ("extraction", "page_text"):
        if isinstance(result, Mapping):
            value = result.get(field)
        else:
            value = getattr(result, field, None)
        if value is not None:
            return str(value)

    return ""


def build_row_model(headers: Sequence[str]) -> Type[BaseModel]:
    """
    Build a row model with one string field per table header.

    Header labels are arbitrary text, so fields get positional names and the
    labels become aliases; dumps use ``by_alias=True`` to get labels back.
    Numeric cells are kept as strings; a missing column stays None.
    """
    fields: Dict[str, Any] = {
        f"col_{index}": (Optional[str], Field(None, alias=header))
        for index, header in enumerate(headers)
    }
    return create_model(
        "ExtractedRow",
        __config__=ConfigDict(populate_by_name=True, coerce_numbers_to_str=True),
        **fields,
    )


def build_table_model(headers: Sequence[str]) -> Type[BaseModel]:
    """Wrap the row model in ``{items: [row, ...]}``."""
    row_model = build_row_model(headers)
    return create_model(
        "ExtractedTable",
        items=(List[row_model], Field(default_factory=list)),
    )


def rows_from_extraction(result: Any) -> List[Dict[str, Any]]:
    """Return extracted rows as dictionaries keyed by header label."""
    if result is None:
        return []

    if isinstance(result, BaseModel):
        items = getattr(result, "items", None) or []
    elif isinstance(result, Mapping):
        items = result.get("items") or []
    else:
        return []

    rows = []
    for item in items:
        if isinstance(item, BaseModel):
            rows.append(item.model_dump(by_alias=True))
        elif isinstance(item, Mapping):
            rows.append(dict(item))
    return rows


def row_matches(expected: TableRow, actual: Mapping[str, Any]) -> bool:
    """True when every expected value is a substring of the actual value."""
    for key, value in expected.items():
        actual_value = actual.get(key)
        if actual_value is None:
            return False
        if str(value) not in str(actual_value):
            return False
    return True


def compare_text(actual: str, operator: TextOperator, expected: str) -> bool:
    """Apply a text operator; comparisons are case-sensitive."""
    if operator == TextOperator.CONTAINS:
        return expected in actual
    if operator == TextOperator.NOT_CONTAINS:
        return expected not in actual
    if operator == TextOperator.EQUALS:
        return actual == expected
    return False


class VerificationEngine(BaseAgent):
    """Decides whether an assertion step holds on the current page."""

    def __init__(self, page: PageAutomation, llm: StructuredCompletion) -> None:
        super().__init__("verifier", llm)
        self.page = page
        # Why the last verify() call returned False
        self.failure_reason: Optional[str] = None

    async def verify(self, step: Step) -> bool:
        """
        Evaluate an assertion step.

        Returns:
            True when the assertion holds. Probe failures are reported as
            False; LLM and extraction failures propagate.
        """
        self.failure_reason = None
        if step.table:
            return await self._verify_table(step.text, step.table)

        plan = await self.ask(PromptTemplates.verification_plan(step.text), VerificationPlan)
        assertion = plan.assertion
        if isinstance(assertion, TextAssertion):
            return await self._verify_text(assertion)
        return await self._verify_element_state(assertion)

    async def _verify_table(self, step_text: str, table: List[TableRow]) -> bool:
        headers = list(table[0].keys())
        self.logger.info(f"Verifying {len(table)} table row(s) with columns {headers}")

        schema = build_table_model(headers)
        result = await self.page.extract(
            PromptTemplates.table_extraction(step_text), schema
        )
        actual_rows = rows_from_extraction(result)

        if not actual_rows:
            return self._fail("no data extracted from the page")

        for expected in table:
            if not any(row_matches(expected, actual) for actual in actual_rows):
                return self._fail(
                    f"expected row {expected} not found "
                    f"in {len(actual_rows)} extracted row(s)"
                )

        self.logger.info("All table rows verified")
        return True

    async def _verify_text(self, assertion: TextAssertion) -> bool:
        result = await self.page.extract(assertion.extract_query)
        actual = normalize_extraction(result)
        if compare_text(actual, assertion.operator, assertion.expected):
            return True
        return self._fail(
            f"text assertion '{assertion.operator.value}' failed: "
            f"expected {assertion.expected!r}, got {actual[:200]!r}"
        )

    async def _verify_element_state(self, assertion: ElementStateAssertion) -> bool:
        check = assertion.check
        candidates = await self.page.locate(assertion.locate_query)

        if not candidates:
            if check in ABSENCE_TOLERANT_CHECKS:
                return True
            return self._fail(f'element not found: "{assertion.locate_query}"')

        if check == ElementCheck.EXISTS:
            return True
        if check == ElementCheck.NOT_EXISTS:
            return self._fail(f'element unexpectedly present: "{assertion.locate_query}"')

        selector = candidates[0].resolve_selector()
        if not selector:
            return self._fail("located element has neither selector nor xpath")

        try:
            if check == ElementCheck.VALUE_EQUALS:
                value = await self.page.state_probe(selector, "value")
                if self._value_equals(value, assertion.expected_value):
                    return True
                return self._fail(
                    f"value of {selector} is {value!r}, "
                    f"expected {assertion.expected_value!r}"
                )
            if await self.page.state_probe(selector, check.value):
                return True
            return self._fail(f"{selector} is not {check.value}")
        except Exception as exc:
            self.logger.warning(f"State probe '{check.value}' on {selector} failed: {exc}")
            self.failure_reason = f"state check '{check.value}' on {selector} errored: {exc}"
            return False

    def _fail(self, reason: str) -> bool:
        self.failure_reason = reason
        self.logger.error(f"Verification failed: {reason}")
        return False

    @staticmethod
    def _value_equals(value: Any, expected: Optional[str]) -> bool:
        actual = "" if value is None else str(value)
        return actual == (expected or "")
