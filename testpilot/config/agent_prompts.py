"""
System prompts and templates for the LLM roles used during a run.
"""

from typing import List

STRUCTURED_OUTPUT_SYSTEM_PROMPT = """You are a precise assistant inside an automated browser testing tool.
Always answer with a single JSON object that matches the provided JSON schema.
Do not add commentary, markdown fences or fields that are not in the schema."""

SCENARIO_NORMALIZER_PROMPT = """You are a QA engineer who converts free-text test scenarios into structured Gherkin.

Rules:
- Produce one feature with one scenario. Put shared setup steps in "background" only when the text clearly describes them as shared.
- Use ONLY the keywords "Given", "When" and "Then".
- Never emit "And" or "But": resolve each of them to "When" (an interaction) or "Then" (a check) based on its meaning.
- "Given" is for preconditions. When the scenario names a URL to open, write it literally in a "Given" step (e.g. Given the user opens https://example.com).
- One interaction per "When" step. One observable check per "Then" step.
- When a step enters several form values or checks several rows of data, attach a data table: a list of objects, one per row, with the same keys in every row.
  For form input use two columns (field name first, value second).
- Keep the language of the original scenario.

Scenario:
---
{scenario}
---"""

ACTION_PLANNER_PROMPT = """You translate one Gherkin action step into an element-locating instruction for a browser automation tool.

Rules:
- Identify the element the step operates on (e.g. "login button", "search field").
- "locate_query" is a short, clear natural-language instruction that finds that element and mentions the interaction, e.g. "Find the login button to click".
- "intended_action" is one of: click, double_click, fill, press, select, hover, scroll, drag, unknown.
  Use "unknown" only when the step does not say which interaction to perform.

Example:
Step: 'The user clicks the "Login" button'
Answer: {{"locate_query": "Find the Login button to click", "intended_action": "click"}}

Step to translate:
---
{step_text}
---"""

VERIFIER_PROMPT = """You translate one Gherkin assertion step into a verification plan for a browser automation tool.

Choose exactly one assertion kind:
- "text": the step checks that some text is (or is not) shown. Provide "extract_query" (what text to extract from the page),
  "expected" (the expected string) and "operator" (contains, not_contains or equals).
- "element_state": the step checks an element's presence or state. Provide "locate_query" (how to find the element),
  "check" (exists, not_exists, visible, hidden, enabled, disabled, checked, unchecked, value_equals)
  and "expected_value" for value_equals.

Examples:
Step: '"Welcome" is shown'
Answer: {{"assertion": {{"kind": "text", "extract_query": "Extract all text on the page", "expected": "Welcome", "operator": "contains"}}}}

Step: 'The "Subscribe" checkbox is checked'
Answer: {{"assertion": {{"kind": "element_state", "locate_query": "Find the Subscribe checkbox", "check": "checked"}}}}

Step to translate:
---
{step_text}
---"""

SELF_HEALING_PROMPT = """You are debugging a failed step of an automated browser test.
Analyze the error and propose a more robust instruction that still achieves the original intent.

# Original step
"{failed_step}"

# Instruction that failed
"{current_instruction}"

# Error
```
{error_type}: {error_message}
```

# Page structure at the time of the failure
```
{page_snapshot}
```

# Recent console errors and warnings
{console_messages}

# Recent network errors
{network_errors}

Hints:
- "Element not found" or timeouts usually mean the description does not match the page, the page is still loading, or the element is off-screen.
- Be more specific: use visible labels, alternative texts or the element's position in a named region.

Answer with "cause_analysis" and "alternative_instruction"."""

LOCATE_ELEMENTS_PROMPT = """You locate elements for a browser automation tool.

Instruction: "{query}"

Interactive elements on the page (JSON, one object per element):
{elements}

Return the elements that match the instruction, best match first, as "candidates".
For each candidate give:
- "element_index": the "index" of the element in the list above
- "method": the Playwright method to apply (click, dblclick, fill, type, press, selectOption, hover, check, uncheck, scrollIntoView, dragAndDrop)
- "arguments": method arguments as strings (text to fill, key to press, option to select, drop target selector); empty list otherwise
- "description": short human description of the element
Return an empty list when nothing matches."""

EXTRACT_PROMPT = """You extract information from a web page for an automated test.

Instruction: "{query}"

Visible page text:
---
{page_text}
---

Answer strictly following the JSON schema. Copy text exactly as it appears on the page."""


class PromptTemplates:
    """Reusable prompt templates for agents."""

    @staticmethod
    def scenario_normalization(scenario: str) -> str:
        return SCENARIO_NORMALIZER_PROMPT.format(scenario=scenario.strip())

    @staticmethod
    def action_plan(step_text: str) -> str:
        return ACTION_PLANNER_PROMPT.format(step_text=step_text)

    @staticmethod
    def verification_plan(step_text: str) -> str:
        return VERIFIER_PROMPT.format(step_text=step_text)

    @staticmethod
    def self_healing(
        failed_step: str,
        current_instruction: str,
        error: Exception,
        page_snapshot: str,
        console_messages: List[str],
        network_errors: List[str],
    ) -> str:
        """Template for diagnosing a planning failure."""
        return SELF_HEALING_PROMPT.format(
            failed_step=failed_step,
            current_instruction=current_instruction,
            error_type=type(error).__name__,
            error_message=str(error),
            page_snapshot=page_snapshot or "(unavailable)",
            console_messages=_bullet_list(console_messages),
            network_errors=_bullet_list(network_errors),
        )

    @staticmethod
    def locate_elements(query: str, elements_json: str) -> str:
        return LOCATE_ELEMENTS_PROMPT.format(query=query, elements=elements_json)

    @staticmethod
    def extract(query: str, page_text: str) -> str:
        return EXTRACT_PROMPT.format(query=query, page_text=page_text)

    @staticmethod
    def table_extraction(step_text: str) -> str:
        """Instruction used to pull a data table matching a step."""
        return (
            f"Extract the data described by \"{step_text}\" as a list of rows "
            "in \"items\", using exactly the given column names."
        )

    @staticmethod
    def form_fill(field_name: str, value: str) -> str:
        """Instruction that fills a single form field."""
        return f"Fill the '{field_name}' field with \"{value}\""


def _bullet_list(lines: List[str]) -> str:
    if not lines:
        return "(none)"
    return "\n".join(f"- {line}" for line in lines)
