"""
Helpers shared by the LLM clients for schema-conforming answers.
"""

import json
from typing import Any, Dict, Type

from pydantic import ValidationError

from testpilot.config.agent_prompts import STRUCTURED_OUTPUT_SYSTEM_PROMPT
from testpilot.core.interfaces import ModelT
from testpilot.error_handling.exceptions import CollaboratorError


def build_system_prompt(response_schema: Dict[str, Any]) -> str:
    """System prompt that pins the answer to a JSON schema."""
    return (
        f"{STRUCTURED_OUTPUT_SYSTEM_PROMPT}\n"
        f"Schema: {json.dumps(response_schema, indent=2)}"
    )


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json fence some models add anyway."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def parse_structured_content(
    content: Any, result_model: Type[ModelT], collaborator: str
) -> ModelT:
    """
    Validate raw model output against a pydantic model.

    Args:
        content: Parsed JSON object or raw text returned by the model
        result_model: Model the answer must conform to
        collaborator: Client name used in error reports

    Returns:
        Validated result_model instance

    Raises:
        CollaboratorError: If the content is not valid JSON or does not match
    """
    if isinstance(content, str):
        try:
            content = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as exc:
            raise CollaboratorError(
                f"{collaborator} returned invalid JSON: {exc}",
                collaborator=collaborator,
                cause=exc,
            ) from exc

    try:
        return result_model.model_validate(content)
    except ValidationError as exc:
        raise CollaboratorError(
            f"{collaborator} response does not match "
            f"{result_model.__name__}: {exc.error_count()} validation error(s)",
            collaborator=collaborator,
            details={"errors": exc.errors(include_url=False)},
            cause=exc,
        ) from exc
