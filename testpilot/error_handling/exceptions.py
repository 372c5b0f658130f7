"""
Exception hierarchy for testpilot step execution.

Errors are split into retryable ones, which the self-healing controller turns
into another planning attempt, and non-retryable ones, which end the run.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class TestPilotError(Exception):
    """Base exception for all testpilot errors."""

    __test__ = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class RetryableError(TestPilotError):
    """Planning failure that a rewritten instruction may fix."""
    pass


class NonRetryableError(TestPilotError):
    """Failure that ends the run without another attempt."""
    pass


class ElementNotFoundError(RetryableError):
    """A locate query returned no candidates."""

    def __init__(self, query: str, **kwargs):
        super().__init__(f'Element not found: "{query}"', **kwargs)
        self.query = query
        self.details.update({"query": query})


class IntentMismatchError(RetryableError):
    """Candidates exist but none supports the inferred interaction."""

    def __init__(
        self,
        query: str,
        intended_action: str,
        methods: List[str],
        **kwargs
    ):
        super().__init__(
            f'No candidate for "{query}" supports the intended action '
            f"'{intended_action}' (observed methods: {', '.join(methods) or 'none'})",
            **kwargs
        )
        self.query = query
        self.intended_action = intended_action
        self.methods = methods
        self.details.update({
            "query": query,
            "intended_action": intended_action,
            "methods": methods
        })


class CollaboratorError(RetryableError):
    """The LLM or the page automation failed (timeout, quota, bad response)."""

    def __init__(self, message: str, collaborator: str, **kwargs):
        super().__init__(message, **kwargs)
        self.collaborator = collaborator
        self.details.update({"collaborator": collaborator})


class BrowserError(RetryableError):
    """The page automation could not carry out a request."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        selector: Optional[str] = None,
        action: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.url = url
        self.selector = selector
        self.action = action
        self.details.update({
            "url": url,
            "selector": selector,
            "action": action
        })


class PreconditionVerificationError(NonRetryableError):
    """Navigation for a precondition did not land on the expected page."""

    def __init__(self, expected_url: str, actual_url: str, **kwargs):
        super().__init__(
            "Precondition verification failed: could not navigate to the URL.\n"
            f"  Expected (prefix): {expected_url}\n"
            f"  Actual: {actual_url}",
            **kwargs
        )
        self.expected_url = expected_url
        self.actual_url = actual_url
        self.details.update({
            "expected_url": expected_url,
            "actual_url": actual_url
        })


class VerificationFailedError(NonRetryableError):
    """An assertion step evaluated to false."""

    def __init__(self, step_text: str, reason: Optional[str] = None, **kwargs):
        message = f'Verification step "{step_text}" failed.'
        if reason:
            message += f" Reason: {reason}"
        super().__init__(message, **kwargs)
        self.step_text = step_text
        self.reason = reason
        self.details.update({"step_text": step_text, "reason": reason})


class MalformedTableRowError(NonRetryableError):
    """A data-table row lacks two populated columns."""

    def __init__(self, row: Dict[str, Any], reason: str, **kwargs):
        super().__init__(f"Malformed table row {row!r}: {reason}", **kwargs)
        self.row = row
        self.reason = reason


class SelfHealingExhaustedError(NonRetryableError):
    """Every planning attempt, healed ones included, failed."""

    def __init__(
        self,
        step_text: str,
        attempts: int,
        last_error: Optional[Exception] = None,
        **kwargs
    ):
        last_message = str(last_error) if last_error else "unknown error"
        super().__init__(
            f'Planning for step "{step_text}" failed after {attempts} attempts '
            f"including self-healing. Last failure: {last_message}",
            cause=last_error,
            **kwargs
        )
        self.step_text = step_text
        self.attempts = attempts
        self.last_error = last_error
        self.details.update({
            "step_text": step_text,
            "attempts": attempts,
            "last_error": last_message
        })


class StepCancelledError(NonRetryableError):
    """The user declined to run a step in interactive mode."""

    def __init__(self, step_label: str, **kwargs):
        super().__init__(f'Step "{step_label}" was cancelled by the user.', **kwargs)
        self.step_label = step_label
        self.details.update({"step_label": step_label})
