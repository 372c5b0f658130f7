"""
Tests for the exception hierarchy.
"""

import pytest

from testpilot.error_handling.exceptions import (
    BrowserError,
    CollaboratorError,
    ElementNotFoundError,
    IntentMismatchError,
    MalformedTableRowError,
    NonRetryableError,
    PreconditionVerificationError,
    RetryableError,
    SelfHealingExhaustedError,
    StepCancelledError,
    TestPilotError,
    VerificationFailedError,
)


@pytest.mark.parametrize("error,base", [
    (ElementNotFoundError("Find the button"), RetryableError),
    (IntentMismatchError("Find the list", "select", ["click"]), RetryableError),
    (CollaboratorError("timeout", collaborator="llm"), RetryableError),
    (BrowserError("Target closed"), RetryableError),
    (PreconditionVerificationError("https://a", "about:blank"), NonRetryableError),
    (VerificationFailedError("x"), NonRetryableError),
    (MalformedTableRowError({"a": "1"}, "fewer than two columns"), NonRetryableError),
    (SelfHealingExhaustedError("x", 3), NonRetryableError),
    (StepCancelledError("When x"), NonRetryableError),
])
def test_hierarchy(error, base):
    assert isinstance(error, base)
    assert isinstance(error, TestPilotError)


def test_precondition_message_names_both_urls():
    error = PreconditionVerificationError("https://example.com/login", "about:blank")

    assert "Expected (prefix): https://example.com/login" in str(error)
    assert "Actual: about:blank" in str(error)
    assert error.details == {
        "expected_url": "https://example.com/login",
        "actual_url": "about:blank",
    }


def test_intent_mismatch_lists_observed_methods():
    error = IntentMismatchError("Find the list", "select", ["click", "hover"])

    assert "'select'" in str(error)
    assert "click, hover" in str(error)


def test_verification_failure_reason():
    error = VerificationFailedError("the cart shows", reason="expected row {'Price': '1200'} not found")

    assert str(error) == (
        'Verification step "the cart shows" failed. '
        "Reason: expected row {'Price': '1200'} not found"
    )
    assert error.details["reason"] == error.reason
    assert str(VerificationFailedError("x")) == 'Verification step "x" failed.'


def test_exhausted_without_last_error():
    error = SelfHealingExhaustedError("the user clicks Login", 1)

    assert "unknown error" in str(error)
    assert error.cause is None


def test_to_dict():
    cause = TimeoutError("read timed out")
    error = CollaboratorError("LLM call failed", collaborator="llm", cause=cause)

    data = error.to_dict()

    assert data["error_type"] == "CollaboratorError"
    assert data["error_code"] == "CollaboratorError"
    assert data["details"] == {"collaborator": "llm"}
    assert data["cause"] == "read timed out"
    assert data["timestamp"]
