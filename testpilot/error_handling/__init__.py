"""
Error taxonomy for testpilot.
"""

from .exceptions import (
    TestPilotError,
    RetryableError,
    NonRetryableError,
    ElementNotFoundError,
    IntentMismatchError,
    CollaboratorError,
    BrowserError,
    PreconditionVerificationError,
    VerificationFailedError,
    MalformedTableRowError,
    SelfHealingExhaustedError,
    StepCancelledError,
)

__all__ = [
    "TestPilotError",
    "RetryableError",
    "NonRetryableError",
    "ElementNotFoundError",
    "IntentMismatchError",
    "CollaboratorError",
    "BrowserError",
    "PreconditionVerificationError",
    "VerificationFailedError",
    "MalformedTableRowError",
    "SelfHealingExhaustedError",
    "StepCancelledError",
]
