"""
Security utilities: redaction of credentials in logs and command traces.
"""

from .sanitizer import (
    REDACTED,
    SENSITIVE_KEY_NAMES,
    DataSanitizer,
    RedactionMethod,
    SensitiveDataPattern,
    is_sensitive_key,
    redact_command_trace,
    sanitize_string,
)

__all__ = [
    "REDACTED",
    "SENSITIVE_KEY_NAMES",
    "DataSanitizer",
    "RedactionMethod",
    "SensitiveDataPattern",
    "is_sensitive_key",
    "redact_command_trace",
    "sanitize_string",
]
