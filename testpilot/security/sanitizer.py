"""
Redaction of credentials in logs and persisted command traces.

Log text is scrubbed with value patterns (bearer tokens, key=value secrets,
JWTs). Command traces are scrubbed by key name: any field whose name looks
like a credential has its value replaced before the trace is stored.
"""

import hashlib
import logging
import re
from copy import deepcopy
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Pattern

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

# Compared against key names lower-cased with separators removed,
# so "API Key", "api_key", "x-api-key" and "apiKey" all match "apikey".
SENSITIVE_KEY_NAMES: FrozenSet[str] = frozenset({
    "password",
    "passwd",
    "pwd",
    "passphrase",
    "secret",
    "token",
    "apikey",
    "authorization",
    "cookie",
    "session",
    "csrf",
    "xsrf",
    "credential",
    "privatekey",
})


class RedactionMethod(Enum):
    """Methods for redacting sensitive data."""
    MASK = auto()          # Replace with asterisks
    HASH = auto()          # Replace with hash
    PLACEHOLDER = auto()   # Replace with placeholder text


@dataclass
class SensitiveDataPattern:
    """Pattern for identifying sensitive data inside free text."""

    name: str
    pattern: Pattern[str]
    redaction_method: RedactionMethod = RedactionMethod.PLACEHOLDER
    placeholder: str = REDACTED


def normalize_key(key: str) -> str:
    """Lower-case a key and drop separators."""
    return re.sub(r"[^a-z0-9]", "", key.lower())


def is_sensitive_key(key: Any, sensitive_keys: Iterable[str] = SENSITIVE_KEY_NAMES) -> bool:
    """Return True when a field name looks like a credential."""
    if not isinstance(key, str):
        return False
    normalized = normalize_key(key)
    return any(name in normalized for name in sensitive_keys)


class DataSanitizer:
    """Sanitizer for log records and command traces."""

    def __init__(self, sensitive_keys: Optional[Iterable[str]] = None):
        self.sensitive_keys: FrozenSet[str] = frozenset(
            normalize_key(k) for k in (sensitive_keys or SENSITIVE_KEY_NAMES)
        )
        self.patterns: List[SensitiveDataPattern] = []
        self._setup_default_patterns()

    def _setup_default_patterns(self) -> None:
        """Set up default sensitive value patterns."""
        self.patterns.extend([
            SensitiveDataPattern(
                name="key_value_secret",
                pattern=re.compile(
                    r'((?:api[_-]?key|apikey|access[_-]?token|secret|password|passwd|pwd)\s*[:=]\s*)["\']?[^"\'\s,}]+["\']?',
                    re.IGNORECASE,
                ),
            ),
            SensitiveDataPattern(
                name="bearer_token",
                pattern=re.compile(r'Bearer\s+[A-Za-z0-9\-._~+/]+=*', re.IGNORECASE),
            ),
            SensitiveDataPattern(
                name="openai_key",
                pattern=re.compile(r'\bsk-[A-Za-z0-9_\-]{16,}\b'),
                redaction_method=RedactionMethod.MASK,
            ),
            SensitiveDataPattern(
                name="jwt_token",
                pattern=re.compile(r'eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+'),
                redaction_method=RedactionMethod.HASH,
            ),
        ])

    def sanitize_string(self, text: str) -> str:
        """Redact sensitive values found in free text."""
        if not text:
            return text

        result = text
        for pattern in self.patterns:
            result = pattern.pattern.sub(
                lambda match: self._replacement(match, pattern), result
            )
        return result

    def _replacement(self, match: re.Match, pattern: SensitiveDataPattern) -> str:
        matched_text = match.group()
        if pattern.redaction_method == RedactionMethod.MASK:
            return "*" * len(matched_text)
        if pattern.redaction_method == RedactionMethod.HASH:
            hash_val = hashlib.sha256(matched_text.encode()).hexdigest()[:8]
            return f"[HASH:{hash_val}]"
        # Keep a "key=" prefix when the pattern captured one
        prefix = match.group(1) if match.re.groups else ""
        return f"{prefix}{pattern.placeholder}"

    def redact(self, data: Any, max_depth: int = 10) -> Any:
        """
        Return a copy of data with credential-like fields replaced.

        Dictionaries are matched on key names (case-insensitive); lists and
        nested dictionaries are walked recursively.
        """
        if max_depth <= 0:
            logger.warning("Max recursion depth reached while redacting data")
            return REDACTED

        if isinstance(data, dict):
            redacted: Dict[Any, Any] = {}
            for key, value in data.items():
                if is_sensitive_key(key, self.sensitive_keys):
                    redacted[key] = REDACTED
                else:
                    redacted[key] = self.redact(value, max_depth - 1)
            return redacted
        if isinstance(data, (list, tuple)):
            return [self.redact(item, max_depth - 1) for item in data]
        return deepcopy(data)

    def redact_command_trace(
        self, trace: Optional[List[Dict[str, Any]]]
    ) -> Optional[List[Dict[str, Any]]]:
        """Redact every command record of a step's trace."""
        if trace is None:
            return None
        return [self.redact(command) for command in trace]

    def sanitize_log_record(self, record: logging.LogRecord) -> logging.LogRecord:
        """Sanitize a log record's message and arguments in place."""
        if hasattr(record, 'msg'):
            record.msg = self.sanitize_string(str(record.msg))

        if hasattr(record, 'args') and record.args:
            if isinstance(record.args, dict):
                record.args = self.redact(record.args)
            else:
                record.args = tuple(
                    self.sanitize_string(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return record


_default_sanitizer = DataSanitizer()


def sanitize_string(text: str) -> str:
    """Sanitize a string using default patterns."""
    return _default_sanitizer.sanitize_string(text)


def redact_command_trace(
    trace: Optional[List[Dict[str, Any]]]
) -> Optional[List[Dict[str, Any]]]:
    """Redact a command trace using the default key set."""
    return _default_sanitizer.redact_command_trace(trace)
