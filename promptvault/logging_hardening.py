"""Logging Hardening and Redaction.

This module provides filters to prevent credential material (encrypted
secrets and raw provider API keys) from appearing in application logs.
"""
import logging
import re

# salt:iv:tag:ciphertext as produced by the credential cipher
ENCRYPTED_SECRET_PATTERN = re.compile(
    r"\b[0-9a-fA-F]{128}:[0-9a-fA-F]{32}:[0-9a-fA-F]{32}:[0-9a-fA-F]*"
)

SECRET_PATTERNS = [
    (ENCRYPTED_SECRET_PATTERN, "[REDACTED_ENCRYPTED]"),
    # OpenAI / Anthropic / OpenRouter / xAI style keys
    (re.compile(r"\b(?:sk|xai)-[A-Za-z0-9_-]{8,}"), "[REDACTED_KEY]"),
    # Google API keys
    (re.compile(r"\bAIza[0-9A-Za-z_-]{20,}"), "[REDACTED_KEY]"),
    (re.compile(r'("(?:api_?[kK]ey|encrypted_key)":\s*")[^"]*(")'), r"\1[REDACTED]\2"),
    (re.compile(r"((?:api_key|encrypted_key)=)\S+"), r"\1[REDACTED]"),
]


def redact_string(text: str) -> str:
    """Redact credential-like patterns from a string."""
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretRedactionFilter(logging.Filter):
    """Filter that redacts secret-like patterns from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_string(record.msg)

        # Also redact arguments if they are strings
        if isinstance(record.args, tuple) and record.args:
            record.args = tuple(
                redact_string(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True


def setup_logging_redaction() -> None:
    """Apply the SecretRedactionFilter to the root logger and all existing loggers."""
    redact_filter = SecretRedactionFilter()

    root_logger = logging.getLogger()

    # Remove existing filters if any (to avoid duplicates)
    for f in root_logger.filters[:]:
        if isinstance(f, SecretRedactionFilter):
            root_logger.removeFilter(f)

    root_logger.addFilter(redact_filter)

    # Filters on the root logger do not run for records propagated from children
    for name in list(logging.root.manager.loggerDict):
        logger = logging.getLogger(name)
        for f in logger.filters[:]:
            if isinstance(f, SecretRedactionFilter):
                logger.removeFilter(f)
        logger.addFilter(redact_filter)

    logging.info("Logging redaction filters active.")
