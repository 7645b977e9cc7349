"""
Logging helpers for values that come from Jira or from configuration.

Jira response bodies and record fields are untrusted and may contain
newlines or be very large; API tokens must never reach the logs in full.
"""

import re
from typing import Any


def sanitize_for_logging(value: Any, max_length: int = 500) -> str:
    """
    Escape control characters and limit length for safe logging.

    Args:
        value: Value to sanitize (will be converted to string)
        max_length: Maximum length to allow (default: 500)

    Returns:
        Sanitized string safe for a single log line

    Examples:
        >>> sanitize_for_logging("normal text")
        'normal text'
        >>> sanitize_for_logging('{"errorMessages":\\n["bad jql"]}')
        '{"errorMessages":\\\\n["bad jql"]}'
        >>> sanitize_for_logging("x" * 1000, max_length=10)
        'xxxxxxxxxx...[truncated 990 chars]'
    """
    if not isinstance(value, str):
        value = str(value)

    sanitized = (
        value.replace('\r', '\\r')
        .replace('\n', '\\n')
        .replace('\t', '\\t')
        .replace('\x00', '\\x00')
    )

    # Remaining ASCII control characters are dropped
    sanitized = re.sub(r'[\x01-\x08\x0b-\x0c\x0e-\x1f]', '', sanitized)

    if len(sanitized) > max_length:
        truncated_count = len(sanitized) - max_length
        sanitized = sanitized[:max_length] + f"...[truncated {truncated_count} chars]"

    return sanitized


def redact_token(value: str, visible_chars: int = 4) -> str:
    """
    Redact an API token, keeping only its ends for identification.

    Examples:
        >>> redact_token("ATATT3xFfGF0abcdefgh")
        'ATAT...efgh'
        >>> redact_token("short", visible_chars=4)
        '*****'
    """
    if len(value) <= visible_chars * 2:
        return "*" * len(value)

    return f"{value[:visible_chars]}...{value[-visible_chars:]}"
