"""
Logging helpers for document-derived data.

Resumes carry personal data, so anything lifted out of a document (filenames,
parser output snippets) goes through these helpers before it reaches a log line.
"""
import json
import logging
import re
from typing import Any, Optional

SENSITIVE_KEYS = [
    "api_key", "token", "password", "secret", "auth",
    "email", "phone", "linkedin", "address",
    "bearer", "authorization",
]

_EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')
_PHONE_PATTERNS = [
    re.compile(r'\+?\d{1,3}[-.\s]?\(?\d{1,4}\)?[-.\s]?\d{1,4}[-.\s]?\d{4,9}'),
    re.compile(r'\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}'),
]
_CONTROL_CHARS = re.compile(r'[\x00-\x1F\x7F]')


def redact_emails(text: str) -> str:
    return _EMAIL_PATTERN.sub('[EMAIL_REDACTED]', text)


def redact_phone_numbers(text: str) -> str:
    for pattern in _PHONE_PATTERNS:
        text = pattern.sub('[PHONE_REDACTED]', text)
    return text


def sanitize_for_logging(data: Any, max_len: int = 100) -> Any:
    """
    Make a value safe to log.

    Dict keys that look sensitive are redacted outright; strings lose control
    characters, e-mail addresses and phone numbers, and are truncated.

    Args:
        data: dict, list, str or scalar
        max_len: Maximum length of any string value

    Returns:
        Sanitized copy of ``data``
    """
    if data is None:
        return "None"

    if isinstance(data, dict):
        sanitized = {}
        for k, v in data.items():
            if any(sensitive in str(k).lower() for sensitive in SENSITIVE_KEYS):
                sanitized[k] = "***REDACTED***"
            else:
                sanitized[k] = sanitize_for_logging(v, max_len)
        return sanitized

    if isinstance(data, (list, tuple)):
        return [sanitize_for_logging(item, max_len) for item in data]

    if isinstance(data, str):
        cleaned = _CONTROL_CHARS.sub('', data)
        cleaned = redact_phone_numbers(redact_emails(cleaned))
        if len(cleaned) > max_len:
            return cleaned[:max_len] + "..."
        return cleaned

    return sanitize_for_logging(str(data), max_len)


_cost_logger = logging.getLogger("Recruit.Cost")


def log_llm_cost(
    model: str,
    input_tokens: int,
    output_tokens: int,
    duration_ms: Optional[int] = None,
    endpoint: str = "unknown",
    document_id: Optional[str] = None,
) -> None:
    """
    Emit one structured line per structured-extraction call.

    Args:
        model: Model identifier that answered
        input_tokens: Prompt tokens
        output_tokens: Completion tokens
        duration_ms: Call duration in milliseconds
        endpoint: Parse kind that triggered the call (resume, job-description)
        document_id: Document being parsed, when known
    """
    event = {
        "event": "llm_cost",
        "model": model,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
        "endpoint": endpoint,
    }
    if duration_ms is not None:
        event["duration_ms"] = duration_ms
    if document_id:
        event["document_id"] = document_id

    _cost_logger.info("LLM_COST %s", json.dumps(event))
