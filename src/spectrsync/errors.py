"""Error taxonomy & redaction.

Three classes of failure matter to the reconcilers:

- configuration errors (``ConfigError``): fatal, raised before any remote call
- remote errors (``GitHubAPIError`` from ``github_rest``): classified here so
  per-change failures can be reported with a category
- parse errors: never raised, the delta parser degrades to an empty plan

Public API:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"ghs_[A-Za-z0-9]{20,40}"),  # Actions installation tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
]

_REDACTION_PLACEHOLDER = "<redacted>"


class ConfigError(RuntimeError):
    """Missing or malformed configuration (fatal)."""


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Replace sensitive token matches with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def _status_of(exc: BaseException) -> int | None:
    status = getattr(exc, "status", None)
    return status if isinstance(status, int) else None


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    HTTP status (when the exception carries one) wins over message keywords.
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__
    status = _status_of(exc)

    if isinstance(exc, ConfigError):
        return ErrorInfo("config", redact(msg), name)
    if status == 422:
        return ErrorInfo("github.conflict", redact(msg), name, details={"status": status})
    if status in (401, 403):
        if "rate limit" in low:
            return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
        return ErrorInfo("github.permission", redact(msg), name, details={"status": status})
    if status == 404:
        return ErrorInfo("github.not_found", redact(msg), name, details={"status": status})
    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if any(k in low for k in ("yaml", "json", "decode")):
        return ErrorInfo("parse", redact(msg), name)
    if status is not None and status >= 500:
        return ErrorInfo("github.server", redact(msg), name, transient=True, details={"status": status})
    return ErrorInfo("generic", redact(msg), name)


__all__ = ["ConfigError", "ErrorInfo", "classify_error", "redact"]
