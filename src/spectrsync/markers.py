"""Hidden identity markers embedded in managed issue and comment bodies.

Marker format: ``<!-- <tag>:<change-id> -->``. The tag distinguishes issue
markers from PR impact comment markers; the change id is restricted to
``[a-zA-Z0-9_-]+``. Matching tolerates any whitespace just inside the
comment delimiters, so bodies edited by hand still resolve.
"""

from __future__ import annotations

import re

ISSUE_TAG = "spectr-change-id"
PR_IMPACT_TAG = "spectr-pr-impact"

_CHANGE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def _pattern(tag: str) -> re.Pattern[str]:
    return re.compile(r"<!--\s*" + re.escape(tag) + r":([a-zA-Z0-9_-]+)\s*-->")


ISSUE_MARKER_PATTERN = _pattern(ISSUE_TAG)
PR_IMPACT_MARKER_PATTERN = _pattern(PR_IMPACT_TAG)
_PATTERNS = {ISSUE_TAG: ISSUE_MARKER_PATTERN, PR_IMPACT_TAG: PR_IMPACT_MARKER_PATTERN}


def is_valid_change_id(change_id: str) -> bool:
    return bool(change_id) and bool(_CHANGE_ID_RE.match(change_id))


def generate_marker(tag: str, change_id: str) -> str:
    if not is_valid_change_id(change_id):
        raise ValueError(f"Invalid change id for marker: {change_id!r}")
    return f"<!-- {tag}:{change_id} -->"


def extract_change_id(body: str | None, tag: str = ISSUE_TAG) -> str | None:
    if not body:
        return None
    pattern = _PATTERNS.get(tag) or _pattern(tag)
    m = pattern.search(body)
    return m.group(1) if m else None


def has_marker(body: str | None, tag: str, change_id: str) -> bool:
    """True when ``body`` carries the marker for exactly ``change_id``."""
    if not body:
        return False
    pattern = re.compile(
        r"<!--\s*" + re.escape(tag) + ":" + re.escape(change_id) + r"\s*-->"
    )
    return pattern.search(body) is not None


def issue_marker(change_id: str) -> str:
    return generate_marker(ISSUE_TAG, change_id)


def pr_impact_marker(change_id: str) -> str:
    return generate_marker(PR_IMPACT_TAG, change_id)


__all__ = [
    "ISSUE_TAG",
    "PR_IMPACT_TAG",
    "ISSUE_MARKER_PATTERN",
    "PR_IMPACT_MARKER_PATTERN",
    "is_valid_change_id",
    "generate_marker",
    "extract_change_id",
    "has_marker",
    "issue_marker",
    "pr_impact_marker",
]
