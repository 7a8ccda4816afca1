"""Spectr branch parsing and pull request context detection.

Spectr pull requests come from branches named
``spectr/<proposal|archive|remove>/<change-id>``. The context is read from an
explicit environment mapping (GitHub Actions variables plus the event payload
referenced by ``GITHUB_EVENT_PATH``) so callers and tests never depend on the
process environment implicitly.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .logging import get_logger
from .models import PRMode

SPECTR_BRANCH_RE = re.compile(r"^spectr/(proposal|archive|remove)/(.+)$")

PULL_REQUEST_EVENTS = frozenset(
    {
        "pull_request",
        "pull_request_target",
        "pull_request_review",
        "pull_request_review_comment",
    }
)

logger = get_logger()


@dataclass(frozen=True)
class NotSpectrBranch:
    is_spectr_branch = False
    mode = None
    change_id = None


@dataclass(frozen=True)
class SpectrBranch:
    mode: PRMode
    change_id: str
    is_spectr_branch = True


ParsedBranch = NotSpectrBranch | SpectrBranch


def parse_spectr_branch(name: str | None) -> ParsedBranch:
    m = SPECTR_BRANCH_RE.match(name or "")
    if not m:
        return NotSpectrBranch()
    return SpectrBranch(mode=PRMode(m.group(1)), change_id=m.group(2))


@dataclass(frozen=True)
class PRContext:
    is_pr: bool
    branch_name: str | None = None
    pr_number: int | None = None
    branch: ParsedBranch = NotSpectrBranch()

    @property
    def is_spectr_pr(self) -> bool:
        return self.is_pr and self.branch.is_spectr_branch

    @property
    def change_id(self) -> str | None:
        return self.branch.change_id

    @property
    def mode(self) -> PRMode | None:
        return self.branch.mode


def _read_event(env: Mapping[str, str]) -> dict[str, Any] | None:
    event_path = env.get("GITHUB_EVENT_PATH")
    if not event_path:
        return None
    try:
        data = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Unable to read event payload", path=event_path, error=str(exc))
        return None
    return data if isinstance(data, dict) else None


def is_pull_request_event(env: Mapping[str, str]) -> bool:
    return env.get("GITHUB_EVENT_NAME", "") in PULL_REQUEST_EVENTS


def head_branch_name(
    env: Mapping[str, str], event: dict[str, Any] | None = None
) -> str | None:
    head_ref = env.get("GITHUB_HEAD_REF")
    if head_ref:
        return head_ref
    ref = env.get("GITHUB_REF", "")
    if ref.startswith("refs/heads/"):
        return ref[len("refs/heads/") :]
    if event is None:
        event = _read_event(env)
    pull_request = (event or {}).get("pull_request")
    if isinstance(pull_request, dict):
        head = pull_request.get("head")
        if isinstance(head, dict) and isinstance(head.get("ref"), str) and head["ref"]:
            return str(head["ref"])
    return None


def pr_number_from_event(
    env: Mapping[str, str], event: dict[str, Any] | None = None
) -> int | None:
    if event is None:
        event = _read_event(env)
    if not event:
        return None
    pull_request = event.get("pull_request")
    if isinstance(pull_request, dict) and isinstance(pull_request.get("number"), int):
        return int(pull_request["number"])
    issue = event.get("issue")
    if isinstance(issue, dict) and issue.get("pull_request") and isinstance(issue.get("number"), int):
        return int(issue["number"])
    return None


def detect_pr_context(env: Mapping[str, str]) -> PRContext:
    event = _read_event(env)
    is_pr = is_pull_request_event(env)
    branch_name = head_branch_name(env, event)
    pr_number = pr_number_from_event(env, event)
    if not is_pr or not branch_name:
        return PRContext(is_pr=is_pr, branch_name=branch_name, pr_number=pr_number)
    return PRContext(
        is_pr=is_pr,
        branch_name=branch_name,
        pr_number=pr_number,
        branch=parse_spectr_branch(branch_name),
    )


__all__ = [
    "NotSpectrBranch",
    "SpectrBranch",
    "PRContext",
    "parse_spectr_branch",
    "is_pull_request_event",
    "head_branch_name",
    "pr_number_from_event",
    "detect_pr_context",
]
