"""Delta spec parser.

A delta spec (``specs/<capability>/spec.md`` inside a change) declares
requirement operations under fixed level-two headers::

    ## ADDED Requirements
    ### Requirement: Session Timeout
    The system SHALL ...

    ## REMOVED Requirements
    - Legacy Login

    ## RENAMED Requirements
    - FROM: `### Requirement: Old Name`
    - TO: `### Requirement: New Name`

Parsing is positional and line-oriented. Nothing here raises: a file that
cannot be read or understood yields an empty ``DeltaPlan`` so a single broken
spec never aborts a run.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from .logging import get_logger
from .models import DeltaPlan, ParsedRequirement, RenameOp

DELTA_TYPES = ("ADDED", "MODIFIED", "REMOVED", "RENAMED")

_section_re = re.compile(r"^##\s+(ADDED|MODIFIED|REMOVED|RENAMED) Requirements\s*$")
_requirement_re = re.compile(r"^###\s*Requirement:\s*(\S.*?)\s*$")
_rename_re = re.compile(r"^-\s*(FROM|TO):\s*(.*?)\s*$", re.IGNORECASE)
_rename_ref_re = re.compile(r"^###\s*REQUIREMENT:\s*(\S.*?)\s*$", re.IGNORECASE)


class _State(Enum):
    OUTSIDE = "outside"
    IN_REQUIREMENT = "in_requirement"


def match_requirement_header(line: str) -> str | None:
    """Return the requirement name for ``### Requirement: <name>`` lines."""
    m = _requirement_re.match(line)
    return m.group(1) if m else None


def _is_h3(line: str) -> bool:
    return line.startswith("### ")


def _is_h2(line: str) -> bool:
    return line.lstrip().startswith("## ")


def find_section(lines: list[str], delta_type: str) -> list[str] | None:
    """Lines between ``## <delta_type> Requirements`` and the next ``## `` line.

    Returns ``None`` when the header is absent.
    """
    start: int | None = None
    for i, line in enumerate(lines):
        m = _section_re.match(line)
        if m and m.group(1) == delta_type:
            start = i + 1
            break
    if start is None:
        return None
    end = start
    while end < len(lines) and not _is_h2(lines[end]):
        end += 1
    return lines[start:end]


def parse_requirements(section: Iterable[str]) -> list[ParsedRequirement]:
    requirements: list[ParsedRequirement] = []
    state = _State.OUTSIDE
    name = ""
    content: list[str] = []

    def _close() -> None:
        requirements.append(ParsedRequirement(name=name, content="".join(content)))

    for line in section:
        header_name = match_requirement_header(line)
        if header_name:
            if state is _State.IN_REQUIREMENT:
                _close()
            state = _State.IN_REQUIREMENT
            name = header_name
            content = [line + "\n"]
            continue
        if _is_h3(line):
            # Non-requirement subheading ends the current requirement
            if state is _State.IN_REQUIREMENT:
                _close()
            state = _State.OUTSIDE
            continue
        if _is_h2(line):
            break
        if state is _State.IN_REQUIREMENT:
            content.append(line + "\n")

    if state is _State.IN_REQUIREMENT:
        _close()
    return requirements


def parse_removed(section: Iterable[str]) -> list[str]:
    removed: list[str] = []
    for line in section:
        trimmed = line.strip()
        header_name = match_requirement_header(trimmed)
        if header_name:
            removed.append(header_name)
            continue
        if trimmed.startswith("- ") or trimmed.startswith("* "):
            item = trimmed[2:].strip()
            if item:
                removed.append(item)
    return removed


def _rename_reference(raw: str) -> str | None:
    ref = raw.strip()
    if len(ref) >= 2 and ref.startswith("`") and ref.endswith("`"):
        ref = ref[1:-1].strip()
    m = _rename_ref_re.match(ref)
    return m.group(1) if m else None


def match_rename_line(line: str) -> tuple[str, str] | None:
    """Parse ``- FROM: ...`` / ``- TO: ...`` returning ``(KIND, name)``."""
    m = _rename_re.match(line.strip())
    if not m:
        return None
    name = _rename_reference(m.group(2))
    if not name:
        return None
    return m.group(1).upper(), name


def parse_renamed(section: Iterable[str]) -> list[RenameOp]:
    renamed: list[RenameOp] = []
    pending_from: str | None = None
    for line in section:
        matched = match_rename_line(line)
        if matched is None:
            continue
        kind, name = matched
        if kind == "FROM":
            # A FROM without a TO is replaced by the next FROM
            pending_from = name
        elif pending_from is not None:
            renamed.append(RenameOp(from_name=pending_from, to_name=name))
            pending_from = None
    return renamed


def parse_delta(text: str) -> DeltaPlan:
    """Parse delta spec Markdown into a ``DeltaPlan`` (never raises)."""
    plan = DeltaPlan()
    try:
        lines = text.replace("\r\n", "\n").split("\n")
        added = find_section(lines, "ADDED")
        if added:
            plan.added = parse_requirements(added)
        modified = find_section(lines, "MODIFIED")
        if modified:
            plan.modified = parse_requirements(modified)
        removed = find_section(lines, "REMOVED")
        if removed:
            plan.removed = parse_removed(removed)
        renamed = find_section(lines, "RENAMED")
        if renamed:
            plan.renamed = parse_renamed(renamed)
    except Exception as exc:
        get_logger().debug("delta parse failed", error=str(exc))
        return DeltaPlan()
    return plan


def parse_delta_file(path: str | Path) -> DeltaPlan:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        get_logger().debug("delta spec unreadable", path=str(p), error=str(exc))
        return DeltaPlan()
    return parse_delta(text)


__all__ = [
    "DELTA_TYPES",
    "find_section",
    "match_requirement_header",
    "match_rename_line",
    "parse_requirements",
    "parse_removed",
    "parse_renamed",
    "parse_delta",
    "parse_delta_file",
]
