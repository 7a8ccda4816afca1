"""Rendering of issue bodies and PR impact comments.

Every rendered body starts with its identity marker and never exceeds
``MAX_BODY_LENGTH`` characters (GitHub's limit for issue and comment bodies).
Rendering is deterministic: the same proposal or impact summary always
produces the same text, which is what lets ``bodies_match`` skip writes.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .markers import issue_marker, pr_impact_marker
from .models import ImpactSummary, Operation, OperationCounts, Proposal, RequirementChange

MAX_BODY_LENGTH = 65536
# Only back up to a line boundary when it keeps at least this share of the cut
TRUNCATION_LINE_THRESHOLD = 0.8

ISSUE_TRUNCATION_NOTICE = (
    "\n\n---\n*This content has been truncated due to GitHub issue size limits. "
    "See the full proposal in the repository.*"
)
COMMENT_TRUNCATION_NOTICE = (
    "\n\n_... content truncated due to length ..._\n\n---\n*Generated by spectr-sync*"
)

ISSUE_FOOTER = (
    "*This issue is managed by [Spectr](https://github.com/connerohnesorge/spectr). "
    "Changes to the proposal will be reflected here automatically.*"
)

_whitespace_re = re.compile(r"\s+")


def truncate_body(body: str, notice: str, limit: int = MAX_BODY_LENGTH) -> str:
    if len(body) <= limit:
        return body
    max_content = limit - len(notice)
    cut = body[:max_content]
    last_newline = cut.rfind("\n")
    if last_newline > max_content * TRUNCATION_LINE_THRESHOLD:
        cut = cut[:last_newline]
    return cut + notice


# ---- issues --------------------------------------------------------------


def format_issue_title(change_id: str, title_prefix: str) -> str:
    """``"<prefix> <change_id>"`` with the prefix stripped.

    A blank prefix gives the bare change id instead of a leading space.
    """
    prefix = title_prefix.strip()
    return f"{prefix} {change_id}" if prefix else change_id


def format_issue_body(proposal: Proposal) -> str:
    parts: list[str] = [issue_marker(proposal.id), ""]

    parts.extend(["## Proposal", "", proposal.proposal_body.strip(), ""])

    if proposal.affected_capabilities:
        parts.extend(["## Affected Specs", ""])
        parts.extend(f"- `{cap}`" for cap in proposal.affected_capabilities)
        parts.append("")

    if proposal.tasks_body:
        parts.extend(["## Tasks", "", proposal.tasks_body.strip(), ""])

    parts.extend(["---", ISSUE_FOOTER])
    return truncate_body("\n".join(parts), ISSUE_TRUNCATION_NOTICE)


# ---- PR impact comments --------------------------------------------------


def _plural(count: int) -> str:
    return "change" if count == 1 else "changes"


def format_summary_table(counts: OperationCounts) -> str:
    return "\n".join(
        [
            "| Operation | Count |",
            "|-----------|-------|",
            f"| Added | {counts.added} |",
            f"| Modified | {counts.modified} |",
            f"| Removed | {counts.removed} |",
            f"| Renamed | {counts.renamed} |",
            f"| **Total** | **{counts.total}** |",
        ]
    )


def format_status_table(impact: ImpactSummary) -> str:
    mode = impact.mode.value
    return "\n".join(
        [
            "| Status | Value |",
            "|--------|-------|",
            f"| Mode | {mode[:1].upper() + mode[1:]} |",
            f"| Archived | {'Yes' if impact.archived else 'No'} |",
        ]
    )


def format_capabilities_list(impact: ImpactSummary) -> str:
    if not impact.capabilities:
        return "_No capabilities affected_"
    lines = []
    for capability in impact.capabilities:
        count = len(impact.changes_for(capability))
        lines.append(f"- `{capability}` - {count} {_plural(count)}")
    return "\n".join(lines)


def _requirement_text(change: RequirementChange) -> str:
    if not change.content:
        return ""
    kept = [
        line for line in change.content.split("\n") if not line.startswith("### Requirement:")
    ]
    return "\n".join(kept).strip()


def _requirement_blocks(title: str, changes: list[RequirementChange]) -> list[str]:
    lines = [f"#### {title}", ""]
    for change in changes:
        lines.append(f"##### `Requirement: {change.requirement_name}`")
        text = _requirement_text(change)
        if text:
            lines.append(text)
        lines.append("")
    return lines


def format_capability_changes(capability: str, changes: Iterable[RequirementChange]) -> str:
    scoped = [c for c in changes if c.capability == capability]
    if not scoped:
        return ""
    lines = [
        "<details>",
        f"<summary><strong>{capability}</strong> ({len(scoped)} {_plural(len(scoped))})</summary>",
        "",
    ]
    by_op = {op: [c for c in scoped if c.operation is op] for op in Operation}
    if by_op[Operation.ADD]:
        lines.extend(_requirement_blocks("Added", by_op[Operation.ADD]))
    if by_op[Operation.MODIFY]:
        lines.extend(_requirement_blocks("Modified", by_op[Operation.MODIFY]))
    if by_op[Operation.RENAME]:
        lines.extend(["#### Renamed", ""])
        lines.extend(
            f"- `{c.previous_name}` → `{c.requirement_name}`" for c in by_op[Operation.RENAME]
        )
        lines.append("")
    if by_op[Operation.REMOVE]:
        lines.extend(["#### Removed", ""])
        lines.extend(f"- `Requirement: {c.requirement_name}`" for c in by_op[Operation.REMOVE])
        lines.append("")
    lines.append("</details>")
    return "\n".join(lines)


def format_diff_preview(changes: list[RequirementChange]) -> str:
    if not changes:
        return "_No spec changes detected_"
    capabilities = list(dict.fromkeys(c.capability for c in changes))
    sections = [format_capability_changes(cap, changes) for cap in capabilities]
    return "\n\n".join(s for s in sections if s)


def format_pr_comment(impact: ImpactSummary) -> str:
    sections = [
        pr_impact_marker(impact.change_id),
        "",
        f"## Spectr Impact: `{impact.change_id}`",
        "",
        format_status_table(impact),
        "",
        "### Summary",
        "",
        format_summary_table(impact.counts),
        "",
        "### Affected Capabilities",
        "",
        format_capabilities_list(impact),
        "",
        "### Changes",
        "",
        format_diff_preview(impact.changes),
        "",
        "---",
        "*Generated by spectr-sync | "
        f"[View proposal](spectr/changes/{impact.change_id}/proposal.md)*",
    ]
    return truncate_body("\n".join(sections), COMMENT_TRUNCATION_NOTICE)


# ---- equivalence ---------------------------------------------------------


def normalize_whitespace(text: str | None) -> str:
    return _whitespace_re.sub(" ", text or "").strip()


def bodies_match(existing: str | None, desired: str | None) -> bool:
    """Equal after collapsing whitespace runs (newlines included) and trimming."""
    return normalize_whitespace(existing) == normalize_whitespace(desired)


def comments_match(existing: str | None, desired: str | None) -> bool:
    return bodies_match(existing, desired)


__all__ = [
    "MAX_BODY_LENGTH",
    "ISSUE_TRUNCATION_NOTICE",
    "COMMENT_TRUNCATION_NOTICE",
    "truncate_body",
    "format_issue_title",
    "format_issue_body",
    "format_summary_table",
    "format_status_table",
    "format_capabilities_list",
    "format_capability_changes",
    "format_diff_preview",
    "format_pr_comment",
    "normalize_whitespace",
    "bodies_match",
    "comments_match",
]
