"""Change proposal discovery.

Scans ``<root>/spectr/changes`` for proposal directories. A directory is a
proposal only if it contains ``proposal.md``; anything else is skipped
silently. The ``archive`` subdirectory holds archived changes, usually named
``YYYY-MM-DD-<change-id>``.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from .logging import get_logger
from .models import Proposal

CHANGES_DIR = Path("spectr") / "changes"
ARCHIVE_DIR_NAME = "archive"
PROPOSAL_FILE = "proposal.md"
TASKS_FILE = "tasks.md"
TASKS_JSON_FILE = "tasks.json"
SPECS_DIR = "specs"
DELTA_SPEC_FILE = "spec.md"

_dated_archive_re = re.compile(r"^\d{4}-\d{2}-\d{2}-(.+)$")

logger = get_logger()


def changes_root(root: str | Path) -> Path:
    return Path(root) / CHANGES_DIR


def archive_root(root: str | Path) -> Path:
    return changes_root(root) / ARCHIVE_DIR_NAME


def change_path(root: str | Path, change_id: str) -> Path:
    return changes_root(root) / change_id


def _subdirectories(path: Path) -> list[Path]:
    try:
        return sorted((p for p in path.iterdir() if p.is_dir()), key=lambda p: p.name)
    except OSError:
        return []


def discover_active(root: str | Path) -> list[Proposal]:
    """All proposals directly under ``spectr/changes`` (archive excluded)."""
    proposals: list[Proposal] = []
    for entry in _subdirectories(changes_root(root)):
        if entry.name == ARCHIVE_DIR_NAME:
            continue
        proposal = read_proposal(entry, archived=False)
        if proposal is not None:
            proposals.append(proposal)
    return proposals


def discover_archived(root: str | Path) -> list[Proposal]:
    """All proposals under ``spectr/changes/archive``."""
    proposals: list[Proposal] = []
    for entry in _subdirectories(archive_root(root)):
        proposal = read_proposal(entry, archived=True)
        if proposal is not None:
            proposals.append(proposal)
    return proposals


def read_proposal(path: Path, *, archived: bool) -> Proposal | None:
    body = read_proposal_content(path)
    if body is None:
        return None
    return Proposal(
        id=path.name,
        path=path,
        proposal_body=body,
        tasks_body=read_tasks_content(path),
        affected_capabilities=find_affected_capabilities(path),
        archived=archived,
    )


def read_proposal_content(path: Path) -> str | None:
    try:
        return (path / PROPOSAL_FILE).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def read_tasks_content(path: Path) -> str | None:
    """Tasks as checklist Markdown; ``tasks.md`` wins over ``tasks.json``."""
    try:
        return (path / TASKS_FILE).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        pass
    try:
        raw = (path / TASKS_JSON_FILE).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    return render_tasks_json(raw)


def render_tasks_json(raw: str) -> str:
    """Render a ``tasks.json`` document as checklist Markdown.

    Tasks are grouped by ``section`` in first-seen order. Input that is not a
    ``{"tasks": [...]}`` document is returned unchanged.
    """
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.debug("tasks.json is not valid JSON", error=str(exc))
        return raw
    tasks = data.get("tasks") if isinstance(data, dict) else None
    if not isinstance(tasks, list):
        return raw

    sections: dict[str, list[dict[str, Any]]] = {}
    for task in tasks:
        if not isinstance(task, dict):
            continue
        section = str(task.get("section") or "Tasks")
        sections.setdefault(section, []).append(task)

    lines: list[str] = ["# Tasks", ""]
    for section, items in sections.items():
        lines.extend([f"## {section}", ""])
        for task in items:
            status = task.get("status")
            checkbox = "[x]" if status == "completed" else "[ ]"
            badge = " *(in progress)*" if status == "in_progress" else ""
            lines.append(f"- {checkbox} {task.get('id', '')}: {task.get('description', '')}{badge}")
        lines.append("")
    return "\n".join(lines)


def find_affected_capabilities(path: Path) -> list[str]:
    return [p.name for p in _subdirectories(path / SPECS_DIR)]


def find_delta_spec_files(root: str | Path, change_id: str) -> list[tuple[str, Path]]:
    """``(capability, spec.md path)`` for every capability with a delta spec."""
    out: list[tuple[str, Path]] = []
    for cap_dir in _subdirectories(change_path(root, change_id) / SPECS_DIR):
        spec_file = cap_dir / DELTA_SPEC_FILE
        if spec_file.is_file():
            out.append((cap_dir.name, spec_file))
    return out


def change_id_from_archive_name(name: str) -> str:
    m = _dated_archive_re.match(name)
    return m.group(1) if m else name


def is_archived(change_id: str, root: str | Path) -> bool:
    """True when the archive holds ``<change_id>`` or ``YYYY-MM-DD-<change_id>``."""
    for entry in _subdirectories(archive_root(root)):
        if entry.name == change_id or change_id_from_archive_name(entry.name) == change_id:
            return True
    return False


__all__ = [
    "CHANGES_DIR",
    "PROPOSAL_FILE",
    "changes_root",
    "archive_root",
    "change_path",
    "discover_active",
    "discover_archived",
    "read_proposal",
    "read_proposal_content",
    "read_tasks_content",
    "render_tasks_json",
    "find_affected_capabilities",
    "find_delta_spec_files",
    "change_id_from_archive_name",
    "is_archived",
]
