from __future__ import annotations

from pathlib import Path

from .delta_parser import parse_delta_file
from .discovery import find_delta_spec_files, is_archived
from .models import ImpactSummary, Operation, PRMode, RequirementChange


def calculate_impact(change_id: str, root: str | Path, mode: PRMode | str) -> ImpactSummary:
    """Aggregate every capability delta spec of ``change_id`` into one summary.

    Capabilities follow directory-listing order; within a capability changes
    are emitted added, modified, removed, renamed. ``counts.total`` is derived
    from the four operation counts.
    """
    summary = ImpactSummary(
        change_id=change_id,
        mode=PRMode(mode),
        archived=is_archived(change_id, root),
    )
    counts = summary.counts
    for capability, spec_file in find_delta_spec_files(root, change_id):
        summary.capabilities.append(capability)
        plan = parse_delta_file(spec_file)
        for req in plan.added:
            summary.changes.append(
                RequirementChange(capability, Operation.ADD, req.name, content=req.content.strip())
            )
            counts.added += 1
        for req in plan.modified:
            summary.changes.append(
                RequirementChange(capability, Operation.MODIFY, req.name, content=req.content.strip())
            )
            counts.modified += 1
        for name in plan.removed:
            summary.changes.append(RequirementChange(capability, Operation.REMOVE, name))
            counts.removed += 1
        for op in plan.renamed:
            summary.changes.append(
                RequirementChange(capability, Operation.RENAME, op.to_name, previous_name=op.from_name)
            )
            counts.renamed += 1
    return summary


__all__ = ["calculate_impact"]
