from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TypedDict


class PRMode(str, Enum):
    PROPOSAL = "proposal"
    ARCHIVE = "archive"
    REMOVE = "remove"


class Operation(str, Enum):
    ADD = "add"
    MODIFY = "modify"
    REMOVE = "remove"
    RENAME = "rename"


@dataclass(frozen=True)
class Proposal:
    """A change proposal discovered under ``spectr/changes``.

    ``id`` is the directory name. Records are built fresh for every run and
    never written back.
    """

    id: str
    path: Path
    proposal_body: str
    tasks_body: str | None = None
    affected_capabilities: list[str] = field(default_factory=list)
    archived: bool = False


@dataclass(frozen=True)
class ParsedRequirement:
    name: str
    content: str


@dataclass(frozen=True)
class RenameOp:
    from_name: str
    to_name: str


@dataclass
class DeltaPlan:
    added: list[ParsedRequirement] = field(default_factory=list)
    modified: list[ParsedRequirement] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    renamed: list[RenameOp] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.removed or self.renamed)


@dataclass(frozen=True)
class RequirementChange:
    capability: str
    operation: Operation
    requirement_name: str
    content: str | None = None  # add / modify only
    previous_name: str | None = None  # rename only


@dataclass
class OperationCounts:
    added: int = 0
    modified: int = 0
    removed: int = 0
    renamed: int = 0

    @property
    def total(self) -> int:
        return self.added + self.modified + self.removed + self.renamed

    def as_dict(self) -> dict[str, int]:
        return {
            "added": self.added,
            "modified": self.modified,
            "removed": self.removed,
            "renamed": self.renamed,
            "total": self.total,
        }


@dataclass
class ImpactSummary:
    change_id: str
    mode: PRMode
    archived: bool
    capabilities: list[str] = field(default_factory=list)
    changes: list[RequirementChange] = field(default_factory=list)
    counts: OperationCounts = field(default_factory=OperationCounts)

    def changes_for(self, capability: str) -> list[RequirementChange]:
        return [c for c in self.changes if c.capability == capability]


@dataclass(frozen=True)
class RemoteIssue:
    """Issue record as returned by the tracker (no marker interpretation)."""

    number: int
    title: str
    body: str
    state: str  # open | closed
    labels: tuple[str, ...] = ()
    is_pull_request: bool = False


@dataclass(frozen=True)
class RemoteComment:
    id: int
    body: str
    url: str | None = None


@dataclass(frozen=True)
class ManagedRemoteItem:
    remote_id: int
    change_id: str
    state: str  # open | closed
    title: str
    body: str

    @property
    def is_open(self) -> bool:
        return self.state == "open"


class PlanEntry(TypedDict, total=False):
    change_id: str
    action: str  # create|update|reopen|close|skip
    number: int | None
    reason: str | None


@dataclass
class SyncError:
    change_id: str
    message: str
    recoverable: bool = True
    category: str = "generic"


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    reopened: int = 0
    closed: int = 0
    skipped: int = 0
    total_changes: int = 0
    errors: list[SyncError] = field(default_factory=list)
    plan: list[PlanEntry] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "totals": {
                "changes": self.total_changes,
                "created": self.created,
                "updated": self.updated,
                "reopened": self.reopened,
                "closed": self.closed,
                "skipped": self.skipped,
                "errors": len(self.errors),
            },
            "errors": [
                {
                    "change_id": e.change_id,
                    "message": e.message,
                    "recoverable": e.recoverable,
                    "category": e.category,
                }
                for e in self.errors
            ],
            "plan": list(self.plan),
        }


@dataclass
class PRImpactResult:
    ran: bool = False
    change_id: str | None = None
    mode: PRMode | None = None
    comment_created: bool = False
    comment_updated: bool = False
    comment_url: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "ran": self.ran,
            "change_id": self.change_id,
            "mode": self.mode.value if self.mode else None,
            "comment_created": self.comment_created,
            "comment_updated": self.comment_updated,
            "comment_url": self.comment_url,
        }


__all__ = [
    "PRMode",
    "Operation",
    "Proposal",
    "ParsedRequirement",
    "RenameOp",
    "DeltaPlan",
    "RequirementChange",
    "OperationCounts",
    "ImpactSummary",
    "RemoteIssue",
    "RemoteComment",
    "ManagedRemoteItem",
    "PlanEntry",
    "SyncError",
    "SyncResult",
    "PRImpactResult",
]
