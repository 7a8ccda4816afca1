"""Issue synchronization for change proposals.

One tracking issue exists per active change proposal. Issues are identified
by the hidden ``spectr-change-id`` marker in their body, never by title, and
are only ever looked up among issues carrying the management label. When a
proposal is archived its issue is closed (after an optional closing comment).

Remote calls are sequential. A failure while handling one proposal is
classified, logged and recorded in ``SyncResult.errors``; the remaining
proposals are still processed. Label provisioning failures other than
"already exists" abort the run.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .config import IssueSyncConfig
from .discovery import change_id_from_archive_name, discover_active, discover_archived
from .errors import classify_error
from .formatting import bodies_match, format_issue_body, format_issue_title
from .logging import StructuredLogger, get_logger
from .markers import ISSUE_TAG, extract_change_id
from .models import ManagedRemoteItem, PlanEntry, Proposal, RemoteIssue, SyncError, SyncResult
from .remote import TrackerClient

DEFAULT_LABEL_COLOR = "EDEDED"

# name -> (color, description) for the labels spectr-sync provisions by default
KNOWN_LABELS: dict[str, tuple[str, str]] = {
    "change-proposal": ("1D76DB", "A change proposal tracked by Spectr"),
    "spectr": ("7B68EE", "Related to Spectr spec-driven development"),
    "spectr-managed": ("5319E7", "Issue managed by Spectr action"),
}


def label_style(name: str) -> tuple[str, str]:
    return KNOWN_LABELS.get(name.lower(), (DEFAULT_LABEL_COLOR, ""))


def ensure_labels(
    client: TrackerClient, labels: Iterable[str], logger: StructuredLogger | None = None
) -> list[str]:
    """Create every label in ``labels`` missing from the repository.

    Existing labels are compared case-insensitively. A 422 on create means the
    label appeared concurrently and is ignored. Returns the created names.
    """
    log = logger or get_logger()
    existing = {name.lower() for name in client.list_labels()}
    created: list[str] = []
    for name in labels:
        if name.lower() in existing:
            continue
        color, description = label_style(name)
        try:
            client.create_label(name=name, color=color, description=description)
        except Exception as exc:
            if getattr(exc, "status", None) != 422:
                raise
            log.debug("Label already exists", label=name)
            continue
        existing.add(name.lower())
        created.append(name)
        log.log_operation("label_created", label=name, color=color)
    return created


def build_managed_map(
    issues: Iterable[RemoteIssue], logger: StructuredLogger | None = None
) -> dict[str, ManagedRemoteItem]:
    """Map change id to managed issue.

    Issues without a marker are orphans and left alone. When two issues carry
    the same marker the first one listed wins.
    """
    log = logger or get_logger()
    managed: dict[str, ManagedRemoteItem] = {}
    for issue in issues:
        if issue.is_pull_request:
            continue
        change_id = extract_change_id(issue.body, ISSUE_TAG)
        if change_id is None:
            log.debug("Ignoring labeled issue without marker", number=issue.number)
            continue
        if change_id in managed:
            log.warning(
                "Duplicate marker; keeping first issue",
                change_id=change_id,
                number=issue.number,
                kept=managed[change_id].remote_id,
            )
            continue
        managed[change_id] = ManagedRemoteItem(
            remote_id=issue.number,
            change_id=change_id,
            state=issue.state,
            title=issue.title,
            body=issue.body,
        )
    return managed


def _record(result: SyncResult, change_id: str, action: str, number: int | None, reason: str | None = None) -> None:
    entry: PlanEntry = {"change_id": change_id, "action": action, "number": number}
    if reason:
        entry["reason"] = reason
    result.plan.append(entry)


def _sync_active(
    proposal: Proposal,
    existing: ManagedRemoteItem | None,
    config: IssueSyncConfig,
    client: TrackerClient,
    result: SyncResult,
    log: StructuredLogger,
) -> None:
    title = format_issue_title(proposal.id, config.title_prefix)
    body = format_issue_body(proposal)
    labels = config.all_labels
    dry = config.dry_run

    if existing is None:
        number = None if dry else client.create_issue(title=title, body=body, labels=labels)
        result.created += 1
        _record(result, proposal.id, "create", number)
        log.log_change_action("create", proposal.id, number=number, dry_run=dry)
        return

    number = existing.remote_id
    if not config.update_existing:
        result.skipped += 1
        _record(result, proposal.id, "skip", number, "update_existing disabled")
        log.debug("Skipping update", change_id=proposal.id, number=number)
        return

    if not existing.is_open:
        if not dry:
            client.reopen_issue(number=number)
            client.update_issue(number=number, title=title, body=body, labels=labels)
        result.reopened += 1
        _record(result, proposal.id, "reopen", number)
        log.log_change_action("reopen", proposal.id, number=number, dry_run=dry)
        return

    if bodies_match(existing.title, title) and bodies_match(existing.body, body):
        result.skipped += 1
        _record(result, proposal.id, "skip", number, "unchanged")
        log.debug("No changes for issue", change_id=proposal.id, number=number)
        return

    if not dry:
        client.update_issue(number=number, title=title, body=body, labels=labels)
    result.updated += 1
    _record(result, proposal.id, "update", number)
    log.log_change_action("update", proposal.id, number=number, dry_run=dry)


def _find_archived_item(
    proposal: Proposal, managed: dict[str, ManagedRemoteItem]
) -> ManagedRemoteItem | None:
    item = managed.get(proposal.id)
    if item is None:
        item = managed.get(change_id_from_archive_name(proposal.id))
    return item


def _close_archived(
    proposal: Proposal,
    item: ManagedRemoteItem,
    config: IssueSyncConfig,
    client: TrackerClient,
    result: SyncResult,
    log: StructuredLogger,
) -> None:
    dry = config.dry_run
    number = item.remote_id
    if not dry:
        # The comment must land while the issue is still open
        if config.close_comment:
            client.create_issue_comment(number=number, body=config.close_comment)
        client.close_issue(number=number)
    result.closed += 1
    _record(result, item.change_id, "close", number)
    log.log_change_action("close", item.change_id, number=number, dry_run=dry, directory=proposal.id)


def _record_error(result: SyncResult, change_id: str, exc: Exception, log: StructuredLogger) -> None:
    info = classify_error(exc)
    result.errors.append(
        SyncError(change_id=change_id, message=info.message, recoverable=True, category=info.category)
    )
    log.log_error(
        f"Failed to sync change {change_id}",
        error=info.message,
        change_id=change_id,
        category=info.category,
    )


def sync_issues(
    config: IssueSyncConfig,
    root: str | Path,
    client: TrackerClient,
    logger: StructuredLogger | None = None,
) -> SyncResult:
    """Reconcile tracking issues with the proposals under ``root``.

    Per active proposal: create when no managed issue exists, skip when
    updates are disabled, reopen and update a closed issue, skip an open
    issue whose title and body already match, otherwise update. Archived
    proposals close their open issue when ``close_on_archive`` is set, unless
    the same change id is still active.
    With ``dry_run`` the plan and counters are produced without writes.
    """
    log = logger or get_logger()
    result = SyncResult()
    if not config.enabled:
        log.info("Issue sync is disabled")
        return result

    with log.timed_operation("issue_sync", dry_run=config.dry_run):
        if config.dry_run:
            log.info("Dry run: skipping label provisioning")
        else:
            ensure_labels(client, config.all_labels, log)

        active = discover_active(root)
        archived = discover_archived(root) if config.close_on_archive else []
        result.total_changes = len(active)
        log.log_operation("discovered", active=len(active), archived=len(archived))

        managed = build_managed_map(client.list_managed_issues(config.spectr_label), log)
        log.log_operation("managed_issues_loaded", count=len(managed))

        for proposal in active:
            try:
                _sync_active(proposal, managed.get(proposal.id), config, client, result, log)
            except Exception as exc:  # noqa: BLE001 - recorded per change
                _record_error(result, proposal.id, exc, log)

        active_ids = {p.id for p in active}
        for proposal in archived:
            item = _find_archived_item(proposal, managed)
            if item is None or not item.is_open:
                continue
            if item.change_id in active_ids:
                log.warning(
                    "Archived change is also active; leaving issue open",
                    change_id=item.change_id,
                    directory=proposal.id,
                )
                continue
            try:
                _close_archived(proposal, item, config, client, result, log)
            except Exception as exc:  # noqa: BLE001 - recorded per change
                _record_error(result, item.change_id, exc, log)

    log.log_operation("issue_sync_summary", totals=result.as_dict()["totals"])
    return result


__all__ = [
    "KNOWN_LABELS",
    "label_style",
    "ensure_labels",
    "build_managed_map",
    "sync_issues",
]
