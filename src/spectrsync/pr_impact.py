"""Impact summary comment on spectr pull requests.

The comment is identified by its ``spectr-pr-impact:<change-id>`` marker.
An equivalent existing comment is left untouched; a differing one is edited
in place, or superseded by a new comment when in-place updates are disabled.
"""

from __future__ import annotations

from pathlib import Path

from .config import PRImpactConfig, RepoContext
from .detect import PRContext
from .errors import ConfigError
from .formatting import comments_match, format_pr_comment
from .impact import calculate_impact
from .logging import StructuredLogger, get_logger
from .markers import PR_IMPACT_TAG, has_marker, is_valid_change_id
from .models import PRImpactResult, RemoteComment
from .remote import TrackerClient


def find_impact_comment(
    client: TrackerClient, pr_number: int, change_id: str
) -> RemoteComment | None:
    for comment in client.list_pr_comments(pr_number):
        if has_marker(comment.body, PR_IMPACT_TAG, change_id):
            return comment
    return None


def comment_url(repo: RepoContext | None, pr_number: int, comment: RemoteComment) -> str | None:
    if comment.url:
        return comment.url
    if repo is None:
        return None
    return f"https://github.com/{repo.owner}/{repo.repo}/pull/{pr_number}#issuecomment-{comment.id}"


def run_pr_impact(
    config: PRImpactConfig,
    root: str | Path,
    context: PRContext,
    client: TrackerClient | None,
    repo: RepoContext | None = None,
    logger: StructuredLogger | None = None,
) -> PRImpactResult:
    log = logger or get_logger()
    if not config.enabled:
        log.info("PR impact is disabled")
        return PRImpactResult()
    if not context.is_pr:
        log.info("Not running on a pull request event")
        return PRImpactResult()
    if not context.is_spectr_pr:
        log.info("Not a spectr PR branch", branch=context.branch_name or "unknown")
        return PRImpactResult()
    if context.pr_number is None:
        log.warning("Could not determine PR number from event")
        return PRImpactResult()
    change_id, mode = context.change_id, context.mode
    if not change_id or mode is None or not is_valid_change_id(change_id):
        log.warning("Branch does not name a valid change id", branch=context.branch_name)
        return PRImpactResult()

    if client is None:
        raise ConfigError("A tracker client is required to post the impact comment")

    pr_number = context.pr_number
    dry = config.dry_run
    result = PRImpactResult(ran=True, change_id=change_id, mode=mode)

    with log.timed_operation("pr_impact", change_id=change_id, pr=pr_number):
        impact = calculate_impact(change_id, root, mode)
        log.log_operation(
            "impact_calculated",
            change_id=change_id,
            capabilities=len(impact.capabilities),
            archived=impact.archived,
            **impact.counts.as_dict(),
        )
        body = format_pr_comment(impact)
        existing = find_impact_comment(client, pr_number, change_id)

        if existing is not None and comments_match(existing.body, body):
            result.comment_url = comment_url(repo, pr_number, existing)
            log.info("Existing impact comment is up to date", comment_id=existing.id)
        elif existing is not None and config.update_comment:
            if not dry:
                result.comment_url = client.update_comment(comment_id=existing.id, body=body)
            result.comment_updated = True
            log.log_change_action(
                "comment_update", change_id, number=pr_number, dry_run=dry, comment_id=existing.id
            )
        else:
            if not dry:
                created = client.create_comment(pr_number=pr_number, body=body)
                result.comment_url = comment_url(repo, pr_number, created)
            result.comment_created = True
            log.log_change_action(
                "comment_create",
                change_id,
                number=pr_number,
                dry_run=dry,
                superseded=existing.id if existing is not None else None,
            )
    return result


__all__ = ["find_impact_comment", "comment_url", "run_pr_impact"]
