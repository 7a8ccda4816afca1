from __future__ import annotations

import pytest
from fakes import FakeTracker

from spectrsync.config import PRImpactConfig, RepoContext
from spectrsync.detect import PRContext, parse_spectr_branch
from spectrsync.errors import ConfigError
from spectrsync.formatting import format_pr_comment
from spectrsync.impact import calculate_impact
from spectrsync.models import PRMode, RemoteComment
from spectrsync.pr_impact import comment_url, run_pr_impact

DELTA = """\
## ADDED Requirements
### Requirement: Session Timeout
Sessions SHALL expire.
"""

REPO = RepoContext("acme", "widgets")


def _context(branch="spectr/proposal/add-auth", pr_number=7, is_pr=True) -> PRContext:
    return PRContext(is_pr=is_pr, branch_name=branch, pr_number=pr_number, branch=parse_spectr_branch(branch))


@pytest.fixture
def workspace(tmp_path, make_change):
    make_change("add-auth", specs={"auth": DELTA})
    return tmp_path


def test_creates_comment_when_none_exists(workspace):
    tracker = FakeTracker()

    result = run_pr_impact(PRImpactConfig(), workspace, _context(), tracker, REPO)

    assert result.ran is True
    assert result.comment_created is True
    assert result.comment_updated is False
    assert result.change_id == "add-auth"
    assert result.mode is PRMode.PROPOSAL
    name, kwargs = tracker.writes[0]
    assert name == "create_comment"
    assert kwargs["pr_number"] == 7
    assert kwargs["body"].startswith("<!-- spectr-pr-impact:add-auth -->")
    assert result.comment_url and result.comment_url.endswith("#issuecomment-1001")


def test_equivalent_comment_is_noop(workspace):
    body = format_pr_comment(calculate_impact("add-auth", workspace, "proposal"))
    existing = RemoteComment(55, body.replace("\n", "\n\n") + "  ", url=None)
    tracker = FakeTracker(comments={7: [existing]})

    result = run_pr_impact(PRImpactConfig(), workspace, _context(), tracker, REPO)

    assert tracker.writes == []
    assert result.ran is True
    assert not result.comment_created and not result.comment_updated
    assert result.comment_url == "https://github.com/acme/widgets/pull/7#issuecomment-55"


def test_differing_comment_updated_in_place(workspace):
    stale = RemoteComment(55, "<!-- spectr-pr-impact:add-auth -->\nold", url="u55")
    other = RemoteComment(56, "<!-- spectr-pr-impact:add-auth-v2 -->\nother change", url="u56")
    tracker = FakeTracker(comments={7: [other, stale]})

    result = run_pr_impact(PRImpactConfig(), workspace, _context(), tracker, REPO)

    assert [(n, kw["comment_id"]) for n, kw in tracker.writes] == [("update_comment", 55)]
    assert result.comment_updated is True
    assert result.comment_url == "u55"


def test_updates_disabled_creates_new_comment(workspace):
    stale = RemoteComment(55, "<!-- spectr-pr-impact:add-auth -->\nold", url="u55")
    tracker = FakeTracker(comments={7: [stale]})

    result = run_pr_impact(PRImpactConfig(update_comment=False), workspace, _context(), tracker, REPO)

    assert [n for n, _ in tracker.writes] == ["create_comment"]
    assert result.comment_created is True


def test_updates_disabled_but_equivalent_is_still_noop(workspace):
    body = format_pr_comment(calculate_impact("add-auth", workspace, "proposal"))
    tracker = FakeTracker(comments={7: [RemoteComment(55, body, url="u55")]})

    result = run_pr_impact(PRImpactConfig(update_comment=False), workspace, _context(), tracker, REPO)

    assert tracker.writes == []
    assert result.comment_url == "u55"


@pytest.mark.parametrize(
    "context",
    [
        _context(is_pr=False),
        _context(branch="main"),
        _context(branch="spectr/proposal/"),
        _context(pr_number=None),
        _context(branch="spectr/proposal/not.valid"),
    ],
)
def test_not_applicable_is_noop(workspace, context):
    tracker = FakeTracker()

    result = run_pr_impact(PRImpactConfig(), workspace, context, tracker, REPO)

    assert result.ran is False
    assert tracker.calls == []


def test_disabled_is_noop(workspace):
    tracker = FakeTracker()
    result = run_pr_impact(PRImpactConfig(enabled=False), workspace, _context(), tracker, REPO)
    assert result.ran is False
    assert tracker.calls == []


def test_dry_run_reports_intent_without_writes(workspace):
    tracker = FakeTracker()

    result = run_pr_impact(PRImpactConfig(dry_run=True), workspace, _context(), tracker, REPO)

    assert tracker.writes == []
    assert result.comment_created is True
    assert result.comment_url is None


def test_missing_client_for_applicable_pr(workspace):
    with pytest.raises(ConfigError):
        run_pr_impact(PRImpactConfig(), workspace, _context(), None, REPO)


def test_comment_url_fallback():
    comment = RemoteComment(9, "x")
    assert comment_url(REPO, 3, comment) == "https://github.com/acme/widgets/pull/3#issuecomment-9"
    assert comment_url(None, 3, comment) is None
    assert comment_url(None, 3, RemoteComment(9, "x", url="given")) == "given"
