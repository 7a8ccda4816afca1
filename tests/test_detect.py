from __future__ import annotations

import json

import pytest

from spectrsync.detect import (
    NotSpectrBranch,
    SpectrBranch,
    detect_pr_context,
    head_branch_name,
    is_pull_request_event,
    parse_spectr_branch,
    pr_number_from_event,
)
from spectrsync.models import PRMode


def test_parse_spectr_proposal_branch():
    parsed = parse_spectr_branch("spectr/proposal/add-feature")
    assert parsed == SpectrBranch(mode=PRMode.PROPOSAL, change_id="add-feature")
    assert parsed.is_spectr_branch is True


@pytest.mark.parametrize("name", ["main", "spectr/proposal/", "spectr/other/x", "feature/spectr/proposal/x", ""])
def test_non_spectr_branches(name):
    parsed = parse_spectr_branch(name)
    assert isinstance(parsed, NotSpectrBranch)
    assert parsed.is_spectr_branch is False
    assert parsed.mode is None
    assert parsed.change_id is None


def test_archive_and_remove_modes():
    assert parse_spectr_branch("spectr/archive/x").mode is PRMode.ARCHIVE
    assert parse_spectr_branch("spectr/remove/x").mode is PRMode.REMOVE


def _event(tmp_path, payload) -> str:
    p = tmp_path / "event.json"
    p.write_text(json.dumps(payload), encoding="utf-8")
    return str(p)


def test_pull_request_events():
    assert is_pull_request_event({"GITHUB_EVENT_NAME": "pull_request_target"})
    assert not is_pull_request_event({"GITHUB_EVENT_NAME": "push"})
    assert not is_pull_request_event({})


def test_head_branch_precedence(tmp_path):
    event = _event(tmp_path, {"pull_request": {"head": {"ref": "from-payload"}}})
    assert head_branch_name({"GITHUB_HEAD_REF": "head", "GITHUB_REF": "refs/heads/ref"}) == "head"
    assert head_branch_name({"GITHUB_REF": "refs/heads/spectr/proposal/x"}) == "spectr/proposal/x"
    assert head_branch_name({"GITHUB_REF": "refs/pull/1/merge", "GITHUB_EVENT_PATH": event}) == "from-payload"
    assert head_branch_name({}) is None


def test_pr_number_sources(tmp_path):
    pr_event = _event(tmp_path, {"pull_request": {"number": 12}})
    assert pr_number_from_event({"GITHUB_EVENT_PATH": pr_event}) == 12

    issue_event = tmp_path / "issue.json"
    issue_event.write_text(json.dumps({"issue": {"number": 7, "pull_request": {"url": "x"}}}))
    assert pr_number_from_event({"GITHUB_EVENT_PATH": str(issue_event)}) == 7

    plain_issue = tmp_path / "plain.json"
    plain_issue.write_text(json.dumps({"issue": {"number": 7}}))
    assert pr_number_from_event({"GITHUB_EVENT_PATH": str(plain_issue)}) is None


def test_unreadable_payload_yields_none(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    env = {"GITHUB_EVENT_PATH": str(bad)}
    assert pr_number_from_event(env) is None
    assert head_branch_name(env) is None
    assert pr_number_from_event({"GITHUB_EVENT_PATH": str(tmp_path / "missing.json")}) is None


def test_detect_spectr_pr_context(tmp_path):
    env = {
        "GITHUB_EVENT_NAME": "pull_request",
        "GITHUB_HEAD_REF": "spectr/archive/add-auth",
        "GITHUB_EVENT_PATH": _event(tmp_path, {"pull_request": {"number": 42}}),
    }
    ctx = detect_pr_context(env)

    assert ctx.is_pr and ctx.is_spectr_pr
    assert ctx.pr_number == 42
    assert ctx.change_id == "add-auth"
    assert ctx.mode is PRMode.ARCHIVE


def test_detect_push_event_is_not_spectr_pr():
    ctx = detect_pr_context({"GITHUB_EVENT_NAME": "push", "GITHUB_REF": "refs/heads/spectr/proposal/x"})

    assert ctx.is_pr is False
    assert ctx.is_spectr_pr is False
    assert ctx.branch_name == "spectr/proposal/x"
    assert ctx.change_id is None
