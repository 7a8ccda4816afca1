"""Tracker client contract consumed by the reconcilers.

Production code uses :class:`spectrsync.github_rest.GitHubRestClient`; tests
substitute in-memory fakes. Calls are blocking and issued one at a time.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from .models import RemoteComment, RemoteIssue


class TrackerClient(Protocol):
    def list_managed_issues(self, label: str) -> list[RemoteIssue]: ...  # pragma: no cover

    def create_issue(self, *, title: str, body: str, labels: Iterable[str]) -> int: ...  # pragma: no cover

    def update_issue(
        self, *, number: int, title: str, body: str, labels: Iterable[str]
    ) -> None: ...  # pragma: no cover

    def close_issue(self, *, number: int) -> None: ...  # pragma: no cover

    def reopen_issue(self, *, number: int) -> None: ...  # pragma: no cover

    def create_issue_comment(self, *, number: int, body: str) -> RemoteComment: ...  # pragma: no cover

    def list_labels(self) -> list[str]: ...  # pragma: no cover

    def create_label(self, *, name: str, color: str, description: str) -> None: ...  # pragma: no cover

    def list_pr_comments(self, pr_number: int) -> list[RemoteComment]: ...  # pragma: no cover

    def create_comment(self, *, pr_number: int, body: str) -> RemoteComment: ...  # pragma: no cover

    def update_comment(self, *, comment_id: int, body: str) -> str: ...  # pragma: no cover


__all__ = ["TrackerClient"]
