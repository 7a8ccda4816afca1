from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import requests

from . import __version__
from .models import RemoteComment, RemoteIssue

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = f"spectr-sync/{__version__}"
HTTP_ERROR_STATUS = 400
HTTP_UNPROCESSABLE = 422
REQUEST_TIMEOUT = 30


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text

    @property
    def is_conflict(self) -> bool:
        return self.status == HTTP_UNPROCESSABLE


@dataclass
class GitHubRestClient:
    """REST client covering the issue, label and comment calls spectr-sync needs.

    Satisfies :class:`spectrsync.remote.TrackerClient`.
    """

    token: str
    repo: str  # owner/repo
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("X-GitHub-Api-Version", "2022-11-28")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )
        response = self._session.request(
            method,
            url,
            params=params,
            json=json_body,
            headers=self._session.headers,
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub API {method} {url} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        if response.text:
            try:
                return response.json()
            except ValueError:  # pragma: no cover - non-JSON success body
                return response.text
        return None

    def _paginate(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> list[Any]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", 100)
        params.setdefault("page", 1)
        results: list[Any] = []
        while True:
            data = self._request("GET", path, params=params)
            if not isinstance(data, list):
                break
            results.extend(data)
            if len(data) < per_page:
                break
            params["page"] = params.get("page", 1) + 1
        return results

    # ---- Issue operations --------------------------------------------
    def list_managed_issues(self, label: str) -> list[RemoteIssue]:
        data = self._paginate(
            f"/repos/{self.repo}/issues", params={"state": "all", "labels": label}
        )
        out: list[RemoteIssue] = []
        for entry in data:
            if not isinstance(entry, dict):
                continue
            issue = _normalize_issue(entry)
            # The issues endpoint also returns pull requests
            if issue is not None and not issue.is_pull_request:
                out.append(issue)
        return out

    def create_issue(self, *, title: str, body: str, labels: Iterable[str]) -> int:
        payload = {"title": title, "body": body, "labels": list(labels)}
        data = self._request("POST", f"/repos/{self.repo}/issues", json_body=payload)
        number = data.get("number") if isinstance(data, dict) else None
        if not isinstance(number, int):
            raise GitHubAPIError("GitHub API create issue response missing number")
        return number

    def update_issue(
        self, *, number: int, title: str, body: str, labels: Iterable[str]
    ) -> None:
        payload = {"title": title, "body": body, "labels": list(labels)}
        self._request("PATCH", f"/repos/{self.repo}/issues/{number}", json_body=payload)

    def close_issue(self, *, number: int) -> None:
        self._request(
            "PATCH",
            f"/repos/{self.repo}/issues/{number}",
            json_body={"state": "closed", "state_reason": "completed"},
        )

    def reopen_issue(self, *, number: int) -> None:
        self._request(
            "PATCH", f"/repos/{self.repo}/issues/{number}", json_body={"state": "open"}
        )

    # ---- Labels ---------------------------------------------------------
    def list_labels(self) -> list[str]:
        data = self._paginate(f"/repos/{self.repo}/labels")
        return [
            entry["name"]
            for entry in data
            if isinstance(entry, dict) and isinstance(entry.get("name"), str)
        ]

    def create_label(self, *, name: str, color: str, description: str) -> None:
        self._request(
            "POST",
            f"/repos/{self.repo}/labels",
            json_body={"name": name, "color": color, "description": description},
        )

    # ---- Comments -----------------------------------------------------
    def list_pr_comments(self, pr_number: int) -> list[RemoteComment]:
        data = self._paginate(f"/repos/{self.repo}/issues/{pr_number}/comments")
        return [c for c in (_normalize_comment(e) for e in data) if c is not None]

    def create_issue_comment(self, *, number: int, body: str) -> RemoteComment:
        data = self._request(
            "POST",
            f"/repos/{self.repo}/issues/{number}/comments",
            json_body={"body": body},
        )
        comment = _normalize_comment(data)
        if comment is None:
            raise GitHubAPIError("GitHub API create comment response missing id")
        return comment

    def create_comment(self, *, pr_number: int, body: str) -> RemoteComment:
        # PR conversation comments live on the issues endpoint
        return self.create_issue_comment(number=pr_number, body=body)

    def update_comment(self, *, comment_id: int, body: str) -> str:
        data = self._request(
            "PATCH",
            f"/repos/{self.repo}/issues/comments/{comment_id}",
            json_body={"body": body},
        )
        url = data.get("html_url") if isinstance(data, dict) else None
        return url if isinstance(url, str) else ""


def _normalize_issue(entry: dict[str, Any]) -> RemoteIssue | None:
    number = entry.get("number")
    if not isinstance(number, int):
        return None
    labels: list[str] = []
    raw_labels = entry.get("labels")
    if isinstance(raw_labels, list):
        for lbl in raw_labels:
            if isinstance(lbl, dict):
                name = lbl.get("name")
                if isinstance(name, str):
                    labels.append(name)
            elif isinstance(lbl, str):
                labels.append(lbl)
    return RemoteIssue(
        number=number,
        title=str(entry.get("title") or ""),
        body=str(entry.get("body") or ""),
        state=str(entry.get("state") or "open").lower(),
        labels=tuple(labels),
        is_pull_request=bool(entry.get("pull_request")),
    )


def _normalize_comment(entry: Any) -> RemoteComment | None:
    if not isinstance(entry, dict):
        return None
    comment_id = entry.get("id")
    if not isinstance(comment_id, int):
        return None
    url = entry.get("html_url")
    return RemoteComment(
        id=comment_id,
        body=str(entry.get("body") or ""),
        url=url if isinstance(url, str) else None,
    )


__all__ = [
    "DEFAULT_API_URL",
    "GitHubAPIError",
    "GitHubRestClient",
]
