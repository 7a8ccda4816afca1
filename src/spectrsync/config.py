"""Configuration for spectr-sync runs.

Two sources are supported and both produce the same ``SyncSettings``:

- a YAML file (``load_config``) with ``github``, ``issues``, ``pr_impact`` and
  ``logging`` sections; string values starting with ``$`` are resolved from
  the environment
- GitHub Action inputs (``config_from_inputs``), read from ``INPUT_*``
  variables exactly as the action runner exports them

Settings are built once at the process boundary and passed down explicitly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import ConfigError

DEFAULT_LABELS = ["spectr", "change-proposal"]
DEFAULT_TITLE_PREFIX = "[Spectr Change]"
DEFAULT_SPECTR_LABEL = "spectr-managed"
DEFAULT_CLOSE_COMMENT = "This change has been archived. Closing the tracking issue."
DEFAULT_API_URL = "https://api.github.com"


@dataclass(frozen=True)
class RepoContext:
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_repository(value: str | None) -> RepoContext:
    if not value:
        raise ConfigError("Repository not configured; expected owner/repo (GITHUB_REPOSITORY)")
    owner, sep, repo = value.strip().partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise ConfigError(f"Invalid repository {value!r}; expected owner/repo")
    return RepoContext(owner=owner, repo=repo)


@dataclass(frozen=True)
class IssueSyncConfig:
    enabled: bool = True
    labels: list[str] = field(default_factory=lambda: list(DEFAULT_LABELS))
    title_prefix: str = DEFAULT_TITLE_PREFIX
    close_on_archive: bool = True
    update_existing: bool = True
    spectr_label: str = DEFAULT_SPECTR_LABEL
    # Posted before closing an archived change's issue; None disables it
    close_comment: str | None = DEFAULT_CLOSE_COMMENT
    dry_run: bool = False

    @property
    def all_labels(self) -> list[str]:
        """Configured labels plus the management label, without duplicates."""
        labels = list(self.labels)
        if self.spectr_label not in labels:
            labels.append(self.spectr_label)
        return labels


@dataclass(frozen=True)
class PRImpactConfig:
    enabled: bool = True
    update_comment: bool = True
    dry_run: bool = False


@dataclass(frozen=True)
class GitHubConfig:
    repo: str | None = None
    token: str | None = None
    api_url: str = DEFAULT_API_URL

    def repository(self) -> RepoContext:
        return parse_repository(self.repo)

    def require_token(self) -> str:
        if not self.token:
            raise ConfigError(
                "GitHub token is required; set github.token, GITHUB_TOKEN or the github-token input"
            )
        return self.token


@dataclass(frozen=True)
class LoggingConfig:
    json_enabled: bool = False
    level: str = "INFO"


@dataclass(frozen=True)
class SyncSettings:
    github: GitHubConfig = field(default_factory=GitHubConfig)
    issues: IssueSyncConfig = field(default_factory=IssueSyncConfig)
    pr_impact: PRImpactConfig = field(default_factory=PRImpactConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    workspace: Path = field(default_factory=Path.cwd)


def _resolve_env_var(value: Any, env: Mapping[str, str]) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith("$"):
        return env.get(value[1:], value)  # Fallback to original if not found
    return value


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "yes", "on", "1"):
        return True
    if text in ("false", "no", "off", "0"):
        return False
    if not text:
        return default
    raise ConfigError(f"Expected a boolean, got {value!r}")


def parse_labels(value: Any) -> list[str]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = [str(v) for v in value]
    else:
        raise ConfigError(f"Labels must be a list or comma-separated string, got {value!r}")
    return [label.strip() for label in items if label.strip()]


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section {name!r} must be a mapping")
    return cast(dict[str, Any], value)


def _optional(value: Any, env: Mapping[str, str]) -> str | None:
    resolved = _resolve_env_var(value, env)
    if not resolved or (isinstance(resolved, str) and resolved.startswith("$")):
        return None
    return str(resolved)


def load_config(path: str | Path, env: Mapping[str, str] | None = None) -> SyncSettings:
    env = os.environ if env is None else env
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Configuration file not found: {p}")
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {p}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root in {p} must be a mapping")

    gh = _section(raw, "github")
    issues = _section(raw, "issues")
    pr = _section(raw, "pr_impact")
    logging_config = _section(raw, "logging")

    close_comment = issues.get("close_comment", DEFAULT_CLOSE_COMMENT)
    workspace = _resolve_env_var(raw.get("workspace"), env)

    return SyncSettings(
        github=GitHubConfig(
            repo=_optional(gh.get("repo", "$GITHUB_REPOSITORY"), env),
            token=_optional(gh.get("token", "$GITHUB_TOKEN"), env),
            api_url=str(_resolve_env_var(gh.get("api_url", DEFAULT_API_URL), env)),
        ),
        issues=IssueSyncConfig(
            enabled=_as_bool(issues.get("enabled"), True),
            labels=parse_labels(issues.get("labels", DEFAULT_LABELS)),
            title_prefix=str(issues.get("title_prefix", DEFAULT_TITLE_PREFIX)),
            close_on_archive=_as_bool(issues.get("close_on_archive"), True),
            update_existing=_as_bool(issues.get("update_existing"), True),
            spectr_label=str(issues.get("spectr_label") or DEFAULT_SPECTR_LABEL),
            close_comment=str(close_comment) if close_comment else None,
            dry_run=_as_bool(issues.get("dry_run"), False),
        ),
        pr_impact=PRImpactConfig(
            enabled=_as_bool(pr.get("enabled"), True),
            update_comment=_as_bool(pr.get("update_comment"), True),
            dry_run=_as_bool(pr.get("dry_run"), False),
        ),
        logging=LoggingConfig(
            json_enabled=_as_bool(logging_config.get("json_enabled"), False),
            level=str(logging_config.get("level", "INFO")).upper(),
        ),
        workspace=p.parent / workspace if isinstance(workspace, str) and workspace else p.parent,
    )


def _input(env: Mapping[str, str], name: str) -> str:
    # The runner exports inputs as INPUT_<NAME> with spaces replaced and upper-cased
    return env.get(f"INPUT_{name.replace(' ', '_').upper()}", "").strip()


def config_from_inputs(env: Mapping[str, str] | None = None) -> SyncSettings:
    """Settings from GitHub Action inputs.

    Feature switches are off unless the input is ``true``; the other boolean
    inputs are on unless the input is ``false``.
    """
    env = os.environ if env is None else env
    token = _input(env, "github-token") or env.get("GITHUB_TOKEN") or None
    workspace = env.get("GITHUB_WORKSPACE")
    return SyncSettings(
        github=GitHubConfig(
            repo=env.get("GITHUB_REPOSITORY") or None,
            token=token,
            api_url=env.get("GITHUB_API_URL") or DEFAULT_API_URL,
        ),
        issues=IssueSyncConfig(
            enabled=_input(env, "sync-issues").lower() == "true",
            labels=parse_labels(_input(env, "issue-labels") or ",".join(DEFAULT_LABELS)),
            title_prefix=_input(env, "issue-title-prefix") or DEFAULT_TITLE_PREFIX,
            close_on_archive=_input(env, "close-on-archive").lower() != "false",
            update_existing=_input(env, "update-existing").lower() != "false",
            spectr_label=_input(env, "spectr-label") or DEFAULT_SPECTR_LABEL,
        ),
        pr_impact=PRImpactConfig(
            enabled=_input(env, "pr-impact").lower() == "true",
            update_comment=_input(env, "pr-impact-update-comment").lower() != "false",
        ),
        logging=LoggingConfig(
            json_enabled=env.get("SPECTR_SYNC_JSON_LOGS", "").lower() == "true",
            level="DEBUG" if env.get("RUNNER_DEBUG") == "1" else "INFO",
        ),
        workspace=Path(workspace) if workspace else Path.cwd(),
    )


__all__ = [
    "ConfigError",
    "RepoContext",
    "parse_repository",
    "parse_labels",
    "IssueSyncConfig",
    "PRImpactConfig",
    "GitHubConfig",
    "LoggingConfig",
    "SyncSettings",
    "load_config",
    "config_from_inputs",
]
