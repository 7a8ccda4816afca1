"""spectr-sync - keep GitHub in step with spectr change proposals.

High-level public API:

from spectrsync import GitHubRestClient, load_config, sync_issues

settings = load_config('spectr-sync.yaml')
client = GitHubRestClient(token=settings.github.require_token(), repo=settings.github.repo)
result = sync_issues(settings.issues, settings.workspace, client)
print(result.as_dict()['totals'])

``run_pr_impact`` does the same for the impact comment of a spectr pull
request, and ``calculate_impact`` / ``format_pr_comment`` render it locally.
"""

from __future__ import annotations

# Defined before the submodule imports below; github_rest reads it for the User-Agent
__version__ = "0.1.0"

from .config import SyncSettings, config_from_inputs, load_config  # noqa: E402
from .delta_parser import parse_delta, parse_delta_file  # noqa: E402
from .detect import PRContext, detect_pr_context, parse_spectr_branch  # noqa: E402
from .discovery import discover_active, discover_archived  # noqa: E402
from .errors import ConfigError  # noqa: E402
from .formatting import format_issue_body, format_pr_comment  # noqa: E402
from .github_rest import GitHubAPIError, GitHubRestClient  # noqa: E402
from .impact import calculate_impact  # noqa: E402
from .issue_sync import sync_issues  # noqa: E402
from .pr_impact import run_pr_impact  # noqa: E402

__all__ = [
    "__version__",
    "ConfigError",
    "GitHubAPIError",
    "GitHubRestClient",
    "PRContext",
    "SyncSettings",
    "calculate_impact",
    "config_from_inputs",
    "detect_pr_context",
    "discover_active",
    "discover_archived",
    "format_issue_body",
    "format_pr_comment",
    "load_config",
    "parse_delta",
    "parse_delta_file",
    "parse_spectr_branch",
    "run_pr_impact",
    "sync_issues",
]
