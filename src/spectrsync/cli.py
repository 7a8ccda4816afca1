"""spectr-sync CLI.

Subcommands:
  issues     -> reconcile tracking issues with spectr/changes (result JSON)
  pr-impact  -> create/update the impact comment on the current spectr PR
  impact     -> render the impact comment for a change locally (no token)

Settings come from ``--config`` (YAML) when given, otherwise from GitHub
Action inputs in the environment. Exit status: 0 when the run completed
(per-change failures are listed in the JSON), 2 on configuration errors,
1 on any other error that aborted the run.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import os
import sys
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from . import __version__
from .config import SyncSettings, config_from_inputs, load_config
from .detect import detect_pr_context
from .errors import ConfigError, classify_error
from .formatting import format_pr_comment
from .github_rest import GitHubRestClient
from .impact import calculate_impact
from .issue_sync import sync_issues
from .logging import StructuredLogger, configure_logging, get_logger
from .markers import is_valid_change_id
from .models import ImpactSummary, PRMode, SyncResult
from .pr_impact import run_pr_impact

REPO_HELP = "Override target repository (owner/repo)"

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", help="YAML config file (default: GitHub Action inputs)")
    p.add_argument("--workspace", help="Repository root containing spectr/changes")
    p.add_argument("--repo", help=REPO_HELP)
    p.add_argument("--dry-run", action="store_true", help="Plan only; no remote writes")
    p.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    p.add_argument("--no-dotenv", action="store_true", help="Do not load a .env file")


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="spectr-sync", description="Sync spectr change proposals with GitHub"
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pi = sub.add_parser("issues", help="Create/update/close tracking issues")
    _add_common(pi)

    pp = sub.add_parser("pr-impact", help="Post the impact comment on a spectr PR")
    _add_common(pp)

    pm = sub.add_parser("impact", help="Render a change's impact summary locally")
    pm.add_argument("change_id")
    pm.add_argument(
        "--mode", choices=[m.value for m in PRMode], default=PRMode.PROPOSAL.value
    )
    pm.add_argument("--json", action="store_true", help="Print the summary as JSON")
    _add_common(pm)
    return p


def _load_env(args: argparse.Namespace) -> dict[str, str]:
    if not args.no_dotenv:
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)
    return dict(os.environ)


def _settings(args: argparse.Namespace, env: Mapping[str, str]) -> SyncSettings:
    if args.config:
        settings = load_config(args.config, env)
    else:
        settings = config_from_inputs(env)
        # Invoking a subcommand directly asks for that feature unless an input says otherwise
        if "INPUT_SYNC-ISSUES" not in env:
            settings = dataclasses.replace(
                settings, issues=dataclasses.replace(settings.issues, enabled=True)
            )
        if "INPUT_PR-IMPACT" not in env:
            settings = dataclasses.replace(
                settings, pr_impact=dataclasses.replace(settings.pr_impact, enabled=True)
            )
    if args.repo:
        settings = dataclasses.replace(
            settings, github=dataclasses.replace(settings.github, repo=args.repo)
        )
    if args.workspace:
        settings = dataclasses.replace(settings, workspace=Path(args.workspace))
    if args.dry_run:
        settings = dataclasses.replace(
            settings,
            issues=dataclasses.replace(settings.issues, dry_run=True),
            pr_impact=dataclasses.replace(settings.pr_impact, dry_run=True),
        )
    if args.json_logs:
        settings = dataclasses.replace(
            settings, logging=dataclasses.replace(settings.logging, json_enabled=True)
        )
    return settings


def _client(settings: SyncSettings) -> GitHubRestClient:
    repo = settings.github.repository()
    return GitHubRestClient(
        token=settings.github.require_token(),
        repo=repo.full_name,
        base_url=settings.github.api_url,
    )


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _cmd_issues(
    args: argparse.Namespace, settings: SyncSettings, env: Mapping[str, str], log: StructuredLogger
) -> int:
    if not settings.issues.enabled:
        log.info("Issue sync is disabled")
        _print_json(SyncResult().as_dict())
        return 0
    result = sync_issues(settings.issues, settings.workspace, _client(settings), log)
    _print_json(result.as_dict())
    return 0


def _cmd_pr_impact(
    args: argparse.Namespace, settings: SyncSettings, env: Mapping[str, str], log: StructuredLogger
) -> int:
    context = detect_pr_context(env)
    client = None
    repo = None
    # Credentials are only required when a comment may be written
    if settings.pr_impact.enabled and context.is_spectr_pr:
        client = _client(settings)
        repo = settings.github.repository()
    result = run_pr_impact(
        settings.pr_impact, settings.workspace, context, client, repo=repo, logger=log
    )
    _print_json(result.as_dict())
    return 0


def _summary_dict(summary: ImpactSummary) -> dict[str, Any]:
    return {
        "change_id": summary.change_id,
        "mode": summary.mode.value,
        "archived": summary.archived,
        "capabilities": list(summary.capabilities),
        "counts": summary.counts.as_dict(),
        "changes": [
            {
                "capability": c.capability,
                "operation": c.operation.value,
                "requirement": c.requirement_name,
                "previous_name": c.previous_name,
            }
            for c in summary.changes
        ],
    }


def _cmd_impact(
    args: argparse.Namespace, settings: SyncSettings, env: Mapping[str, str], log: StructuredLogger
) -> int:
    if not is_valid_change_id(args.change_id):
        raise ConfigError(f"Invalid change id: {args.change_id!r}")
    summary = calculate_impact(args.change_id, settings.workspace, args.mode)
    if args.json:
        _print_json(_summary_dict(summary))
    else:
        print(format_pr_comment(summary))
    return 0


_HANDLERS: dict[str, Callable[..., int]] = {
    "issues": _cmd_issues,
    "pr-impact": _cmd_pr_impact,
    "impact": _cmd_impact,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    log = get_logger()
    try:
        env = _load_env(args)
        settings = _settings(args, env)
        log = configure_logging(settings.logging.json_enabled, settings.logging.level)
        return _HANDLERS[args.cmd](args, settings, env, log)
    except ConfigError as exc:
        log.log_error("Configuration error", error=classify_error(exc).message)
        print(f"[error] {classify_error(exc).message}", file=sys.stderr)
        return 2
    except Exception as exc:  # noqa: BLE001 - process boundary
        info = classify_error(exc)
        log.log_error(f"{args.cmd} failed", error=info.message, category=info.category)
        print(f"[error] {info.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
