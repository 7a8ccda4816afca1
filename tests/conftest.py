"""Pytest configuration for spectr-sync tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import sys
import textwrap
import time
from collections.abc import Callable
from pathlib import Path

import pytest

_TEST_START_TIMES: dict[str, float] = {}
_TEST_DURATIONS: list[tuple[str, float]] = []

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def make_change(tmp_path: Path) -> Callable[..., Path]:
    """Create ``spectr/changes/<change_id>`` under ``tmp_path``.

    ``specs`` maps capability name to delta spec text. Pass ``archive_name``
    to create the change under ``spectr/changes/archive`` instead.
    """

    def _make(
        change_id: str,
        proposal: str | None = "# Proposal\n\nWhy this change.\n",
        *,
        tasks: str | None = None,
        tasks_json: str | None = None,
        specs: dict[str, str] | None = None,
        archive_name: str | None = None,
    ) -> Path:
        base = tmp_path / "spectr" / "changes"
        path = base / "archive" / archive_name if archive_name else base / change_id
        path.mkdir(parents=True, exist_ok=True)
        if proposal is not None:
            (path / "proposal.md").write_text(textwrap.dedent(proposal), encoding="utf-8")
        if tasks is not None:
            (path / "tasks.md").write_text(textwrap.dedent(tasks), encoding="utf-8")
        if tasks_json is not None:
            (path / "tasks.json").write_text(tasks_json, encoding="utf-8")
        for capability, text in (specs or {}).items():
            cap_dir = path / "specs" / capability
            cap_dir.mkdir(parents=True, exist_ok=True)
            (cap_dir / "spec.md").write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    return _make


# --- Timing utilities to help identify slow/stalling tests ---


def pytest_runtest_setup(item):  # type: ignore
    _TEST_START_TIMES[item.nodeid] = time.perf_counter()


def pytest_runtest_teardown(item):  # type: ignore
    start = _TEST_START_TIMES.pop(item.nodeid, None)
    if start is not None:
        duration = time.perf_counter() - start
        _TEST_DURATIONS.append((item.nodeid, duration))


def pytest_sessionfinish(session, exitstatus):  # type: ignore
    # Print a simple sorted timing table at the end to spot slow tests
    if not _TEST_DURATIONS:
        return
    slow = sorted(_TEST_DURATIONS, key=lambda x: x[1], reverse=True)[:10]
    print("\n=== Slowest Tests (top 10) ===")
    for nodeid, secs in slow:
        print(f"{secs:0.3f}s  {nodeid}")
    total_time = sum(d for _, d in _TEST_DURATIONS)
    print(
        f"Total recorded test time: {total_time:0.3f}s over {len(_TEST_DURATIONS)} tests"
    )
