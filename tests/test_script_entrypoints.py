from __future__ import annotations

import json
from pathlib import Path

import pytest

from .util import run_script

ARGPARSE_SCRIPTS = [
    "analyze_commits",
    "cleanup_release_assets",
    "end_sprint",
    "generate_changelog",
    "plan_sprint",
    "recommend_version",
    "sprint_retro",
    "sprint_status",
    "switch_release",
    "transfer_issue",
    "update_release_notes",
    "wait_for_ci",
]


@pytest.mark.scripts
@pytest.mark.parametrize("name", ARGPARSE_SCRIPTS)
def test_help_exits_cleanly(name: str):
    r = run_script(name, ["--help"])
    assert r.returncode == 0, r.stderr
    assert "usage:" in r.stdout


@pytest.mark.scripts
def test_assign_release_help_prints_docstring():
    r = run_script("assign_release", ["--help"])
    assert r.returncode == 0, r.stderr
    assert "--all" in r.stdout


@pytest.mark.scripts
def test_workflow_trigger_hook_process(tmp_path: Path):
    r = run_script("workflow_trigger", [], cwd=tmp_path, stdin=json.dumps({"prompt": "work #7"}))
    assert r.returncode == 0, r.stderr
    payload = json.loads(r.stdout)
    assert payload["systemMessage"] == "⚡ Work trigger detected: #7"


@pytest.mark.scripts
def test_workflow_trigger_hook_process_ignores_garbage(tmp_path: Path):
    r = run_script("workflow_trigger", [], cwd=tmp_path, stdin="{not json")
    assert r.returncode == 0
    assert r.stdout == ""


@pytest.mark.scripts
def test_generate_changelog_process_from_pipe(tmp_path: Path):
    analysis = {"success": True, "data": {"commits": [{"type": "feat", "message": "add export"}]}}
    r = run_script(
        "generate_changelog",
        ["--version", "v0.8.0", "--date", "2026-10-18"],
        cwd=tmp_path,
        stdin=json.dumps(analysis),
    )
    assert r.returncode == 0, r.stderr
    assert r.stdout.startswith("## [0.8.0] - 2026-10-18\n\n### Added\n- Add export")


@pytest.mark.scripts
def test_transfer_issue_without_number_prints_usage():
    r = run_script("transfer_issue", [])
    assert r.returncode == 0, r.stderr
    assert r.stdout.startswith("=== Transfer Issue ===")
