from __future__ import annotations

import json
from pathlib import Path

import pytest

from idpf.application.updater import UpdateSummary, apply_transition, update_tracked_projects
from idpf.domain.project_config import ProjectConfig
from idpf.domain.transitions import FrameworkChoice
from idpf.infrastructure.tracking import read_installed_projects, track_project

from .util import read_json_file, read_text, write


def _installed(project: Path, version: str, framework: str = "IDPF-Structured") -> Path:
    write(
        project / "framework-config.json",
        json.dumps(
            {
                "frameworkVersion": version,
                "projectType": {"processFramework": framework, "domainSpecialist": "Backend-Specialist"},
            }
        ),
    )
    write(project / "CLAUDE.md", f"**Process Framework:** {framework}\n**Domain Specialist:** Backend-Specialist\n")
    return project


@pytest.mark.installer
def test_update_tracked_projects_counts_each_outcome(tmp_path: Path, framework: Path):
    stale = _installed(tmp_path / "stale", "2.8.0")
    current = _installed(tmp_path / "current", "2.10.0")
    no_config = tmp_path / "no-config"
    no_config.mkdir()
    gone = tmp_path / "gone"
    for path in (stale, current, no_config, gone):
        track_project(framework, path, "2.8.0", today="2026-01-01")

    lines: list[str] = []
    summary = update_tracked_projects(framework, echo=lines.append, date="2026-10-18")

    assert summary.to_dict() == {"updated": 1, "current": 1, "removed": 1, "failed": 1}
    config = read_json_file(stale / "framework-config.json")
    assert config["frameworkVersion"] == "2.10.0"
    assert config["installedDate"] == "2026-10-18"
    assert (stale / ".claude" / ".manifest.json").is_file()
    assert (stale / "run_claude.sh").is_file() or (stale / "run_claude.cmd").is_file()

    tracked = {p.path: p for p in read_installed_projects(framework)}
    assert str(gone) not in tracked
    assert tracked[str(stale)].installed_version == "2.10.0"
    assert any("Already at 2.10.0" in line for line in lines)
    assert any("Directory not found" in line for line in lines)


@pytest.mark.installer
def test_update_tracked_projects_without_registry(framework: Path):
    assert update_tracked_projects(framework) == UpdateSummary()


@pytest.mark.installer
def test_transition_chooser_switches_current_project(tmp_path: Path, framework: Path):
    project = _installed(tmp_path / "vibe", "2.10.0", framework="IDPF-Vibe")
    track_project(framework, project, "2.10.0")
    offered: list[list[str]] = []

    def choose(current: str, targets: list[FrameworkChoice]) -> str:
        offered.append([t.value for t in targets])
        return "IDPF-Agile"

    summary = update_tracked_projects(framework, choose, date="2026-10-18")

    assert summary.current == 1
    assert offered == [["IDPF-Structured", "IDPF-Agile"]]
    assert "**Process Framework:** IDPF-Agile" in read_text(project / "CLAUDE.md")
    assert (project / ".claude" / "skills" / "tdd-red-phase" / "SKILL.md").is_file()
    config = read_json_file(project / "framework-config.json")
    assert config["projectType"]["processFramework"] == "IDPF-Agile"
    assert config["installedDate"] == "2026-10-18"


@pytest.mark.installer
def test_transition_is_skipped_for_lts_and_invalid_choices(project: Path, framework: Path):
    lts = ProjectConfig.from_dict({"projectType": {"processFramework": "IDPF-LTS"}})
    lines: list[str] = []
    assert apply_transition(project, framework, lts, lambda c, t: "IDPF-Agile", lines.append) is False
    assert lines == ["    Framework: IDPF-LTS (terminal - no transitions)"]

    agile = ProjectConfig.from_dict({"projectType": {"processFramework": "IDPF-Agile"}})
    assert apply_transition(project, framework, agile, lambda c, t: "IDPF-Vibe", lines.append) is False
    assert apply_transition(project, framework, agile, lambda c, t: None, lines.append) is False
    assert agile.process_framework == "IDPF-Agile"
