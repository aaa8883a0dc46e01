"""Bring every tracked project up to the framework checkout's version."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as _dt
from pathlib import Path
from typing import Callable

from idpf.application.deployment import deploy_project_files, deploy_skills
from idpf.application.detection import detect_github_workflow, parse_existing_installation
from idpf.application.generation import write_claude_md
from idpf.application.migrations import (
    CONFIG_FILENAME,
    MigrationReport,
    apply_migrations,
    orphan_config,
    platform_key,
    save_project_config,
)
from idpf.application.orphans import reconcile
from idpf.domain.project_config import ProjectConfig
from idpf.domain.transitions import FrameworkChoice, valid_transition_targets
from idpf.domain.versioning import compare_versions
from idpf.infrastructure.framework_source import read_framework_version
from idpf.infrastructure.fs_atomic import read_json
from idpf.infrastructure.tracking import read_installed_projects, track_project, untrack_project

ChooseTransition = Callable[[str, list[FrameworkChoice]], "str | None"]
Echo = Callable[[str], None]


@dataclass
class UpdateSummary:
    updated: int = 0
    current: int = 0
    removed: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"updated": self.updated, "current": self.current, "removed": self.removed, "failed": self.failed}


def _noop(_message: str) -> None:
    return None


def apply_transition(
    project_dir: Path,
    framework_path: Path,
    config: ProjectConfig,
    choose_transition: ChooseTransition | None,
    echo: Echo,
) -> bool:
    """Ask ``choose_transition`` for a new framework; regenerate CLAUDE.md and skills when it changes."""
    current = config.process_framework
    if not current or choose_transition is None:
        return False
    targets = valid_transition_targets(current)
    if not targets:
        if current == "IDPF-LTS":
            echo(f"    Framework: {current} (terminal - no transitions)")
        return False
    chosen = choose_transition(current, targets)
    if not chosen or chosen == current or chosen not in {t.value for t in targets}:
        return False

    config.process_framework = chosen
    echo(f"    Framework: {current} → {chosen}")
    existing = parse_existing_installation(project_dir)
    write_claude_md(project_dir, str(framework_path), chosen, config.domain_specialist, existing.project_instructions)
    echo("      Regenerated CLAUDE.md")
    for skill in deploy_skills(project_dir, framework_path, chosen):
        echo(f"      Deployed: {skill}")
    return True


def update_project(
    project_dir: Path,
    framework_path: Path,
    config: ProjectConfig,
    current_version: str,
    *,
    choose_transition: ChooseTransition | None = None,
    echo: Echo = _noop,
    date: str,
) -> None:
    apply_transition(project_dir, framework_path, config, choose_transition, echo)

    report = MigrationReport(installed_version=config.framework_version, target_version=current_version)
    apply_migrations(project_dir, framework_path, config, report, echo=lambda m: echo(f"      {m}"))

    enable_workflow = detect_github_workflow(project_dir)
    deployment = deploy_project_files(
        project_dir,
        framework_path,
        config.process_framework or "IDPF-Structured",
        config.domain_specialist,
        enable_workflow,
        current_version,
        platform=platform_key(),
        date=date,
    )
    if deployment.manifest is not None:
        for key in sorted(deployment.manifest.entries):
            echo(f"      Updated: {key}")
    for skill in deployment.skills:
        echo(f"      Updated: {skill}")

    cleanup = reconcile(project_dir, orphan_config(project_dir, config))
    for removed in cleanup.removed:
        echo(f"      Removed: {removed}")

    config.stamp(current_version, date_field="installedDate", date=date)
    save_project_config(project_dir, config)


def update_tracked_projects(
    framework_path: Path,
    choose_transition: ChooseTransition | None = None,
    *,
    echo: Echo = _noop,
    date: str | None = None,
) -> UpdateSummary:
    summary = UpdateSummary()
    projects = read_installed_projects(framework_path)
    if not projects:
        return summary
    current_version = read_framework_version(framework_path)
    stamp_date = date or _dt.date.today().isoformat()

    for project in projects:
        project_dir = Path(project.path)
        if not project_dir.exists():
            echo(f"  ✗ {project.path}")
            echo("    Directory not found - removing from tracking")
            untrack_project(framework_path, project.path)
            summary.removed += 1
            continue

        config_path = project_dir / CONFIG_FILENAME
        if not config_path.is_file():
            echo(f"  ⚠ {project.path}")
            echo(f"    No {CONFIG_FILENAME} - skipping")
            summary.failed += 1
            continue
        data = read_json(config_path)
        if not isinstance(data, dict):
            echo(f"  ⚠ {project.path}")
            echo(f"    Could not read {CONFIG_FILENAME} - skipping")
            summary.failed += 1
            continue
        config = ProjectConfig.from_dict(data)

        if compare_versions(config.framework_version, current_version) >= 0:
            echo(f"  ✓ {project.path}")
            echo(f"    Already at {config.framework_version}")
            if apply_transition(project_dir, framework_path, config, choose_transition, echo):
                config.set("installedDate", stamp_date)
                save_project_config(project_dir, config)
            summary.current += 1
            continue

        echo(f"  → {project.path}")
        echo(f"    Updating {config.framework_version} → {current_version}")
        try:
            update_project(
                project_dir,
                framework_path,
                config,
                current_version,
                choose_transition=choose_transition,
                echo=echo,
                date=stamp_date,
            )
            track_project(framework_path, project.path, current_version, today=stamp_date)
        except Exception as exc:
            echo(f"    ✗ Failed: {exc}")
            summary.failed += 1
            continue
        echo("    ✓ Updated successfully")
        summary.updated += 1
    return summary
