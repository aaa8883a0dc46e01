"""Version-threshold migrations for installed projects.

A migration runs when the project's installed version is strictly lower than
its threshold. Selected migrations run in ascending threshold order against the
same live ``ProjectConfig``; the version stamp is only written after every one
of them has succeeded. There is no rollback: a run that fails part-way leaves
earlier migrations applied and the old version stamped, so the next run
repeats them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as _dt
from pathlib import Path
import shutil
import sys
from typing import Any, Callable, Sequence

from idpf.application.deployment import deploy_rules
from idpf.application.detection import detect_github_workflow, parse_existing_installation
from idpf.application.generation import write_claude_md, write_settings_local
from idpf.application.orphans import ReconcileResult, reconcile
from idpf.domain.project_config import DEPRECATED_FIELDS, ProjectConfig
from idpf.domain.versioning import compare_versions, parse_version
from idpf.infrastructure.framework_source import UNKNOWN_VERSION, read_framework_version
from idpf.infrastructure.fs_atomic import atomic_write_json, read_json
from idpf.infrastructure.manifest_store import Manifest, read_manifest, write_manifest

CONFIG_FILENAME = "framework-config.json"

MigrateFn = Callable[[Path, Path, ProjectConfig], list[str]]


class ProjectNotInstalledError(RuntimeError):
    pass


class MigrationError(RuntimeError):
    def __init__(self, version: str, cause: BaseException) -> None:
        super().__init__(f"Migration {version} failed: {cause}")
        self.version = version


@dataclass(frozen=True)
class Migration:
    version: str
    description: str
    migrate: MigrateFn


@dataclass
class MigrationReport:
    installed_version: str
    target_version: str
    applied: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    cleanup: ReconcileResult = field(default_factory=ReconcileResult)


def _rules_auto_loading(project_dir: Path, framework_path: Path, config: ProjectConfig) -> list[str]:
    messages: list[str] = []
    startup = project_dir / "STARTUP.md"
    if startup.exists():
        startup.unlink()
        messages.append("✓ Removed STARTUP.md (no longer needed)")

    framework = config.process_framework or "IDPF-Structured"
    version = read_framework_version(framework_path)
    manifest = read_manifest(project_dir) or Manifest(version=version, deployed_at=_dt.date.today().isoformat())
    rules = deploy_rules(
        project_dir,
        framework_path,
        framework,
        config.domain_specialist,
        detect_github_workflow(project_dir),
        version,
        manifest,
    )
    write_manifest(project_dir, manifest)
    if rules.anti_hallucination:
        messages.append("✓ Created .claude/rules/01-anti-hallucination.md")
    if rules.github_workflow:
        messages.append("✓ Created .claude/rules/02-github-workflow.md")
    if rules.startup:
        messages.append("✓ Created .claude/rules/03-startup.md")

    existing = parse_existing_installation(project_dir)
    write_claude_md(
        project_dir,
        str(framework_path),
        framework,
        config.domain_specialist,
        existing.project_instructions,
    )
    messages.append("✓ Updated CLAUDE.md (simplified)")
    return messages


def _settings_hooks(project_dir: Path, framework_path: Path, config: ProjectConfig) -> list[str]:
    if not detect_github_workflow(project_dir):
        return ["⊘ No workflow hook installed, skipping settings fix"]
    status = write_settings_local(project_dir, True)
    return [
        {
            "created": "✓ Created .claude/settings.local.json (with hooks)",
            "merged": "✓ Added hooks to .claude/settings.local.json",
            "unchanged": "⊘ Hooks already configured in settings.local.json",
            "unreadable": "⚠ Could not update settings.local.json: not valid JSON",
        }[status]
    ]


MIGRATIONS: tuple[Migration, ...] = (
    Migration("2.9.0", "Migrate to .claude/rules/ auto-loading", _rules_auto_loading),
    Migration("2.9.2", "Fix settings.local.json hooks configuration", _settings_hooks),
)


def applicable_migrations(installed_version: str, migrations: Sequence[Migration] = MIGRATIONS) -> list[Migration]:
    selected = [m for m in migrations if compare_versions(installed_version, m.version) < 0]
    return sorted(selected, key=lambda m: parse_version(m.version))


def platform_key() -> str:
    return "win32" if sys.platform == "win32" else "posix"


def orphan_config(
    project_dir: Path, config: ProjectConfig, *, enable_github_workflow: bool | None = None
) -> dict[str, Any]:
    if enable_github_workflow is None:
        enable_github_workflow = detect_github_workflow(project_dir)
    return {
        "domainSpecialist": config.domain_specialist,
        "enableGitHubWorkflow": enable_github_workflow,
        "platform": platform_key(),
    }


def load_project_config(project_dir: Path) -> ProjectConfig:
    path = project_dir / CONFIG_FILENAME
    if not path.is_file():
        raise ProjectNotInstalledError(
            f"No {CONFIG_FILENAME} found in {project_dir}. Run install.py without --migrate first."
        )
    data = read_json(path)
    if not isinstance(data, dict):
        raise ProjectNotInstalledError(f"Could not read {path}")
    return ProjectConfig.from_dict(data)


def save_project_config(project_dir: Path, config: ProjectConfig) -> None:
    """Write the normalized config; an old-schema file on disk is first copied to ``.bak``."""
    path = project_dir / CONFIG_FILENAME
    on_disk = read_json(path)
    if isinstance(on_disk, dict) and any(name in on_disk for name in DEPRECATED_FIELDS):
        shutil.copyfile(path, path.with_name(path.name + ".bak"))
    atomic_write_json(path, config.to_dict())


def apply_migrations(
    project_dir: Path,
    framework_path: Path,
    config: ProjectConfig,
    report: MigrationReport,
    *,
    migrations: Sequence[Migration] = MIGRATIONS,
    echo: Callable[[str], None] | None = None,
) -> None:
    for migration in applicable_migrations(config.framework_version, migrations):
        if echo:
            echo(f"Migration: {migration.version} - {migration.description}")
        try:
            messages = migration.migrate(project_dir, framework_path, config)
        except Exception as exc:
            raise MigrationError(migration.version, exc) from exc
        report.applied.append(migration.version)
        for message in messages:
            report.messages.append(message)
            if echo:
                echo(f"  {message}")


def run_migrations(
    project_dir: Path,
    framework_path: Path,
    *,
    migrations: Sequence[Migration] = MIGRATIONS,
    date: str | None = None,
    echo: Callable[[str], None] | None = None,
) -> MigrationReport:
    config = load_project_config(project_dir)
    current = read_framework_version(framework_path)
    report = MigrationReport(installed_version=config.framework_version, target_version=current)
    apply_migrations(project_dir, framework_path, config, report, migrations=migrations, echo=echo)

    report.cleanup = reconcile(project_dir, orphan_config(project_dir, config))

    if current != UNKNOWN_VERSION:
        config.stamp(current, date_field="migratedDate", date=date or _dt.date.today().isoformat())
    save_project_config(project_dir, config)
    return report
