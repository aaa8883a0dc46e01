#!/usr/bin/env python3
"""
IDPF Framework - Project Installer
Deploys an IDPF framework checkout into a project directory.

Features:
- install / reinstall with framework transition validation
- dry-run support
- migration of an existing installation (--migrate)
- update of every tracked project (--update-tracked)
- uninstall (manifest-based; deletes only what was installed)
- manifest tracking (.claude/.manifest.json)

NOTE:
- The framework checkout is never modified except for installed-projects.json.
- Files outside <project>/.claude and the root launchers are never deleted.
"""

from __future__ import annotations

import argparse
import os
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from idpf.application.deployment import (
    CATEGORY_DIRS,
    deploy_git_pre_push_hook,
    deploy_project_files,
)
from idpf.application.detection import (
    ExistingInstallation,
    check_git_clean_state,
    check_prerequisites,
    detect_github_workflow,
    detect_language,
    parse_existing_installation,
)
from idpf.application.fetch_updates import FetchError, fetch_updates
from idpf.application.generation import render_framework_config, today, write_claude_md, write_settings_local
from idpf.application.migrations import (
    CONFIG_FILENAME,
    MigrationError,
    ProjectNotInstalledError,
    orphan_config,
    platform_key,
    run_migrations,
    save_project_config,
)
from idpf.application.orphans import reconcile
from idpf.application.updater import update_tracked_projects
from idpf.domain.file_rules import INSTALLED_FILES, is_known_installer_file
from idpf.domain.project_config import ProjectConfig
from idpf.domain.transitions import (
    DEFAULT_SPECIALIST,
    DOMAIN_SPECIALISTS,
    PROCESS_FRAMEWORKS,
    FrameworkChoice,
    is_valid_transition,
    transition_block_reason,
)
from idpf.infrastructure.framework_source import (
    FrameworkSourceError,
    parse_template_manifest,
    precheck_framework,
    read_framework_version,
    resolve_framework_path,
)
from idpf.infrastructure.fs_atomic import read_json
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.manifest_store import manifest_path, modified_entries, read_manifest
from idpf.infrastructure.output import eprint
from idpf.infrastructure.tracking import track_project, untrack_project

VERSION = "0.18.0"

DEFAULT_FRAMEWORK = "IDPF-Structured"

PRE_PUSH_MESSAGES = {
    "not-git-repo": "⏭️  .git/hooks/pre-push (not a git repository)",
    "hook-exists": "⏭️  .git/hooks/pre-push (existing hook preserved)",
    "source-not-found": "⚠️  .git/hooks/pre-push (source not found)",
}

SETTINGS_MESSAGES = {
    "created": "✅ Created .claude/settings.local.json",
    "merged": "✅ Added workflow hook to .claude/settings.local.json",
    "unchanged": "ℹ️  .claude/settings.local.json already configured",
    "unreadable": "⚠️  Could not update .claude/settings.local.json: not valid JSON",
}


def is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


@dataclass(frozen=True)
class InstallPlan:
    framework_path: Path
    project_dir: Path
    process_framework: str
    domain_specialist: str
    enable_github_workflow: bool
    version: str

    @property
    def claude_dir(self) -> Path:
        return self.project_dir / ".claude"


def precheck_source(framework_path: Path | None, which: Callable[[str], str | None] = shutil.which) -> list[str]:
    """Human-readable precheck failures; empty when installation can proceed."""
    if framework_path is None:
        return ["framework path not set (use --framework-path or IDPF_FRAMEWORK_PATH)"]
    if not framework_path.is_dir():
        return [f"framework path does not exist: {framework_path}"]
    problems = [f"missing {name} in {framework_path}" for name in precheck_framework(framework_path)]
    report = check_prerequisites(which)
    problems.extend(f"{p.name} is required but not found. Install from: {p.url}" for p in report.missing)
    for prereq in report.optional:
        print(f"ℹ️  Optional: {prereq.name} not found ({prereq.url})")
    return problems


def resolve_plan(args: argparse.Namespace, framework_path: Path, existing: ExistingInstallation) -> InstallPlan:
    project_dir = args.project_dir.resolve()
    framework = args.framework or existing.locked_framework or DEFAULT_FRAMEWORK
    specialist = args.specialist or existing.domain_specialist or DEFAULT_SPECIALIST
    if args.github_workflow is None:
        enable_workflow = detect_github_workflow(project_dir)
    else:
        enable_workflow = args.github_workflow
    return InstallPlan(
        framework_path=framework_path.resolve(),
        project_dir=project_dir,
        process_framework=framework,
        domain_specialist=specialist,
        enable_github_workflow=enable_workflow,
        version=read_framework_version(framework_path),
    )


def build_config(plan: InstallPlan) -> ProjectConfig:
    """New framework-config.json content, keeping unknown keys of an existing file."""
    try:
        template = parse_template_manifest(plan.framework_path)
    except FrameworkSourceError as e:
        print(f"ℹ️  Template manifest skipped: {e}")
        template = None
    rendered = render_framework_config(
        plan.project_dir,
        str(plan.framework_path),
        plan.version,
        plan.process_framework,
        plan.domain_specialist,
        language=detect_language(plan.project_dir),
        template=template,
    )
    existing = read_json(plan.project_dir / CONFIG_FILENAME)
    if isinstance(existing, dict):
        merged = dict(existing)
        merged.update(rendered)
        return ProjectConfig.from_dict(merged)
    return ProjectConfig.from_dict(rendered)


def print_plan(plan: InstallPlan) -> None:
    print(f"Framework Path:    {plan.framework_path}")
    print(f"Target Directory:  {plan.project_dir}")
    print(f"Process Framework: {plan.process_framework}")
    print(f"Domain Specialist: {plan.domain_specialist}")
    print(f"GitHub Workflow:   {'enabled' if plan.enable_github_workflow else 'disabled'}")
    print(f"Framework Version: {plan.version}")


def locally_modified(project_dir: Path) -> list[str]:
    """Manifest keys whose deployed file still exists but was edited since the last install."""
    manifest = read_manifest(project_dir)
    if manifest is None:
        return []
    edited: list[str] = []
    for key in modified_entries(project_dir, manifest, CATEGORY_DIRS):
        category, _, name = key.partition("/")
        if (project_dir / CATEGORY_DIRS[category] / name).is_file():
            edited.append(key)
    return edited


def install(plan: InstallPlan, existing: ExistingInstallation, dry_run: bool) -> int:
    if dry_run:
        print("\n[DRY-RUN] Would write:")
        print(f"  [DRY-RUN] {plan.project_dir / CONFIG_FILENAME}")
        print(f"  [DRY-RUN] {plan.project_dir / 'CLAUDE.md'}")
        print(f"  [DRY-RUN] {plan.claude_dir / 'rules'}/")
        print(f"  [DRY-RUN] {plan.claude_dir / 'commands'}/")
        print(f"  [DRY-RUN] {plan.claude_dir / 'settings.local.json'}")
        if plan.enable_github_workflow:
            print(f"  [DRY-RUN] {plan.claude_dir / 'hooks'}/")
            print(f"  [DRY-RUN] {plan.claude_dir / 'scripts'}/")
            print(f"  [DRY-RUN] {plan.project_dir / '.git' / 'hooks' / 'pre-push'}")
        print("\n" + "=" * 60)
        print("✅ DRY-RUN complete (no changes were made).")
        print("=" * 60)
        return 0

    config = build_config(plan)
    save_project_config(plan.project_dir, config)
    print(f"✅ {CONFIG_FILENAME}")

    write_claude_md(
        plan.project_dir,
        str(plan.framework_path),
        plan.process_framework,
        plan.domain_specialist,
        existing.project_instructions,
    )
    print("✅ CLAUDE.md" + (" (project instructions preserved)" if existing.project_instructions else ""))

    for key in locally_modified(plan.project_dir):
        print(f"⚠️  Overwriting locally modified file: {key}")

    report = deploy_project_files(
        plan.project_dir,
        plan.framework_path,
        plan.process_framework,
        plan.domain_specialist,
        plan.enable_github_workflow,
        plan.version,
        platform=platform_key(),
    )
    if report.rules.anti_hallucination:
        print("✅ .claude/rules/01-anti-hallucination.md")
    else:
        print("⚠️  .claude/rules/01-anti-hallucination.md (source not found)")
    if plan.enable_github_workflow:
        if report.rules.github_workflow:
            print("✅ .claude/rules/02-github-workflow.md")
        else:
            print("⚠️  .claude/rules/02-github-workflow.md (source not found)")
    print("✅ .claude/rules/03-startup.md")
    for name in report.core_commands:
        print(f"✅ .claude/commands/{name}.md")
    for name in report.run_scripts:
        print(f"✅ {name}")

    if plan.enable_github_workflow:
        print("✅ .claude/hooks/ (workflow trigger)" if report.hook else "⚠️  .claude/hooks/ (source not found)")
        print(f"✅ .claude/commands/ ({len(report.workflow.commands)} workflow commands)")
        print(f"✅ .claude/scripts/ ({len(report.workflow.scripts)} workflow scripts)")
        pre_push = deploy_git_pre_push_hook(plan.project_dir, plan.framework_path)
        if pre_push.success:
            print(f"✅ .git/hooks/pre-push ({pre_push.action}, release protection)")
        else:
            print(PRE_PUSH_MESSAGES.get(pre_push.reason or "", f"⚠️  .git/hooks/pre-push ({pre_push.reason})"))

    print(SETTINGS_MESSAGES[write_settings_local(plan.project_dir, plan.enable_github_workflow)])

    cleanup = reconcile(
        plan.project_dir,
        orphan_config(plan.project_dir, config, enable_github_workflow=plan.enable_github_workflow),
    )
    for rel in cleanup.removed:
        print(f"🧹 Removed orphaned file: {rel}")
    for skipped in cleanup.skipped:
        eprint(f"⚠️  Could not remove {skipped['path']}: {skipped['reason']}")

    track_project(plan.framework_path, plan.project_dir, plan.version, today=today())

    print("\n" + "=" * 60)
    print("🎉 Installation complete!")
    print("=" * 60)
    print_plan(plan)
    print(f"Skills Deployed:   {', '.join(report.skills) if report.skills else 'none'}")
    if report.manifest is not None:
        print(f"🧾 Manifest: {len(report.manifest.entries)} files tracked")
    return 0


def migrate(project_dir: Path, framework_path: Path) -> int:
    print(f"🔍 Migrating: {project_dir}")
    try:
        report = run_migrations(project_dir, framework_path, echo=print)
    except ProjectNotInstalledError as e:
        eprint(f"❌ {e}")
        return 1
    except MigrationError as e:
        eprint(f"❌ {e}")
        return 1

    if not report.applied:
        print(f"ℹ️  No migrations needed ({report.installed_version} → {report.target_version})")
    for rel in report.cleanup.removed:
        print(f"🧹 Removed orphaned file: {rel}")
    print(f"\n✅ Migration complete: {report.installed_version} → {report.target_version}")
    return 0


def fetch(project_dir: Path, git: GitClient | None = None) -> int:
    print(f"🔄 Fetching framework updates for: {project_dir}")
    try:
        report = fetch_updates(project_dir, git or GitClient(cwd=project_dir))
    except (ProjectNotInstalledError, MigrationError, FetchError) as e:
        eprint(f"❌ {e}")
        return 1
    if report.updated:
        print(f"\n✅ Framework updated: {report.current_version} → {report.latest_tag}")
    return 0


def choose_transition_interactive(current: str, targets: list[FrameworkChoice]) -> str | None:
    print(f"    Current framework: {current}")
    for index, choice in enumerate(targets, start=1):
        print(f"      {index}) {choice.title} - {choice.description}")
    resp = input("    Transition to (number, Enter to keep): ").strip()
    if resp.isdigit() and 1 <= int(resp) <= len(targets):
        return targets[int(resp) - 1].value
    return None


def update_tracked(framework_path: Path, interactive: bool) -> int:
    print(f"📋 Updating tracked projects from: {framework_path}")
    chooser = choose_transition_interactive if interactive else None
    summary = update_tracked_projects(framework_path, chooser, echo=print)
    print("\n" + "=" * 60)
    print(
        f"Updated: {summary.updated}  Current: {summary.current}  "
        f"Removed: {summary.removed}  Failed: {summary.failed}"
    )
    print("=" * 60)
    return 0 if summary.failed == 0 else 1


def fallback_targets(project_dir: Path) -> list[Path]:
    """Conservative uninstall targets: files whose names the installer is known to own."""
    targets: list[Path] = []
    for directory in INSTALLED_FILES:
        if directory.key == "root":
            continue
        dir_path = project_dir / directory.path
        if not dir_path.is_dir():
            continue
        targets.extend(
            p for p in sorted(dir_path.iterdir()) if p.is_file() and is_known_installer_file(p.name, directory.key)
        )
    return targets


def uninstall(project_dir: Path, framework_path: Path | None, dry_run: bool, force: bool) -> int:
    print(f"🧹 Uninstall from: {project_dir}")
    manifest = read_manifest(project_dir)
    if manifest is None:
        print(f"⚠️  Manifest not found or invalid: {manifest_path(project_dir)}")
        print("    For safety, uninstall requires a valid manifest (so we only delete what was installed).")
        print("    Options:")
        print("      - Re-run install once (will recreate manifest), then --uninstall")
        print("      - Or use --force to delete known installer filenames under .claude/ only")
        if not force and not dry_run:
            return 4
        targets = fallback_targets(project_dir)
    else:
        targets = []
        for key in sorted(manifest.entries):
            category, _, name = key.partition("/")
            base = CATEGORY_DIRS.get(category)
            if base is not None:
                targets.append(project_dir / base / name)

    if not targets:
        print("ℹ️  Nothing to uninstall.")
        return 0

    print("The following files will be removed:")
    for t in targets:
        print(f"  - {t}")

    if not force and not dry_run and is_interactive():
        resp = input("Really uninstall? [y/N] ").strip().lower()
        if resp not in ("y", "yes"):
            print("Uninstall cancelled.")
            return 0

    rc = delete_targets(targets, project_dir, dry_run=dry_run)

    mpath = manifest_path(project_dir)
    if dry_run:
        print(f"  [DRY-RUN] rm {mpath}")
    elif mpath.exists():
        try:
            mpath.unlink()
            print(f"  ✅ Removed manifest: {mpath.name}")
        except OSError as e:
            eprint(f"  ⚠️  Could not remove manifest: {e}")

    claude_dir = project_dir / ".claude"
    for category in ("rules", "commands", "scripts", "hooks"):
        try_remove_empty_dir(project_dir / CATEGORY_DIRS[category], dry_run=dry_run)
    try_remove_empty_dir(claude_dir, dry_run=dry_run)

    if framework_path is None:
        config = read_json(project_dir / CONFIG_FILENAME)
        if isinstance(config, dict) and config.get("frameworkPath"):
            framework_path = Path(config["frameworkPath"])
    if framework_path is not None and not dry_run:
        untrack_project(framework_path, project_dir)

    print("\n✅ Uninstall complete.")
    return rc


def delete_targets(targets: Iterable[Path], project_dir: Path, dry_run: bool) -> int:
    errors = 0
    base_resolved = project_dir.resolve()
    for t in targets:
        # Only the project root launchers and files under .claude/ may be deleted.
        t_resolved = t.resolve()
        allowed = t_resolved.parent == base_resolved or (base_resolved / ".claude") in t_resolved.parents
        if not allowed:
            eprint(f"  ❌ Refusing to delete outside project install dirs: {t}")
            errors += 1
            continue

        if not t.exists():
            print(f"  ℹ️  Not found: {t}")
            continue
        if t.is_dir():
            print(f"  ⚠️  Skipping directory target (unexpected): {t}")
            continue

        if dry_run:
            print(f"  [DRY-RUN] rm {t}")
            continue
        try:
            t.unlink()
            print(f"  ✅ Removed: {t.name}")
        except OSError as e:
            eprint(f"  ❌ Failed removing {t}: {e}")
            errors += 1
    return 0 if errors == 0 else 5


def try_remove_empty_dir(d: Path, dry_run: bool) -> None:
    if not d.is_dir():
        return
    try:
        if any(d.iterdir()):
            return
        if dry_run:
            print(f"  [DRY-RUN] rmdir {d}")
        else:
            d.rmdir()
            print(f"  ✅ Removed empty dir: {d}")
    except OSError:
        return


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Install the IDPF framework into a project directory.")
    p.add_argument(
        "--framework-path",
        type=Path,
        default=None,
        help="Framework checkout (default: $IDPF_FRAMEWORK_PATH).",
    )
    p.add_argument("--project-dir", type=Path, default=Path.cwd(), help="Target project (default: cwd).")
    p.add_argument(
        "--framework",
        choices=[c.value for c in PROCESS_FRAMEWORKS],
        default=None,
        help=f"Process framework (default: existing one, else {DEFAULT_FRAMEWORK}).",
    )
    p.add_argument(
        "--specialist",
        choices=sorted(DOMAIN_SPECIALISTS),
        default=None,
        help=f"Domain specialist (default: existing one, else {DEFAULT_SPECIALIST}).",
    )
    p.add_argument(
        "--github-workflow",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Deploy the GitHub workflow hook, commands and scripts (default: keep current state).",
    )
    p.add_argument("--dry-run", action="store_true", help="Show what would happen without writing anything.")
    p.add_argument("--force", action="store_true", help="Skip the clean-tree check / uninstall without prompt.")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--migrate", action="store_true", help="Run pending migrations for an installed project.")
    mode.add_argument("--update-tracked", action="store_true", help="Update every project tracked by the framework.")
    mode.add_argument("--uninstall", action="store_true", help="Remove installed files (manifest-based).")
    mode.add_argument(
        "--fetch-updates",
        action="store_true",
        help="Pull the latest framework release into this project's frameworkPath, then update the project.",
    )
    return p.parse_args(argv)


def mode_name(args: argparse.Namespace) -> str:
    if args.migrate:
        return "MIGRATE"
    if args.update_tracked:
        return "UPDATE-TRACKED"
    if args.uninstall:
        return "UNINSTALL"
    if args.fetch_updates:
        return "FETCH-UPDATES"
    return "INSTALL"


def main(
    argv: list[str],
    *,
    env: dict[str, str] | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> int:
    args = parse_args(argv)
    framework_path = resolve_framework_path(args.framework_path, env if env is not None else os.environ)
    project_dir = args.project_dir.resolve()

    print("=" * 60)
    print("IDPF Framework Installer")
    print(f"Installer Version: {VERSION}")
    print(f"Mode: {mode_name(args)} | {'DRY-RUN' if args.dry_run else 'LIVE'}")
    print("=" * 60)

    if args.uninstall:
        return uninstall(project_dir, framework_path, dry_run=args.dry_run, force=args.force)
    if args.fetch_updates:
        return fetch(project_dir)

    problems = precheck_source(framework_path, which)
    if problems or framework_path is None:
        eprint("❌ Precheck failed:")
        for problem in problems:
            eprint(f"  - {problem}")
        return 2

    if args.update_tracked:
        return update_tracked(framework_path.resolve(), interactive=is_interactive() and not args.force)
    if args.migrate:
        return migrate(project_dir, framework_path.resolve())

    existing = parse_existing_installation(project_dir)
    plan = resolve_plan(args, framework_path, existing)
    print_plan(plan)

    locked = existing.locked_framework
    if locked and locked != plan.process_framework and not is_valid_transition(locked, plan.process_framework):
        eprint(f"❌ {transition_block_reason(locked, plan.process_framework)}")
        return 1

    if locked and not args.force:
        state = check_git_clean_state(project_dir)
        if not state.is_clean:
            eprint(f"❌ Uncommitted changes in {project_dir}: {state.error}")
            eprint("    Use --force to install anyway.")
            return 1
        if state.commit_hash:
            print(f"ℹ️  Rollback point: {state.commit_hash}")

    if not args.force and not args.dry_run and is_interactive():
        resp = input(f"\nInstall to {project_dir}? [Y/n] ").strip().lower()
        if resp in ("n", "no"):
            print("Installation cancelled.")
            return 0

    return install(plan, existing, dry_run=args.dry_run)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
