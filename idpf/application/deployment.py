"""Copying framework assets into a project and recording them in the manifest."""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as _dt
import os
from pathlib import Path
import re
import shutil
import stat
import zipfile

from idpf.application.generation import render_startup_rules
from idpf.domain.file_rules import HOOK_FILENAME, WORKFLOW_COMMANDS, WORKFLOW_SCRIPTS
from idpf.domain.transitions import FRAMEWORK_SKILLS
from idpf.infrastructure.fs_atomic import atomic_write_text
from idpf.infrastructure.manifest_store import Manifest, write_manifest

PRE_PUSH_MARKER = "Pre-push hook: Prevents unauthorized version tag pushes"

CORE_COMMANDS = ("change-domain-expert",)

RULES_DIR = Path(".claude") / "rules"
COMMANDS_DIR = Path(".claude") / "commands"
SCRIPTS_DIR = Path(".claude") / "scripts"
HOOKS_DIR = Path(".claude") / "hooks"
SKILLS_DIR = Path(".claude") / "skills"

CATEGORY_DIRS = {
    "root": ".",
    "rules": RULES_DIR.as_posix(),
    "commands": COMMANDS_DIR.as_posix(),
    "scripts": SCRIPTS_DIR.as_posix(),
    "hooks": HOOKS_DIR.as_posix(),
}


@dataclass(frozen=True)
class RuleSource:
    target: str
    source: str
    title: str


ANTI_HALLUCINATION = RuleSource(
    target="01-anti-hallucination.md",
    source="Assistant/Anti-Hallucination-Rules-for-Software-Development.md",
    title="Anti-Hallucination Rules for Software Development",
)
GITHUB_WORKFLOW = RuleSource(
    target="02-github-workflow.md",
    source="Reference/GitHub-Workflow.md",
    title="GitHub Workflow Integration",
)
STARTUP_RULES = "03-startup.md"


@dataclass
class RulesResult:
    anti_hallucination: bool = False
    github_workflow: bool = False
    startup: bool = False


@dataclass
class WorkflowDeployment:
    commands: list[str] = field(default_factory=list)
    scripts: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PrePushResult:
    success: bool
    action: str | None = None
    reason: str | None = None


@dataclass
class DeploymentReport:
    rules: RulesResult
    core_commands: list[str] = field(default_factory=list)
    hook: bool = False
    workflow: WorkflowDeployment = field(default_factory=WorkflowDeployment)
    run_scripts: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    manifest: Manifest | None = None


def with_version_header(rule: RuleSource, content: str) -> str:
    body = re.sub(r"^# " + re.escape(rule.title) + r"\s*\n*", "", content, count=1)
    return f"# {rule.title}\n\n**Version:** 1.0\n**Source:** {rule.source}\n\n---\n\n{body}"


def _record(manifest: Manifest | None, category: str, target: Path, source: str) -> None:
    if manifest is not None:
        manifest.record(category, target, source)


def _deploy_rule(project_dir: Path, framework_path: Path, rule: RuleSource, manifest: Manifest | None) -> bool:
    src = framework_path / rule.source
    if not src.is_file():
        return False
    dst = project_dir / RULES_DIR / rule.target
    atomic_write_text(dst, with_version_header(rule, src.read_text(encoding="utf-8")))
    _record(manifest, "rules", dst, rule.source)
    return True


def deploy_rules(
    project_dir: Path,
    framework_path: Path,
    process_framework: str,
    domain_specialist: str | None,
    enable_github_workflow: bool,
    version: str | None,
    manifest: Manifest | None = None,
) -> RulesResult:
    (project_dir / RULES_DIR).mkdir(parents=True, exist_ok=True)
    result = RulesResult()
    result.anti_hallucination = _deploy_rule(project_dir, framework_path, ANTI_HALLUCINATION, manifest)
    if enable_github_workflow:
        result.github_workflow = _deploy_rule(project_dir, framework_path, GITHUB_WORKFLOW, manifest)

    startup = project_dir / RULES_DIR / STARTUP_RULES
    atomic_write_text(
        startup,
        render_startup_rules(str(framework_path), process_framework, domain_specialist, version),
    )
    _record(manifest, "rules", startup, "generated")
    result.startup = True
    return result


def _copy(src: Path, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst)


def deploy_workflow_hook(project_dir: Path, framework_path: Path, manifest: Manifest | None = None) -> bool:
    rel = f"Templates/hooks/{HOOK_FILENAME}"
    src = framework_path / rel
    if not src.is_file():
        return False
    dst = project_dir / HOOKS_DIR / HOOK_FILENAME
    _copy(src, dst)
    _record(manifest, "hooks", dst, rel)
    return True


def _deploy_command(project_dir: Path, framework_path: Path, name: str, manifest: Manifest | None) -> bool:
    rel = f"Templates/commands/{name}.md"
    src = framework_path / rel
    if not src.is_file():
        return False
    dst = project_dir / COMMANDS_DIR / f"{name}.md"
    _copy(src, dst)
    _record(manifest, "commands", dst, rel)
    return True


def deploy_core_commands(project_dir: Path, framework_path: Path, manifest: Manifest | None = None) -> list[str]:
    return [name for name in CORE_COMMANDS if _deploy_command(project_dir, framework_path, name, manifest)]


def deploy_workflow_commands(
    project_dir: Path,
    framework_path: Path,
    manifest: Manifest | None = None,
) -> WorkflowDeployment:
    deployed = WorkflowDeployment()
    for name in WORKFLOW_COMMANDS:
        if _deploy_command(project_dir, framework_path, name, manifest):
            deployed.commands.append(name)
    for name in WORKFLOW_SCRIPTS:
        rel = f"Templates/scripts/{name}.py"
        src = framework_path / rel
        if src.is_file():
            dst = project_dir / SCRIPTS_DIR / f"{name}.py"
            _copy(src, dst)
            _record(manifest, "scripts", dst, rel)
            deployed.scripts.append(name)
    return deployed


RUN_SCRIPTS = {
    "win32": ("run_claude.cmd", "runp_claude.cmd"),
    "posix": ("run_claude.sh", "runp_claude.sh"),
}


def deploy_run_scripts(
    project_dir: Path,
    framework_path: Path,
    platform: str,
    manifest: Manifest | None = None,
) -> list[str]:
    """Copy the session launchers for ``platform`` (``win32`` or ``posix``) into the project root."""
    deployed: list[str] = []
    for name in RUN_SCRIPTS.get(platform, ()):
        rel = f"Templates/{name}"
        src = framework_path / rel
        if not src.is_file():
            continue
        dst = project_dir / name
        _copy(src, dst)
        if name.endswith(".sh"):
            _make_executable(dst)
        _record(manifest, "root", dst, rel)
        deployed.append(name)
    return deployed


def extract_zip(zip_path: Path, dest_dir: Path) -> bool:
    """Extract ``zip_path`` into ``dest_dir``; refuses archives with members outside it."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    base = dest_dir.resolve()
    try:
        with zipfile.ZipFile(zip_path) as archive:
            for member in archive.namelist():
                target = (dest_dir / member).resolve()
                if target != base and base not in target.parents:
                    return False
            archive.extractall(dest_dir)
    except (OSError, zipfile.BadZipFile):
        return False
    return True


def deploy_skills(project_dir: Path, framework_path: Path, process_framework: str | None) -> list[str]:
    skills_dir = project_dir / SKILLS_DIR
    if skills_dir.exists():
        shutil.rmtree(skills_dir)
    skills_dir.mkdir(parents=True, exist_ok=True)
    deployed: list[str] = []
    for skill in FRAMEWORK_SKILLS.get(process_framework or "", ()):
        archive = framework_path / "Skills" / "Packaged" / f"{skill}.zip"
        if archive.is_file() and extract_zip(archive, skills_dir / skill):
            deployed.append(skill)
    return deployed


def _make_executable(path: Path) -> None:
    try:
        mode = path.stat().st_mode
        os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError:
        # chmod is a no-op on some Windows filesystems
        pass


def deploy_git_pre_push_hook(project_dir: Path, framework_path: Path) -> PrePushResult:
    if not (project_dir / ".git").exists():
        return PrePushResult(success=False, reason="not-git-repo")
    src = framework_path / "Templates" / "hooks" / "pre-push"
    if not src.is_file():
        return PrePushResult(success=False, reason="source-not-found")

    dst = project_dir / ".git" / "hooks" / "pre-push"
    action = "installed"
    if dst.exists():
        existing = dst.read_text(encoding="utf-8", errors="replace")
        if PRE_PUSH_MARKER not in existing:
            return PrePushResult(success=False, reason="hook-exists")
        action = "updated"
    _copy(src, dst)
    _make_executable(dst)
    return PrePushResult(success=True, action=action)


def deploy_project_files(
    project_dir: Path,
    framework_path: Path,
    process_framework: str,
    domain_specialist: str | None,
    enable_github_workflow: bool,
    version: str,
    *,
    platform: str = "posix",
    date: str | None = None,
) -> DeploymentReport:
    """Full deploy pass; rewrites ``.claude/.manifest.json`` with what was written."""
    manifest = Manifest(version=version, deployed_at=date or _dt.date.today().isoformat())
    rules = deploy_rules(
        project_dir,
        framework_path,
        process_framework,
        domain_specialist,
        enable_github_workflow,
        version,
        manifest,
    )
    report = DeploymentReport(rules=rules, manifest=manifest)
    report.core_commands = deploy_core_commands(project_dir, framework_path, manifest)
    report.run_scripts = deploy_run_scripts(project_dir, framework_path, platform, manifest)
    if enable_github_workflow:
        report.hook = deploy_workflow_hook(project_dir, framework_path, manifest)
        report.workflow = deploy_workflow_commands(project_dir, framework_path, manifest)
    report.skills = deploy_skills(project_dir, framework_path, process_framework)
    write_manifest(project_dir, manifest)
    return report
