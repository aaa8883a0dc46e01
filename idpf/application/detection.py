"""Inspection of a target project and of the local toolchain before install or upgrade."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
import shutil
from typing import Callable

from idpf.domain.file_rules import HOOK_FILENAME, LEGACY_HOOK_FILENAME
from idpf.domain.transitions import DOMAIN_SPECIALISTS
from idpf.infrastructure.gh import GhClient
from idpf.infrastructure.git import GitClient

GH_PMU_EXTENSION = "rubrical-studios/gh-pmu"

_FRAMEWORK_RE = re.compile(r"\*\*Process Framework:\*\*\s*\*?\*?(IDPF-\w+)")
_SPECIALIST_RE = re.compile(r"\*\*Domain Specialist:\*\*\s*(.+)")
_SPECIALISTS_RE = re.compile(r"\*\*Domain Specialists:\*\*\s*(.+)")
_INSTRUCTIONS_RE = re.compile(
    r"## Project-Specific Instructions\s*\n(.*?)(?=\n---|\n\*\*End of Claude Code Instructions\*\*|\Z)",
    re.DOTALL,
)
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)

LANGUAGE_MARKERS = (
    ("go.mod", "go"),
    ("Cargo.toml", "rust"),
    ("package.json", "javascript"),
    ("pyproject.toml", "python"),
    ("requirements.txt", "python"),
    ("pom.xml", "java"),
    ("build.gradle", "java"),
    ("composer.json", "php"),
    ("Gemfile", "ruby"),
    ("*.csproj", "csharp"),
)


@dataclass(frozen=True)
class ExistingInstallation:
    locked_framework: str | None = None
    domain_specialist: str | None = None
    project_instructions: str | None = None


@dataclass(frozen=True)
class GitCleanState:
    is_clean: bool
    commit_hash: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class Prerequisite:
    cmd: str
    name: str
    url: str
    required: bool


@dataclass
class PrerequisiteReport:
    missing: list[Prerequisite] = field(default_factory=list)
    optional: list[Prerequisite] = field(default_factory=list)


@dataclass(frozen=True)
class ReadinessIssue:
    type: str
    message: str
    remediation: str


@dataclass
class GhReadiness:
    issues: list[ReadinessIssue] = field(default_factory=list)
    installed_extension: bool = False

    @property
    def ready(self) -> bool:
        return not self.issues


PREREQUISITES = (
    Prerequisite("git", "Git", "https://git-scm.com/downloads", True),
    Prerequisite("gh", "GitHub CLI", "https://cli.github.com/", False),
    Prerequisite("jq", "jq", "https://jqlang.github.io/jq/download/", False),
)


def extract_project_instructions(content: str) -> str | None:
    match = _INSTRUCTIONS_RE.search(content)
    if not match:
        return None
    text = match.group(1)
    # Strip section markers duplicated into the body by earlier regenerations.
    text = re.sub(r"## Project-Specific Instructions\s*\n?", "", text)
    text = re.sub(r"\*\*End of Claude Code Instructions\*\*\s*\n?", "", text)
    text = re.sub(r"\n---\s*\n?", "\n", text).strip()
    if not _COMMENT_RE.sub("", text).strip():
        return None
    return text


def parse_existing_installation(project_dir: Path) -> ExistingInstallation:
    claude_md = project_dir / "CLAUDE.md"
    if not claude_md.is_file():
        return ExistingInstallation()
    content = claude_md.read_text(encoding="utf-8")

    framework_match = _FRAMEWORK_RE.search(content)
    locked = framework_match.group(1) if framework_match else None

    specialist: str | None = None
    single = _SPECIALIST_RE.search(content)
    if single and single.group(1).strip() != "None":
        candidate = single.group(1).strip()
        specialist = candidate if candidate in DOMAIN_SPECIALISTS else None
    else:
        plural = _SPECIALISTS_RE.search(content)
        if plural and plural.group(1).strip() != "None":
            valid = [d.strip() for d in plural.group(1).split(",") if d.strip() in DOMAIN_SPECIALISTS]
            specialist = valid[0] if valid else None

    return ExistingInstallation(
        locked_framework=locked,
        domain_specialist=specialist,
        project_instructions=extract_project_instructions(content),
    )


def detect_github_workflow(project_dir: Path) -> bool:
    hooks = project_dir / ".claude" / "hooks"
    return (hooks / HOOK_FILENAME).exists() or (hooks / LEGACY_HOOK_FILENAME).exists()


def check_git_clean_state(project_dir: Path, git: GitClient | None = None) -> GitCleanState:
    if not (project_dir / ".git").exists():
        return GitCleanState(is_clean=True)
    client = git or GitClient(cwd=project_dir)
    status = client.status_porcelain()
    if not status.ok:
        return GitCleanState(is_clean=True)
    commit_hash = client.head_commit()
    if (status.value or "").strip():
        return GitCleanState(is_clean=False, commit_hash=commit_hash, error="Commit or stash changes before upgrade")
    return GitCleanState(is_clean=True, commit_hash=commit_hash)


def check_git_remote(project_dir: Path, git: GitClient | None = None) -> tuple[bool, bool]:
    """``(has_git, has_remote)``."""
    if not (project_dir / ".git").exists():
        return False, False
    client = git or GitClient(cwd=project_dir)
    return True, client.has_remote()


def check_prerequisites(which: Callable[[str], str | None] = shutil.which) -> PrerequisiteReport:
    report = PrerequisiteReport()
    for prereq in PREREQUISITES:
        if which(prereq.cmd):
            continue
        (report.missing if prereq.required else report.optional).append(prereq)
    return report


def check_gh_prerequisites(
    gh: GhClient | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> GhReadiness:
    readiness = GhReadiness()
    if not which("gh"):
        readiness.issues.append(
            ReadinessIssue("not_installed", "GitHub CLI (gh) is not installed", "Install from: https://cli.github.com/")
        )
        return readiness

    client = gh or GhClient()
    if not client.is_available():
        readiness.issues.append(
            ReadinessIssue("not_authenticated", "GitHub CLI is not authenticated", "Run: gh auth login")
        )
        return readiness

    extensions = client.extensions()
    if extensions.ok and "gh-pmu" in (extensions.value or ""):
        return readiness
    if client.install_extension(GH_PMU_EXTENSION).ok:
        readiness.installed_extension = True
    else:
        readiness.issues.append(
            ReadinessIssue(
                "gh_pmu_install_failed",
                "Failed to install gh-pmu extension",
                f"Run manually: gh extension install {GH_PMU_EXTENSION}",
            )
        )
    return readiness


def detect_language(project_dir: Path) -> str | None:
    for marker, language in LANGUAGE_MARKERS:
        if marker.startswith("*"):
            if any(project_dir.glob(marker)):
                return language
        elif (project_dir / marker).exists():
            return language
    return None
