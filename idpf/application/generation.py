"""Generated project files: CLAUDE.md, startup rules, settings, config, .gh-pmu.yml."""

from __future__ import annotations

import datetime as _dt
from pathlib import Path
from typing import Any

import yaml

from idpf.domain.file_rules import HOOK_FILENAME
from idpf.infrastructure.framework_source import TemplateManifest
from idpf.infrastructure.fs_atomic import atomic_write_json, atomic_write_text, read_json

INSTRUCTIONS_PLACEHOLDER = (
    "<!-- Add your project-specific instructions below this line -->\n"
    "<!-- These will be preserved during framework updates -->"
)

HOOK_COMMAND = f"python3 .claude/hooks/{HOOK_FILENAME}"
HOOK_MARKER = "workflow-trigger"

DENIED_COMMANDS = (
    "Bash(rm -rf /:*)",
    "Bash(rm -rf /*:*)",
    "Bash(sudo:*)",
    "Bash(git push --force:*)",
    "Bash(git push -f:*)",
    "Bash(git reset --hard:*)",
    "Bash(git clean -fd:*)",
    "Bash(git filter-branch:*)",
    "Bash(git rebase -i:*)",
    "Bash(git add -i:*)",
)

_CORE_FRAMEWORK_FILES = {
    "IDPF-Structured": "Interactive Development Process Framework.md",
    "IDPF-Agile": "Agile-Core.md",
    "IDPF-Vibe": "Vibe-to-Structured Framework.md",
    "IDPF-LTS": "Long-Term Support Framework.md",
}


def today() -> str:
    return _dt.date.today().isoformat()


def core_framework_file_name(process_framework: str | None) -> str:
    return _CORE_FRAMEWORK_FILES.get(process_framework or "", "README.md")


def render_claude_md(
    framework_path: str,
    process_framework: str,
    domain_specialist: str | None,
    project_instructions: str | None = None,
) -> str:
    instructions = project_instructions or INSTRUCTIONS_PLACEHOLDER
    core_file = core_framework_file_name(process_framework)
    return f"""# Claude Code - Project Instructions

**Process Framework:** {process_framework}
**Domain Specialist:** {domain_specialist or 'None'}

---

## Rules Auto-Loading

Rules are automatically loaded from `.claude/rules/`:
- `01-anti-hallucination.md` - Software development quality rules
- `02-github-workflow.md` - GitHub issue management integration (if enabled)
- `03-startup.md` - Session initialization and specialist loading

**No manual file reading required at startup.**

---

## Framework Configuration

This project uses the IDPF Framework ecosystem.
**Configuration:** See `framework-config.json` for framework location and project type.
**Framework Path:** `{framework_path}`

---

## On-Demand Documentation

Load detailed documentation when needed:

| When Working On | Load File |
|-----------------|-----------|
| Framework workflow | `{framework_path}/{process_framework}/{core_file}` |
| Domain specialist | `{framework_path}/System-Instructions/Domain/{{specialist}}.md` |
| Testing patterns | `.claude/skills/test-writing-patterns/SKILL.md` |

---

## Available Commands

| Command | Purpose |
|---------|---------|
| `/change-domain-expert` | Change the project's domain specialist |

---

## Project-Specific Instructions

{instructions}

---

**End of Claude Code Instructions**
"""


def render_startup_rules(
    framework_path: str,
    process_framework: str,
    domain_specialist: str | None,
    version: str | None = None,
) -> str:
    if domain_specialist and domain_specialist != "None":
        steps = (
            f"2. **Load Domain Specialist**: Read `{framework_path}/System-Instructions/Domain/{domain_specialist}.md`\n"
            f'3. **Report Ready**: Confirm initialization complete with "Active Role: {domain_specialist}"\n'
            "4. **Ask**: What would you like to work on?"
        )
    else:
        steps = "2. **Report Ready**: Confirm initialization complete\n3. **Ask**: What would you like to work on?"
    return f"""# Session Startup

**Version:** {version or 'unknown'}
**Framework:** {process_framework}
**Domain Specialist:** {domain_specialist or 'None'}

---

## Startup Sequence

When starting a new session:

1. **Confirm Date**: State the date from environment info
{steps}

---

## On-Demand Loading

| When Needed | Load From |
|-------------|-----------|
| Framework workflow | `{framework_path}/{process_framework}/` |
| Domain specialist | `{framework_path}/System-Instructions/Domain/{{specialist}}.md` |
| Skill usage | `.claude/skills/{{skill-name}}/SKILL.md` |

---

**End of Session Startup**
"""


def gh_pmu_config(project_name: str, project_number: int, owner: str, repo_name: str) -> dict[str, Any]:
    return {
        "project": {"name": project_name, "number": project_number, "owner": owner},
        "repositories": [f"{owner}/{repo_name}"],
        "defaults": {"priority": "p2", "status": "backlog", "labels": ["pm-tracked"]},
        "fields": {
            "priority": {"field": "Priority", "values": {"p0": "P0", "p1": "P1", "p2": "P2"}},
            "status": {
                "field": "Status",
                "values": {
                    "backlog": "Backlog",
                    "done": "Done",
                    "in_progress": "In progress",
                    "in_review": "In review",
                    "ready": "Ready",
                },
            },
        },
    }


def render_gh_pmu_config(project_name: str, project_number: int, owner: str, repo_name: str) -> str:
    return yaml.safe_dump(
        gh_pmu_config(project_name, project_number, owner, repo_name),
        sort_keys=False,
        default_flow_style=False,
        indent=4,
    )


def _hook_block() -> list[dict[str, Any]]:
    return [{"hooks": [{"type": "command", "command": HOOK_COMMAND, "timeout": 5}]}]


def render_settings_local(enable_github_workflow: bool) -> dict[str, Any]:
    settings: dict[str, Any] = {
        "permissions": {"allow": [], "deny": list(DENIED_COMMANDS), "ask": []},
    }
    if enable_github_workflow:
        settings["hooks"] = {"UserPromptSubmit": _hook_block()}
    return settings


def has_workflow_hook(settings: dict[str, Any]) -> bool:
    hooks = settings.get("hooks")
    entries = hooks.get("UserPromptSubmit") if isinstance(hooks, dict) else None
    if not isinstance(entries, list):
        return False
    for entry in entries:
        for hook in (entry or {}).get("hooks") or []:
            if HOOK_MARKER in str((hook or {}).get("command") or ""):
                return True
    return False


def merge_settings_hooks(settings: dict[str, Any]) -> bool:
    """Install the prompt hook into ``settings`` in place; False when already present."""
    if has_workflow_hook(settings):
        return False
    hooks = settings.get("hooks")
    if not isinstance(hooks, dict):
        hooks = {}
        settings["hooks"] = hooks
    hooks["UserPromptSubmit"] = _hook_block()
    return True


def write_settings_local(project_dir: Path, enable_github_workflow: bool) -> str:
    """Return ``created``, ``merged``, ``unchanged`` or ``unreadable``."""
    path = project_dir / ".claude" / "settings.local.json"
    if not path.exists():
        atomic_write_json(path, render_settings_local(enable_github_workflow))
        return "created"
    if not enable_github_workflow:
        return "unchanged"
    existing = read_json(path)
    if not isinstance(existing, dict):
        return "unreadable"
    if not merge_settings_hooks(existing):
        return "unchanged"
    atomic_write_json(path, existing)
    return "merged"


def discover_user_scripts(project_dir: Path) -> dict[str, list[str]]:
    base = project_dir / ".claude" / "scripts"
    if not base.is_dir():
        return {}
    out: dict[str, list[str]] = {}
    for entry in sorted(base.iterdir()):
        if not entry.is_dir() or entry.name in {"framework", "shared"}:
            continue
        scripts = sorted(p.name for p in entry.iterdir() if p.is_file() and p.suffix in {".py", ".js", ".sh"})
        if scripts:
            out[entry.name] = scripts
    return out


def render_framework_config(
    project_dir: Path,
    framework_path: str,
    version: str,
    process_framework: str,
    domain_specialist: str,
    *,
    language: str | None = None,
    template: TemplateManifest | None = None,
    date: str | None = None,
) -> dict[str, Any]:
    return {
        "frameworkVersion": version,
        "installedDate": date or today(),
        "extensibleCommands": list(template.extensible_commands) if template else [],
        "frameworkScripts": template.framework_scripts() if template else {},
        "userScripts": discover_user_scripts(project_dir),
        "projectType": {
            "processFramework": process_framework,
            "language": language or "unknown",
            "description": "",
            "domainSpecialist": domain_specialist,
        },
        "frameworkPath": framework_path,
    }


def write_claude_md(project_dir: Path, *args: Any, **kwargs: Any) -> Path:
    target = project_dir / "CLAUDE.md"
    atomic_write_text(target, render_claude_md(*args, **kwargs))
    return target


def write_gh_pmu_config(project_dir: Path, project_name: str, project_number: int, owner: str, repo_name: str) -> Path:
    target = project_dir / ".gh-pmu.yml"
    atomic_write_text(target, render_gh_pmu_config(project_name, project_number, owner, repo_name))
    return target
