"""The ``UserPromptSubmit`` hook: prompt in, at most one JSON decision out.

``respond(prompt, cwd)`` returns the object to print, or ``None`` when the
prompt is not ours and the hook must stay silent.
"""

from __future__ import annotations

from functools import lru_cache
from importlib import resources
from pathlib import Path
import re
from typing import Any

import yaml

from idpf.infrastructure.fs_atomic import read_json

EVENT_NAME = "UserPromptSubmit"

TRIGGER_RE = re.compile(r"^(bug|enhancement|finding|idea|proposal|prd):", re.IGNORECASE)
WORK_RE = re.compile(r"^work\s+#?(\d+)\b", re.IGNORECASE)
BARE_WORK_RE = re.compile(r"^work\s*$", re.IGNORECASE)
FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---", re.DOTALL)
DESCRIPTION_RE = re.compile(r"description:\s*(.+)")

FRAMEWORK_DIRS = ("IDPF-Agile", "IDPF-Structured", "IDPF-Vibe", "IDPF-PRD", "IDPF-LTS")

COMMANDS_HELP_HEADER = """📋 **Available Commands**

**Workflow Triggers** (prefix your message):
- `bug:` - Report a bug → creates issue, wait for 'work' to implement fix
- `enhancement:` - Request enhancement → creates issue, wait for 'work' to implement
- `finding:` - Document a finding → creates issue for discovered issues
- `idea:` - Quick idea → creates lightweight proposal + issue
- `proposal:` - Formal proposal → creates proposal document + issue
- `prd: [name]` - Convert proposal to PRD → invokes IDPF-PRD workflow

**Issue Management**:
- `work #N` or `work <issue>` - Start working on issue (moves to In Progress)
- `done` - Complete current issue (moves to Done, closes issue)
"""

PRD_CONTEXT = (
    "[PRD TRIGGER: Invoke Proposal-to-PRD workflow (Section 8 of GitHub-Workflow.md). "
    "Identify proposal from name or issue number, then run IDPF-PRD phases.]"
)
TRIGGER_CONTEXT = "[WORKFLOW TRIGGER: Create GitHub issue first. Wait for 'work' instruction before implementing.]"
BARE_WORK_REASON = "Specify which issue to work on, for example: work #123"


@lru_cache(maxsize=1)
def command_catalog() -> dict[str, Any]:
    text = resources.files("idpf.data").joinpath("framework_commands.yaml").read_text(encoding="utf-8")
    return yaml.safe_load(text)


def _context(system_message: str, additional_context: str) -> dict[str, Any]:
    return {
        "systemMessage": system_message,
        "hookSpecificOutput": {"hookEventName": EVENT_NAME, "additionalContext": additional_context},
    }


def canonical_framework(name: str | None) -> str | None:
    if not name:
        return None
    catalog = command_catalog()
    if name in catalog["frameworks"]:
        return name
    if name.startswith("vibe"):
        return "IDPF-Vibe"
    return catalog["aliases"].get(name)


def detect_active_framework(cwd: Path) -> str | None:
    """``framework-config.json`` first (new then old field), then IDPF-* directories."""
    config = read_json(cwd / "framework-config.json")
    if isinstance(config, dict):
        project_type = config.get("projectType")
        declared = (project_type.get("processFramework") if isinstance(project_type, dict) else None) or config.get(
            "framework"
        )
        if declared:
            return declared
    for name in FRAMEWORK_DIRS:
        if (cwd / name).exists():
            return name
    return None


def _cell(value: str, code: bool) -> str:
    return f"`{value}`" if code else value


def render_section(section: dict[str, Any]) -> str:
    parts = [f"### {section['name']}"]
    if section.get("intro"):
        parts.append(section["intro"])
    rows = section.get("rows")
    if rows:
        header = section.get("header") or ["Command", "Description"]
        code = section.get("code", True)
        table = [f"| {header[0]} | {header[1]} |", "|" + "|".join("-" * (len(h) + 2) for h in header) + "|"]
        table += [f"| {_cell(first, code)} | {second} |" for first, second in rows]
        parts.append("\n".join(table))
    if section.get("bullets"):
        parts.append("\n".join(f"- {item}" for item in section["bullets"]))
    if section.get("note"):
        parts.append(section["note"])
    return "\n\n".join(parts)


def detailed_commands(framework: str | None) -> str | None:
    canonical = canonical_framework(framework)
    if canonical is None:
        return None
    sections = command_catalog()["frameworks"][canonical]["sections"]
    body = "\n\n---\n\n".join(render_section(s) for s in sections)
    return f"## {canonical} Commands - Full List\n\n{body}"


def slash_commands(cwd: Path) -> list[tuple[str, str]]:
    commands_dir = cwd / ".claude" / "commands"
    if not commands_dir.is_dir():
        return []
    found = []
    for path in sorted(commands_dir.glob("*.md")):
        try:
            content = path.read_text(encoding="utf-8")
        except OSError:
            continue
        frontmatter = FRONTMATTER_RE.match(content)
        if not frontmatter:
            continue
        description = DESCRIPTION_RE.search(frontmatter.group(1))
        if description:
            found.append((path.stem, description.group(1).strip()))
    return found


def commands_help(cwd: Path) -> str:
    help_text = COMMANDS_HELP_HEADER
    commands = slash_commands(cwd)
    if commands:
        help_text += "\n**Slash Commands**:\n"
        help_text += "".join(f"- `/{name}` - {description}\n" for name, description in commands)
    framework = detailed_commands(detect_active_framework(cwd))
    if framework:
        help_text += "\n" + framework
    return help_text


def list_commands(cwd: Path) -> str:
    return detailed_commands(detect_active_framework(cwd)) or command_catalog()["fallback"]


def respond(prompt: str, cwd: Path) -> dict[str, Any] | None:
    text = (prompt or "").strip()
    lowered = text.lower()

    if lowered == "commands":
        return _context(
            "⚡ Commands",
            "[COMMANDS HELP: Display the following commands to the user in a clean formatted way.]\n\n"
            + commands_help(cwd),
        )
    if lowered in {"list-commands", "list-cmds"}:
        return _context(
            "⚡ List-Commands",
            "[LIST-COMMANDS: Display the following detailed command list to the user in a clean formatted way.]\n\n"
            + list_commands(cwd),
        )

    work = WORK_RE.match(text)
    if work:
        number = work.group(1)
        return _context(
            f"⚡ Work trigger detected: #{number}",
            f"[WORK TRIGGER: Move issue #{number} to In Progress (gh pmu move {number} --status in_progress) "
            "before implementing.]",
        )
    if BARE_WORK_RE.match(text):
        return {"decision": "block", "reason": BARE_WORK_REASON}

    trigger = TRIGGER_RE.match(text)
    if not trigger:
        return None
    kind = trigger.group(1).lower()
    if kind == "prd":
        return _context("⚡ PRD conversion trigger detected", PRD_CONTEXT)
    return _context(f'⚡ Workflow trigger detected: "{kind}"', TRIGGER_CONTEXT)
