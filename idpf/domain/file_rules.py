"""Declarative table of installer-owned files.

Each managed directory lists ``FileRule`` entries. A rule names a file and the
config conditions under which that file is expected. Conditions are plain data
(``(key, expected)`` pairs) evaluated by :func:`rule_applies`, so the table can
be inspected and tested without touching the filesystem.

A boolean ``expected`` is compared against the truthiness of the config value;
any other ``expected`` must be equal to it.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Mapping

Condition = tuple[str, Any]

GITHUB_WORKFLOW: Condition = ("enableGitHubWorkflow", True)
ON_WINDOWS: Condition = ("platform", "win32")
ON_POSIX: Condition = ("platform", "posix")

WORKFLOW_SCRIPTS = (
    "assign-release",
    "switch-release",
    "transfer-issue",
    "plan-sprint",
    "sprint-status",
    "sprint-retro",
    "end-sprint",
)

WORKFLOW_COMMANDS = WORKFLOW_SCRIPTS + (
    "open-release",
    "prepare-release",
    "prepare-beta",
    "close-release",
)

HOOK_FILENAME = "workflow-trigger.py"
LEGACY_HOOK_FILENAME = "workflow-trigger.js"


@dataclass(frozen=True)
class FileRule:
    filename: str
    when: tuple[Condition, ...] = ()


@dataclass(frozen=True)
class ManagedDirectory:
    key: str
    path: str
    rules: tuple[FileRule, ...]
    owned_patterns: tuple[str, ...] = ()


def _always(*names: str) -> tuple[FileRule, ...]:
    return tuple(FileRule(name) for name in names)


def _when(condition: Condition, *names: str) -> tuple[FileRule, ...]:
    return tuple(FileRule(name, (condition,)) for name in names)


INSTALLED_FILES: tuple[ManagedDirectory, ...] = (
    ManagedDirectory(
        key="root",
        path=".",
        rules=_always("CLAUDE.md", "framework-config.json")
        + _when(ON_WINDOWS, "run_claude.cmd", "runp_claude.cmd")
        + _when(ON_POSIX, "run_claude.sh", "runp_claude.sh"),
        owned_patterns=(
            r"^CLAUDE\.md$",
            r"^framework-config\.json$",
            r"^run_claude\.(cmd|sh)$",
            r"^runp_claude\.(cmd|sh)$",
            r"^STARTUP\.md$",
        ),
    ),
    ManagedDirectory(
        key="rules",
        path=".claude/rules",
        rules=_always("01-anti-hallucination.md")
        + _when(GITHUB_WORKFLOW, "02-github-workflow.md")
        + _always("03-startup.md"),
        owned_patterns=(
            r"^\d{2}-[\w-]+\.md$",
            r"^anti-hallucination\.md$",
            r"^github-workflow\.md$",
            r"^startup\.md$",
        ),
    ),
    ManagedDirectory(
        key="commands",
        path=".claude/commands",
        rules=_always("change-domain-expert.md")
        + _when(GITHUB_WORKFLOW, *(f"{name}.md" for name in WORKFLOW_COMMANDS)),
        owned_patterns=(
            r"^switch-role\.md$",
            r"^add-role\.md$",
            r"^(" + "|".join(re.escape(n) for n in WORKFLOW_COMMANDS) + r")\.md$",
        ),
    ),
    ManagedDirectory(
        key="scripts",
        path=".claude/scripts",
        rules=_when(GITHUB_WORKFLOW, *(f"{name}.py" for name in WORKFLOW_SCRIPTS)),
        owned_patterns=(
            r"^(" + "|".join(re.escape(n) for n in WORKFLOW_SCRIPTS) + r")\.(js|py)$",
        ),
    ),
    ManagedDirectory(
        key="hooks",
        path=".claude/hooks",
        rules=_when(GITHUB_WORKFLOW, HOOK_FILENAME),
        owned_patterns=(
            r"^workflow-trigger\.(js|py)$",
        ),
    ),
)

_BY_KEY = {d.key: d for d in INSTALLED_FILES}


def condition_holds(condition: Condition, config: Mapping[str, Any]) -> bool:
    key, expected = condition
    value = config.get(key)
    if isinstance(expected, bool):
        return bool(value) is expected
    return value == expected


def rule_applies(rule: FileRule, config: Mapping[str, Any]) -> bool:
    return all(condition_holds(c, config) for c in rule.when)


def expected_files(directory: ManagedDirectory, config: Mapping[str, Any]) -> list[str]:
    return [rule.filename for rule in directory.rules if rule_applies(rule, config)]


def is_known_installer_file(filename: str, key: str) -> bool:
    directory = _BY_KEY.get(key)
    if directory is None:
        return False
    return any(re.match(p, filename) for p in directory.owned_patterns)


def managed_directory(key: str) -> ManagedDirectory:
    return _BY_KEY[key]
