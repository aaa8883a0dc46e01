"""Keep-a-Changelog rendering from classified commits."""

from __future__ import annotations

import re
from typing import Iterable

from idpf.domain.commits import Commit

SECTION_ORDER = ("Added", "Changed", "Deprecated", "Removed", "Fixed", "Security")

TYPE_SECTIONS = {
    "feat": "Added",
    "fix": "Fixed",
    "docs": "Changed",
    "style": "Changed",
    "refactor": "Changed",
    "perf": "Changed",
    "chore": "Changed",
    "security": "Security",
}

UNRELEASED_RE = re.compile(r"^##\s+\[Unreleased\]\s*$", re.MULTILINE)


class ChangelogError(RuntimeError):
    pass


def capitalize_first(text: str) -> str:
    if not text:
        return ""
    return text[0].upper() + text[1:]


def strip_v(version: str) -> str:
    return version[1:] if version.startswith("v") else version


def bucket_commits(commits: Iterable[Commit]) -> dict[str, list[str]]:
    sections: dict[str, list[str]] = {name: [] for name in SECTION_ORDER}
    for commit in commits:
        entry = f"- {capitalize_first(commit.message)}"
        section = TYPE_SECTIONS.get(commit.type)
        if section is not None:
            sections[section].append(entry)
        elif commit.message:
            sections["Changed"].append(entry)

        if commit.breaking:
            breaking_entry = f"- **BREAKING:** {capitalize_first(commit.message)}"
            if breaking_entry not in sections["Changed"]:
                sections["Changed"].insert(0, breaking_entry)
    return sections


def build_changelog(commits: Iterable[Commit], version: str, date: str) -> str:
    sections = bucket_commits(commits)
    md = f"## [{strip_v(version)}] - {date}\n"
    for name in SECTION_ORDER:
        bullets = sections[name]
        if bullets:
            md += f"\n### {name}\n" + "\n".join(bullets) + "\n"
    return md


def extract_release_notes(changelog_text: str, version: str) -> str | None:
    """Return the body of the ``## [version]`` section, or ``None``."""
    pattern = re.compile(rf"## \[{re.escape(strip_v(version))}\][^\n]*\n(.*?)(?=## \[|\Z)", re.DOTALL)
    m = pattern.search(changelog_text)
    if not m:
        return None
    return m.group(1).strip()


def insert_entry(changelog_text: str, entry: str) -> str:
    """Place ``entry`` directly below ``## [Unreleased]`` (or at the top).

    Refuses to add a second section for a version that already has one.
    """
    heading = re.match(r"^## \[([^\]]+)\]", entry)
    if heading and re.search(rf"^##\s+\[{re.escape(heading.group(1))}\]", changelog_text, flags=re.MULTILINE):
        raise ChangelogError(f"CHANGELOG.md: Section for [{heading.group(1)}] already exists.")

    block = entry.rstrip("\n") + "\n"
    unreleased = UNRELEASED_RE.search(changelog_text)
    if unreleased:
        before = changelog_text[: unreleased.end()]
        after = changelog_text[unreleased.end():].lstrip("\n")
        return before + "\n\n" + block + ("\n" + after if after else "")

    first_section = re.search(r"^## ", changelog_text, flags=re.MULTILINE)
    if first_section:
        idx = first_section.start()
        return changelog_text[:idx] + block + "\n" + changelog_text[idx:]
    prefix = changelog_text.rstrip("\n")
    return (prefix + "\n\n" if prefix else "") + block
