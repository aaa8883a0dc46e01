"""Conventional Commit classification and version-bump inference."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import re
from typing import Any, Iterable

from idpf.domain.versioning import BumpType

CONVENTIONAL_RE = re.compile(r"^(\w+)(\([\w-]+\))?(!)?:\s*(.+)$", re.ASCII)
BREAKING_MARKER = "BREAKING CHANGE"
SHORT_HASH_LEN = 7

SUMMARY_TYPES = ("feat", "fix", "docs", "chore", "refactor", "test")


@dataclass(frozen=True)
class Commit:
    hash: str
    type: str
    scope: str | None
    message: str
    breaking: bool
    subject: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("subject")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Commit":
        return cls(
            hash=str(data.get("hash") or ""),
            type=str(data.get("type") or "other").lower(),
            scope=data.get("scope") or None,
            message=str(data.get("message") or ""),
            breaking=bool(data.get("breaking")),
        )


def parse_conventional_commit(subject: str, commit_hash: str = "") -> Commit:
    m = CONVENTIONAL_RE.match(subject)
    if not m:
        return Commit(hash=commit_hash, type="other", scope=None, message=subject, breaking=False, subject=subject)
    raw_scope = m.group(2)
    return Commit(
        hash=commit_hash,
        type=m.group(1).lower(),
        scope=raw_scope[1:-1] if raw_scope else None,
        message=m.group(4),
        breaking=bool(m.group(3)) or BREAKING_MARKER in subject,
        subject=subject,
    )


def parse_log_line(line: str) -> Commit:
    """Parse one ``%H|%s`` line; ``|`` inside the subject is kept."""
    commit_hash, _, subject = line.partition("|")
    return parse_conventional_commit(subject, commit_hash.strip()[:SHORT_HASH_LEN])


def parse_log(output: str) -> list[Commit]:
    return [parse_log_line(line) for line in output.splitlines() if line.strip()]


def summarize(commits: Iterable[Commit]) -> dict[str, int]:
    items = list(commits)
    summary = {"total": len(items)}
    for kind in SUMMARY_TYPES:
        summary[kind] = sum(1 for c in items if c.type == kind)
    summary["breaking"] = sum(1 for c in items if c.breaking)
    return summary


def recommend_bump(commits: Iterable[Commit]) -> tuple[BumpType, str]:
    items = list(commits)
    if any(c.breaking for c in items):
        return "major", "breaking change(s)"
    if any(c.type == "feat" for c in items):
        return "minor", "new feature(s)"
    return "patch", "fixes and maintenance"
