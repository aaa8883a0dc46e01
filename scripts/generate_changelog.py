#!/usr/bin/env python3
"""
Generate a Keep-a-Changelog entry from commits.

Reads the JSON printed by analyze_commits.py when it is piped in; otherwise
analyzes the commits since the latest tag itself. Prints Markdown, not JSON.

Examples:
  python3 scripts/generate_changelog.py --version v0.8.0
  python3 scripts/analyze_commits.py | python3 scripts/generate_changelog.py --version v0.8.0
  python3 scripts/generate_changelog.py --version v0.8.0 --write
"""

from __future__ import annotations

import argparse
import datetime as _dt
import json
import sys
from pathlib import Path
from typing import TextIO

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.domain.changelog import ChangelogError, build_changelog, insert_entry
from idpf.domain.commits import Commit
from idpf.infrastructure.fs_atomic import atomic_write_text
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.output import OutputContext

CHANGELOG_TEMPLATE = "# Changelog\n\nAll notable changes to this project will be documented in this file.\n\n## [Unreleased]\n"


def read_piped_analysis(stdin: TextIO) -> list[Commit] | None:
    """Commits from piped analyze_commits JSON; ``None`` for a TTY or unreadable input."""
    if stdin is None or stdin.isatty():
        return None
    try:
        data = json.loads(stdin.read() or "")
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    payload = data.get("data") if isinstance(data.get("data"), dict) else data
    commits = payload.get("commits")
    if not isinstance(commits, list):
        return None
    return [Commit.from_dict(c) for c in commits if isinstance(c, dict)]


def write_changelog(path: Path, entry: str) -> None:
    text = path.read_text(encoding="utf-8") if path.exists() else CHANGELOG_TEMPLATE
    atomic_write_text(path, insert_entry(text, entry))


def main(argv: list[str], *, git: GitClient | None = None, stdin: TextIO | None = None) -> int:
    ap = argparse.ArgumentParser(description="Generate a CHANGELOG entry from commits.")
    ap.add_argument("--version", default=None, help="Version for the header (required), e.g. v0.8.0")
    ap.add_argument("--date", default=None, help="Date for the header YYYY-MM-DD (default: today)")
    ap.add_argument("--write", action="store_true", help="Insert the entry below [Unreleased] in CHANGELOG.md.")
    ap.add_argument("--changelog", default="CHANGELOG.md", help="Changelog path used with --write.")
    ap.add_argument("--quiet", action="store_true", help="Suppress non-output messages.")
    args = ap.parse_args(argv)

    out = OutputContext(quiet=args.quiet)
    if not args.version:
        out.error("Version is required. Use --version <version>")
        return 1

    date_str = args.date or _dt.date.today().isoformat()
    commits = read_piped_analysis(stdin if stdin is not None else sys.stdin)
    if commits is None:
        git = git or GitClient()
        if not git.is_repo():
            out.error("Not a git repository")
            return 1
        tag = git.describe_latest_tag().unwrap_or(None)
        commits = git.commits_since(tag).unwrap_or([])

    entry = build_changelog(commits, args.version, date_str)
    if args.write:
        try:
            write_changelog(Path(args.changelog), entry)
        except ChangelogError as exc:
            out.error(str(exc))
            return 1
        out.success(f"Updated {args.changelog}")
        return 0

    print(entry)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
