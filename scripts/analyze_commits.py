#!/usr/bin/env python3
"""Classify commits since the latest tag (Conventional Commits) and print a JSON summary."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.domain.commits import summarize
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.output import OutputContext


def analyze(git: GitClient) -> tuple[dict, bool]:
    """Return the JSON payload and whether it represents success."""
    tag = git.describe_latest_tag()
    if not tag.ok:
        return {
            "success": True,
            "message": "No previous tags found",
            "data": {"lastTag": None, "commits": [], "summary": summarize([])},
        }, True

    last_tag = tag.value
    commits = git.commits_since(last_tag)
    if not commits.ok:
        return {"success": False, "message": f"Commit analysis failed: {commits.message}"}, False
    if not commits.value:
        return {
            "success": True,
            "message": f"No commits since {last_tag}",
            "data": {"lastTag": last_tag, "commits": [], "summary": summarize([])},
        }, True

    summary = summarize(commits.value)
    return {
        "success": True,
        "message": f"Analyzed {summary['total']} commits since {last_tag}",
        "data": {
            "lastTag": last_tag,
            "commits": [c.to_dict() for c in commits.value],
            "summary": summary,
        },
    }, True


def main(argv: list[str], *, git: GitClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="Parse commits since the last tag and categorize them by type.")
    ap.add_argument("--pretty", action="store_true", help="Indent the JSON output.")
    args = ap.parse_args(argv)

    out = OutputContext()
    payload, ok = analyze(git or GitClient())
    if args.pretty:
        out.json(payload)
    else:
        out.json_compact(payload)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
