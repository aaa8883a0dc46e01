#!/usr/bin/env python3
"""Recommend the next semantic version from the commits since the latest tag."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.domain.commits import recommend_bump
from idpf.domain.versioning import parse_tag
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.output import OutputContext

INITIAL_VERSION = "v0.1.0"


def recommend(git: GitClient) -> tuple[dict, bool]:
    tag = git.describe_latest_tag()
    if not tag.ok:
        return {
            "success": True,
            "message": "No previous version. Recommend v0.1.0 or v1.0.0.",
            "data": {"recommendedVersion": INITIAL_VERSION, "reason": "initial-release"},
        }, True

    last_tag = tag.value or ""
    current = parse_tag(last_tag)
    if current is None:
        return {"success": False, "message": f"Could not parse version from tag: {last_tag}"}, False

    commits = git.commits_since(last_tag)
    if not commits.ok:
        return {"success": False, "message": f"Version recommendation failed: {commits.message}"}, False

    bump, reason = recommend_bump(commits.value or [])
    recommended = current.bump(bump).tag()
    return {
        "success": True,
        "message": f"Recommend {recommended} ({bump}): {reason}",
        "data": {"recommendedVersion": recommended, "bumpType": bump, "reason": reason, "lastTag": last_tag},
    }, True


def main(argv: list[str], *, git: GitClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="Recommend a semver bump based on commit types.")
    ap.parse_args(argv)

    payload, ok = recommend(git or GitClient())
    OutputContext().json_compact(payload)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
