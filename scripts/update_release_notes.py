#!/usr/bin/env python3
"""Copy a version's CHANGELOG section onto its GitHub Release page."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.domain.changelog import extract_release_notes
from idpf.infrastructure.fs_atomic import atomic_write_text
from idpf.infrastructure.gh import GhClient
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.output import OutputContext

NOTES_FILE = ".tmp-release-notes.md"


def update_notes(version: str, changelog: Path, gh: GhClient, workdir: Path) -> tuple[dict, bool]:
    if not changelog.is_file():
        return {"success": False, "message": "CHANGELOG.md not found"}, False
    notes = extract_release_notes(changelog.read_text(encoding="utf-8"), version)
    if notes is None:
        return {"success": False, "message": f"No changelog section found for {version}"}, False

    notes_file = workdir / NOTES_FILE
    atomic_write_text(notes_file, notes)
    try:
        result = gh.edit_release_notes(version, str(notes_file))
    finally:
        notes_file.unlink(missing_ok=True)
    if not result.ok:
        return {"success": False, "message": f"Failed to update release notes: {result.message}"}, False
    return {"success": True, "message": f"Updated release notes for {version}", "data": {"version": version}}, True


def main(argv: list[str], *, git: GitClient | None = None, gh: GhClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="Extract a CHANGELOG section and update the GitHub Release page.")
    ap.add_argument("version", nargs="?", default=None, help="Release tag (default: latest tag)")
    ap.add_argument("--changelog", default="CHANGELOG.md", help="Path to CHANGELOG.md")
    args = ap.parse_args(argv)

    out = OutputContext()
    version = args.version or (git or GitClient()).describe_latest_tag().unwrap_or(None)
    if not version:
        out.json_compact({"success": False, "message": "Version not provided and no tags found"})
        return 1

    changelog = Path(args.changelog)
    payload, ok = update_notes(version, changelog, gh or GhClient(), changelog.resolve().parent)
    out.json_compact(payload)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
