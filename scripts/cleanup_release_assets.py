#!/usr/bin/env python3
"""
Delete binary assets from older GitHub releases.

Keeps assets for the N most recent non-draft releases (default 3) and removes
them from everything older; the release entries themselves are preserved.

Example:
  Releases: v0.9.1, v0.9.0, v0.8.6, v0.8.5, ...
  With --keep 3: keeps assets for v0.9.1, v0.9.0, v0.8.6
                 deletes assets from v0.8.5 and older
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.infrastructure.gh import GhClient
from idpf.infrastructure.output import OutputContext

RELEASE_LIST_LIMIT = 100


def positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        parsed = 0
    if parsed < 1:
        raise argparse.ArgumentTypeError("--keep must be a positive number")
    return parsed


def releases_with_assets(gh: GhClient, repo: str) -> list[dict[str, Any]]:
    """Non-draft releases that carry assets, newest first by ``createdAt``."""
    found = []
    for release in gh.releases(limit=RELEASE_LIST_LIMIT, repo=repo):
        if release.get("isDraft"):
            continue
        details = gh.release(release.get("tagName", ""), repo)
        if details and details.get("assets"):
            found.append(
                {
                    "tagName": release.get("tagName"),
                    "name": release.get("name") or release.get("tagName"),
                    "createdAt": release.get("createdAt") or "",
                    "isPrerelease": release.get("isPrerelease"),
                    "assets": details["assets"],
                }
            )
    # ISO-8601 timestamps sort chronologically as strings
    found.sort(key=lambda r: r["createdAt"], reverse=True)
    return found


def cleanup(gh: GhClient, repo: str, keep: int, out: OutputContext, *, dry_run: bool) -> dict[str, Any]:
    out.info(f"Analyzing releases for {repo}...")
    out.info(f"Will keep assets for {keep} most recent releases")
    if dry_run:
        out.info("Dry run mode - no changes will be made")

    releases = releases_with_assets(gh, repo)
    if not releases:
        out.info("No releases with assets found")
        return {"success": True, "dryRun": dry_run, "kept": [], "cleaned": [], "assetsDeleted": 0}

    out.info(f"Found {len(releases)} releases with assets")
    to_keep, to_clean = releases[:keep], releases[keep:]
    if to_keep:
        out.line()
        out.line("Keeping assets for:")
        for release in to_keep:
            out.line(f"  - {release['tagName']} ({len(release['assets'])} assets)")

    summary: dict[str, Any] = {
        "success": True,
        "dryRun": dry_run,
        "kept": [r["tagName"] for r in to_keep],
        "cleaned": [],
        "assetsDeleted": 0,
    }
    if not to_clean:
        out.success("No old release assets to clean up")
        return summary

    out.line()
    out.line("Cleaning up assets from:")
    errors: list[str] = []
    for release in to_clean:
        out.line(f"  - {release['tagName']} ({len(release['assets'])} assets)")
        deleted = 0
        for asset in release["assets"]:
            name = asset.get("name")
            if dry_run:
                out.line(f"    Would delete: {name}")
            elif gh.delete_release_asset(release["tagName"], name).ok:
                out.line(f"    Deleted: {name}")
            else:
                errors.append(f"{release['tagName']}/{name}")
                continue
            deleted += 1
        summary["cleaned"].append({"tagName": release["tagName"], "assetsDeleted": deleted})
        summary["assetsDeleted"] += deleted

    out.line()
    if dry_run:
        out.info(f"Would delete {summary['assetsDeleted']} assets from {len(to_clean)} releases")
    else:
        out.success(f"Deleted {summary['assetsDeleted']} assets from {len(to_clean)} releases")
    if errors:
        out.warn(f"Failed to delete {len(errors)} assets")
        summary["errors"] = errors
    return summary


def main(argv: list[str], *, gh: GhClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="Clean up assets of old GitHub releases.")
    ap.add_argument("--keep", type=positive_int, default=3, help="Recent releases to keep assets for (default: 3)")
    ap.add_argument("--dry-run", action="store_true", help="Show what would be deleted without making changes.")
    ap.add_argument("--quiet", action="store_true", help="Suppress non-output messages.")
    try:
        args = ap.parse_args(argv)
    except SystemExit as exc:
        return 0 if exc.code == 0 else 1

    out = OutputContext(quiet=args.quiet)
    gh = gh or GhClient()
    repo = gh.current_repo()
    if not repo:
        out.error("Could not determine repository. Run from a git repository.")
        return 1

    out.json_compact(cleanup(gh, repo, args.keep, out, dry_run=args.dry_run))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
