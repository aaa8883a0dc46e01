#!/usr/bin/env python3
"""
Assign backlog issues to a release.

Usage:
  python3 .claude/scripts/assign_release.py                      # list open releases
  python3 .claude/scripts/assign_release.py release/v1.0 123     # direct assignment
  python3 .claude/scripts/assign_release.py release/v1.0 --all   # every unassigned backlog issue

Flags:
  --all         Assign all unassigned backlog issues
  --check-epic  Force epic detection for a single issue
  --refresh     Ignore the cached release list
"""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.application.release_assignment import AssignArgs, assign_release
from idpf.infrastructure.gh import GhClient
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient


def main(
    argv: list[str],
    *,
    git: GitClient | None = None,
    gh: GhClient | None = None,
    pmu: PmuClient | None = None,
    project_dir: Path | None = None,
) -> int:
    if "--help" in argv or "-h" in argv:
        print(__doc__.strip())
        return 0
    gh = gh or GhClient()
    assign_release(
        git or GitClient(),
        gh,
        pmu or PmuClient(gh=gh),
        OutputContext(),
        AssignArgs.parse(argv),
        project_dir=project_dir or Path.cwd(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
