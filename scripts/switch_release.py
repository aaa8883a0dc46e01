#!/usr/bin/env python3
"""Check out a release branch and show its sprint context."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.application.sprints import switch_release
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient


def main(argv: list[str], *, git: GitClient | None = None, pmu: PmuClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="Switch the working context to another release.")
    ap.add_argument("release", nargs="?", default=None, help="Release name or branch, e.g. release/v2.0.0")
    args = ap.parse_args(argv)

    ok = switch_release(git or GitClient(), pmu or PmuClient(), OutputContext(), args.release)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
