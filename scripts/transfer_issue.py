#!/usr/bin/env python3
"""Move an issue between releases and sprints."""

from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.application.sprints import transfer_issue
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient

ISSUE_RE = re.compile(r"^#?(\d+)$")

USAGE = (
    "Usage: /transfer-issue #123 [options]",
    "",
    "Options:",
    "  --release <name>    Transfer to different release",
    "  --sprint <name>     Transfer to different sprint",
    "  --remove-sprint     Remove from current sprint",
    "  --remove-release    Remove from current release (back to backlog)",
)


def main(argv: list[str], *, pmu: PmuClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="Transfer an issue to another release or sprint.")
    ap.add_argument("issue", nargs="?", default=None, help="Issue number, e.g. #123")
    ap.add_argument("--release", default=None)
    ap.add_argument("--sprint", default=None)
    ap.add_argument("--remove-sprint", action="store_true")
    ap.add_argument("--remove-release", action="store_true")
    args = ap.parse_args(argv)

    out = OutputContext()
    out.line("=== Transfer Issue ===")
    out.line()
    m = ISSUE_RE.match(args.issue or "")
    if not m:
        for line in USAGE:
            out.line(line)
        return 0

    ok = transfer_issue(
        pmu or PmuClient(),
        out,
        int(m.group(1)),
        release=args.release,
        sprint=args.sprint,
        remove_sprint=args.remove_sprint,
        remove_release=args.remove_release,
    )
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
