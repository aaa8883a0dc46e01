#!/usr/bin/env python3
"""Show progress of the active microsprint."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.application.sprints import show_status
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient


def main(argv: list[str], *, pmu: PmuClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="Show status of the current sprint.")
    ap.add_argument("--timing", action="store_true", help="Report elapsed time on stderr.")
    args = ap.parse_args(argv)

    out = OutputContext(timing=args.timing)
    out.start_timer("sprint-status")
    show_status(pmu or PmuClient(), out)
    out.end_timer("sprint-status")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
