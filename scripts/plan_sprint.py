#!/usr/bin/env python3
"""List epics available for the next microsprint and optionally start it."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.application.sprints import plan_sprint
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient


def main(argv: list[str], *, pmu: PmuClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="Plan a new sprint from backlog epics.")
    ap.add_argument("--name", default=None, help="Start a microsprint with this name.")
    args = ap.parse_args(argv)

    plan_sprint(pmu or PmuClient(), OutputContext(), name=args.name)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
