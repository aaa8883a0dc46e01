#!/usr/bin/env python3
"""Review and close the active microsprint."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.application.sprints import end_sprint
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient


def main(argv: list[str], *, pmu: PmuClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="End the current sprint with review and retrospective.")
    ap.add_argument("--skip-retro", action="store_true", help="Close without the retrospective prompt.")
    args = ap.parse_args(argv)

    end_sprint(pmu or PmuClient(), OutputContext(), skip_retro=args.skip_retro)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
