#!/usr/bin/env python3
"""Print the retrospective questions for the active microsprint."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.application.sprints import show_retro
from idpf.infrastructure.output import OutputContext
from idpf.infrastructure.pmu import PmuClient


def main(argv: list[str], *, pmu: PmuClient | None = None) -> int:
    ap = argparse.ArgumentParser(description="Conduct a sprint retrospective.")
    ap.parse_args(argv)

    show_retro(pmu or PmuClient(), OutputContext())
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
