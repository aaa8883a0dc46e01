#!/usr/bin/env python3
"""UserPromptSubmit hook: reads ``{"prompt": ...}`` on stdin, prints at most one JSON object."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TextIO

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from idpf.application.workflow_trigger import respond


def main(argv: list[str], *, stdin: TextIO | None = None, cwd: Path | None = None) -> int:
    raw = (stdin if stdin is not None else sys.stdin).read()
    try:
        data = json.loads(raw)
    except ValueError:
        # let the prompt through untouched
        return 0
    if not isinstance(data, dict):
        return 0

    decision = respond(str(data.get("prompt") or ""), cwd or Path.cwd())
    if decision is not None:
        print(json.dumps(decision, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
