"""Console output for the helper scripts.

``OutputContext`` carries the quiet flag, the timing switch and the running
timers explicitly; every script builds one from its parsed arguments and passes
it down instead of toggling process-wide state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import sys
import time
from typing import Any, Iterable, Mapping, TextIO


def eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


@dataclass
class OutputContext:
    quiet: bool = False
    timing: bool = False
    stream: TextIO | None = None
    err_stream: TextIO | None = None
    timers: dict[str, float] = field(default_factory=dict)

    @property
    def out(self) -> TextIO:
        return self.stream if self.stream is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self.err_stream if self.err_stream is not None else sys.stderr

    def line(self, message: str = "") -> None:
        if not self.quiet:
            print(message, file=self.out)

    def success(self, message: str) -> None:
        self.line(f"✓ {message}")

    def info(self, message: str) -> None:
        self.line(f"ℹ {message}")

    def warn(self, message: str) -> None:
        self.line(f"⚠ {message}")

    def error(self, message: str) -> None:
        print(f"Error: {message}", file=self.err)

    def json(self, data: Any) -> None:
        print(json.dumps(data, indent=2, ensure_ascii=False), file=self.out)

    def json_compact(self, data: Any) -> None:
        print(json.dumps(data, ensure_ascii=False, separators=(",", ":")), file=self.out)

    def table(self, rows: Iterable[Mapping[str, Any]], columns: list[str]) -> None:
        items = list(rows)
        if self.quiet or not items:
            return
        widths = {col: len(col) for col in columns}
        for row in items:
            for col in columns:
                widths[col] = max(widths[col], len(str(row.get(col) or "")))
        print("  ".join(col.ljust(widths[col]) for col in columns), file=self.out)
        print("  ".join("-" * widths[col] for col in columns), file=self.out)
        for row in items:
            print("  ".join(str(row.get(col) or "").ljust(widths[col]) for col in columns), file=self.out)

    def start_timer(self, label: str) -> None:
        self.timers[label] = time.monotonic()

    def end_timer(self, label: str) -> float | None:
        """Stop ``label`` and return elapsed milliseconds (reported when timing is on)."""
        started = self.timers.pop(label, None)
        if started is None:
            return None
        elapsed_ms = (time.monotonic() - started) * 1000.0
        if self.timing:
            print(f"⏱ {label}: {elapsed_ms:.0f}ms", file=self.err)
        return elapsed_ms
