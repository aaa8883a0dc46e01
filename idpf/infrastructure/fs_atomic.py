from __future__ import annotations

import errno
import json
import os
from pathlib import Path
import tempfile
import time
from typing import Any, Callable, TypeVar

T = TypeVar("T")

_RETRYABLE_ERRNOS = {errno.EACCES, errno.EPERM, errno.EBUSY}


def bounded_retry(fn: Callable[[], T], attempts: int = 5, backoff_ms: int = 50) -> T:
    """Retry ``fn`` on transient replace errors (Windows file locks)."""
    for attempt in range(attempts):
        try:
            return fn()
        except OSError as exc:
            if attempt == attempts - 1 or getattr(exc, "errno", None) not in _RETRYABLE_ERRNOS:
                raise
            time.sleep(backoff_ms / 1000.0)
    raise RuntimeError("bounded_retry called with attempts < 1")


def atomic_write_text(path: Path, text: str, *, attempts: int = 5, backoff_ms: int = 50) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            newline="\n",
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = Path(tmp.name)
        bounded_retry(lambda: os.replace(str(temp_path), str(path)), attempts=attempts, backoff_ms=backoff_ms)
    finally:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink(missing_ok=True)


def dump_json(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False) + "\n"


def atomic_write_json(path: Path, obj: Any) -> None:
    atomic_write_text(path, dump_json(obj))


def read_json(path: Path) -> Any | None:
    """Load a JSON document; ``None`` when missing or unparseable."""
    if not path.is_file():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
