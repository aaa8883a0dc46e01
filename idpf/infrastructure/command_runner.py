"""Subprocess boundary returning explicit results.

External tools (``git``, ``gh``) are opaque services here. Every invocation
yields a :class:`Result`; callers choose between a default
(``unwrap_or``) and propagation (``unwrap`` raises :class:`CommandError`).
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
import subprocess
from typing import Any, Callable, Generic, Literal, Protocol, Sequence, TypeVar

T = TypeVar("T")
U = TypeVar("U")

ErrorKind = Literal["not-found", "failed", "timeout", "parse"]


class CommandError(RuntimeError):
    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: T | None = None
    error_kind: ErrorKind | None = None
    message: str = ""

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(ok=False, error_kind=kind, message=message)

    def unwrap(self) -> T:
        if not self.ok:
            raise CommandError(self.message, self.error_kind)
        return self.value  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        if not self.ok:
            return Result(ok=False, error_kind=self.error_kind, message=self.message)
        return Result.success(fn(self.value))  # type: ignore[arg-type]


class CommandRunner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> Result[str]: ...


class SubprocessRunner:
    """Default runner: ``subprocess.run`` with captured text output."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> Result[str]:
        cmd = " ".join(argv)
        try:
            proc = subprocess.run(
                list(argv),
                cwd=str(cwd) if cwd is not None else None,
                text=True,
                encoding="utf-8",
                errors="replace",
                capture_output=True,
                check=False,
                timeout=timeout,
            )
        except FileNotFoundError:
            return Result.failure("not-found", f"{argv[0]}: command not found")
        except subprocess.TimeoutExpired:
            return Result.failure("timeout", f"{cmd} timed out after {timeout}s")
        if proc.returncode != 0:
            detail = (proc.stderr or "").strip() or (proc.stdout or "").strip() or f"exit code {proc.returncode}"
            return Result.failure("failed", f"{cmd} failed: {detail}")
        return Result.success((proc.stdout or "").strip())


def parse_json(result: Result[str]) -> Result[Any]:
    if not result.ok:
        return Result(ok=False, error_kind=result.error_kind, message=result.message)
    try:
        return Result.success(json.loads(result.value or ""))
    except ValueError:
        return Result.failure("parse", f"Failed to parse output as JSON: {result.value}")


def items_of(payload: Any, *keys: str) -> list[Any]:
    """Pull the list out of ``{key: [...]}`` or a bare list; ``[]`` otherwise."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def field_value(item: Any, name: str) -> Any:
    """Read a project field from either ``item[name.lower()]`` or ``item.fieldValues[name]``."""
    if not isinstance(item, dict):
        return None
    direct = item.get(name.lower())
    if direct:
        return direct
    values = item.get("fieldValues")
    if isinstance(values, dict):
        return values.get(name)
    return None
