"""Removal of installer-owned files the current config no longer expects."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from idpf.domain.file_rules import INSTALLED_FILES, expected_files, is_known_installer_file


@dataclass
class ReconcileResult:
    removed: list[str] = field(default_factory=list)
    skipped: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"removed": list(self.removed), "skipped": [dict(s) for s in self.skipped]}


def _regular_files(directory: Path) -> list[Path]:
    try:
        entries = sorted(directory.iterdir())
    except OSError:
        return []
    return [p for p in entries if not p.is_symlink() and p.is_file()]


def orphan_candidates(project_dir: Path, config: Mapping[str, Any]) -> list[tuple[str, Path]]:
    """``(directory key, path)`` for every unexpected file that matches an owned pattern."""
    out: list[tuple[str, Path]] = []
    for directory in INSTALLED_FILES:
        dir_path = project_dir / directory.path
        if not dir_path.is_dir():
            continue
        expected = set(expected_files(directory, config))
        for path in _regular_files(dir_path):
            if path.name in expected:
                continue
            if is_known_installer_file(path.name, directory.key):
                out.append((directory.key, path))
    return out


def reconcile(project_dir: Path, config: Mapping[str, Any], *, dry_run: bool = False) -> ReconcileResult:
    """Delete orphaned installer files; a failed delete is recorded in ``skipped``."""
    result = ReconcileResult()
    for _key, path in orphan_candidates(project_dir, config):
        rel = path.relative_to(project_dir).as_posix()
        if dry_run:
            result.removed.append(rel)
            continue
        try:
            path.unlink()
        except OSError as exc:
            result.skipped.append({"path": rel, "reason": str(exc)})
            continue
        result.removed.append(rel)
    return result
