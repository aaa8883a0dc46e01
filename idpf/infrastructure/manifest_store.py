"""Deployed-file manifest (``.claude/.manifest.json``).

Entries are keyed ``"<category>/<filename>"`` and carry a sha256 of the exact
bytes written. No line-ending normalization is applied, so a checkout that
converts CRLF/LF will read as modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
from pathlib import Path
from typing import Any

from idpf.infrastructure.fs_atomic import atomic_write_json, read_json

MANIFEST_RELPATH = Path(".claude") / ".manifest.json"


class ManifestError(RuntimeError):
    pass


def compute_checksum(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def is_modified(path: Path, stored_checksum: str | None) -> bool:
    if not path.is_file() or not stored_checksum:
        return True
    return compute_checksum(path) != stored_checksum


@dataclass(frozen=True)
class ManifestEntry:
    checksum: str
    deployed_at: str
    source: str

    def to_dict(self) -> dict[str, str]:
        return {"checksum": self.checksum, "deployedAt": self.deployed_at, "source": self.source}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManifestEntry":
        return cls(
            checksum=str(data.get("checksum") or ""),
            deployed_at=str(data.get("deployedAt") or ""),
            source=str(data.get("source") or ""),
        )


@dataclass
class Manifest:
    version: str
    deployed_at: str
    entries: dict[str, ManifestEntry] = field(default_factory=dict)

    def record(self, category: str, target: Path, source: str) -> ManifestEntry:
        entry = ManifestEntry(checksum=compute_checksum(target), deployed_at=self.deployed_at, source=source)
        self.entries[f"{category}/{target.name}"] = entry
        return entry

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "deployedAt": self.deployed_at,
            "entries": {key: self.entries[key].to_dict() for key in sorted(self.entries)},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manifest":
        raw_entries = data.get("entries")
        if not isinstance(raw_entries, dict):
            raise ManifestError("manifest 'entries' must be an object")
        return cls(
            version=str(data.get("version") or ""),
            deployed_at=str(data.get("deployedAt") or ""),
            entries={str(k): ManifestEntry.from_dict(v) for k, v in raw_entries.items() if isinstance(v, dict)},
        )


def manifest_path(project_dir: Path) -> Path:
    return project_dir / MANIFEST_RELPATH


def write_manifest(project_dir: Path, manifest: Manifest) -> Path:
    target = manifest_path(project_dir)
    atomic_write_json(target, manifest.to_dict())
    return target


def read_manifest(project_dir: Path) -> Manifest | None:
    data = read_json(manifest_path(project_dir))
    if not isinstance(data, dict):
        return None
    try:
        return Manifest.from_dict(data)
    except ManifestError:
        return None


def modified_entries(project_dir: Path, manifest: Manifest, category_dirs: dict[str, str]) -> list[str]:
    """Keys whose on-disk file no longer matches the recorded checksum."""
    changed: list[str] = []
    for key, entry in sorted(manifest.entries.items()):
        category, _, filename = key.partition("/")
        rel_dir = category_dirs.get(category)
        if rel_dir is None:
            continue
        if is_modified(project_dir / rel_dir / filename, entry.checksum):
            changed.append(key)
    return changed
