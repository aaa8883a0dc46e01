"""Registry of projects installed from a framework checkout (``installed-projects.json``)."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as _dt
from pathlib import Path

from idpf.infrastructure.fs_atomic import atomic_write_json, read_json

TRACKING_FILE = "installed-projects.json"


@dataclass(frozen=True)
class TrackedProject:
    path: str
    installed_version: str
    installed_date: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "installedVersion": self.installed_version, "installedDate": self.installed_date}


def _tracking_path(framework_path: Path) -> Path:
    return framework_path / TRACKING_FILE


def read_installed_projects(framework_path: Path) -> list[TrackedProject]:
    data = read_json(_tracking_path(framework_path))
    projects = data.get("projects") if isinstance(data, dict) else None
    if not isinstance(projects, list):
        return []
    out: list[TrackedProject] = []
    for item in projects:
        if isinstance(item, dict) and item.get("path"):
            out.append(
                TrackedProject(
                    path=str(item["path"]),
                    installed_version=str(item.get("installedVersion") or ""),
                    installed_date=str(item.get("installedDate") or ""),
                )
            )
    return out


def write_installed_projects(framework_path: Path, projects: list[TrackedProject]) -> None:
    atomic_write_json(_tracking_path(framework_path), {"projects": [p.to_dict() for p in projects]})


def track_project(framework_path: Path, project_dir: Path | str, version: str, *, today: str | None = None) -> None:
    entry = TrackedProject(
        path=str(project_dir),
        installed_version=version,
        installed_date=today or _dt.date.today().isoformat(),
    )
    projects = read_installed_projects(framework_path)
    for idx, existing in enumerate(projects):
        if existing.path == entry.path:
            projects[idx] = entry
            break
    else:
        projects.append(entry)
    write_installed_projects(framework_path, projects)


def untrack_project(framework_path: Path, project_dir: Path | str) -> None:
    target = str(project_dir)
    write_installed_projects(framework_path, [p for p in read_installed_projects(framework_path) if p.path != target])
