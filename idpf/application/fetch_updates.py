"""Pull the newest framework release into the checkout a project was installed from."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as _dt
from pathlib import Path
import shutil
import tempfile
from typing import Callable

from idpf.application.migrations import load_project_config
from idpf.application.updater import update_project
from idpf.domain.versioning import Version, parse_tag, parse_version
from idpf.infrastructure.framework_source import read_framework_version
from idpf.infrastructure.git import GitClient
from idpf.infrastructure.tracking import TRACKING_FILE, track_project

DIST_REPO_URL = "https://github.com/rubrical-studios/virtual-ai-studio-dist.git"
PRESERVED_NAMES = frozenset({".git", TRACKING_FILE})


class FetchError(RuntimeError):
    pass


@dataclass
class FetchReport:
    current_version: str
    latest_tag: str
    updated: bool = False


def latest_remote_tag(git: GitClient, url: str = DIST_REPO_URL) -> str | None:
    """Highest ``vX.Y.Z`` tag advertised by ``url``."""
    best: tuple[Version, str] | None = None
    for tag in git.ls_remote_tags(url).unwrap_or([]):
        version = parse_tag(tag)
        if version is None:
            continue
        if best is None or version > best[0]:
            best = (version, tag)
    return best[1] if best else None


def replace_framework_contents(framework_path: Path, source: Path) -> None:
    """Swap the checkout for ``source``; the ``.git`` directory and project registry are kept."""
    for entry in framework_path.iterdir():
        if entry.name in PRESERVED_NAMES:
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
    shutil.copytree(source, framework_path, dirs_exist_ok=True, ignore=shutil.ignore_patterns(*PRESERVED_NAMES))


def fetch_updates(
    project_dir: Path,
    git: GitClient,
    *,
    url: str = DIST_REPO_URL,
    echo: Callable[[str], None] = print,
    date: str | None = None,
) -> FetchReport:
    config = load_project_config(project_dir)
    if not config.framework_path or not Path(config.framework_path).is_dir():
        raise FetchError(f"frameworkPath not set or missing in {project_dir}")
    framework_path = Path(config.framework_path)

    current = read_framework_version(framework_path)
    echo(f"Current version: {current}")

    latest = latest_remote_tag(git, url)
    if latest is None:
        raise FetchError(f"No release tags found at {url}")
    echo(f"Latest version: {latest}")

    report = FetchReport(current_version=current, latest_tag=latest)
    if parse_version(current) >= parse_version(latest):
        echo("Already up to date!")
        return report

    with tempfile.TemporaryDirectory(prefix="framework-update-") as tmp:
        dest = Path(tmp) / "dist"
        cloned = git.clone(url, dest, branch=latest)
        if not cloned.ok:
            raise FetchError(f"Could not clone {url} at {latest}: {cloned.message}")
        replace_framework_contents(framework_path, dest)

    new_version = read_framework_version(framework_path)
    stamp_date = date or _dt.date.today().isoformat()
    update_project(project_dir, framework_path, config, new_version, echo=echo, date=stamp_date)
    track_project(framework_path, project_dir, new_version, today=stamp_date)
    echo(f"Updated to version {new_version}")
    report.updated = True
    return report
