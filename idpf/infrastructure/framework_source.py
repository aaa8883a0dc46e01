"""Locating and reading a framework checkout.

The framework root carries ``framework-manifest.json`` (authoritative version)
and ``Templates/framework-manifest.json`` (script categories and command
lists used when writing a project's config).
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from pathlib import Path
from typing import Any, Mapping

from idpf.infrastructure.fs_atomic import read_json

FRAMEWORK_PATH_ENV = "IDPF_FRAMEWORK_PATH"
UNKNOWN_VERSION = "unknown"


class FrameworkSourceError(RuntimeError):
    pass


@dataclass(frozen=True)
class ScriptCategory:
    source: str
    target: str
    files: tuple[str, ...] = ()


@dataclass(frozen=True)
class TemplateManifest:
    version: str
    scripts: dict[str, ScriptCategory]
    extensible_commands: tuple[str, ...] = ()
    managed_commands: tuple[str, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict)

    def framework_scripts(self) -> dict[str, list[str]]:
        return {name: list(cat.files) for name, cat in self.scripts.items()}


def resolve_framework_path(explicit: Path | None, env: Mapping[str, str] | None = None) -> Path | None:
    if explicit is not None:
        return explicit
    value = (env if env is not None else os.environ).get(FRAMEWORK_PATH_ENV, "").strip()
    return Path(value) if value else None


def read_framework_version(framework_path: Path) -> str:
    data = read_json(framework_path / "framework-manifest.json")
    if isinstance(data, dict) and data.get("version"):
        return str(data["version"])
    return UNKNOWN_VERSION


def parse_template_manifest(framework_path: Path) -> TemplateManifest:
    """Load ``Templates/framework-manifest.json``; raise ``FrameworkSourceError`` on any defect."""
    manifest_path = framework_path / "Templates" / "framework-manifest.json"
    if not manifest_path.is_file():
        raise FrameworkSourceError(f"Framework manifest not found at {manifest_path}")
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise FrameworkSourceError(f"Failed to parse framework manifest: {exc}") from exc
    if not isinstance(data, dict):
        raise FrameworkSourceError("Framework manifest must be a JSON object")
    if not data.get("version"):
        raise FrameworkSourceError('Framework manifest missing required "version" field')
    if not data.get("scripts"):
        raise FrameworkSourceError('Framework manifest missing required "scripts" field')

    scripts: dict[str, ScriptCategory] = {}
    for name, cfg in data["scripts"].items():
        cfg = cfg if isinstance(cfg, dict) else {}
        scripts[str(name)] = ScriptCategory(
            source=str(cfg.get("source") or ""),
            target=str(cfg.get("target") or ""),
            files=tuple(str(f) for f in cfg.get("files") or []),
        )

    def _commands(key: str) -> tuple[str, ...]:
        value = data.get(key)
        return tuple(str(v) for v in value) if isinstance(value, list) else ()

    return TemplateManifest(
        version=str(data["version"]),
        scripts=scripts,
        extensible_commands=_commands("extensibleCommands"),
        managed_commands=_commands("managedCommands"),
        raw=data,
    )


def precheck_framework(framework_path: Path) -> list[str]:
    """Names of required framework files that are missing."""
    required = ["framework-manifest.json"]
    return [name for name in required if not (framework_path / name).is_file()]
