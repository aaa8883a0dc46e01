"""Thin wrapper over the ``gh pmu`` project-management extension.

Output shapes vary between extension versions (a bare list, or a dict keyed by
``items``/``releases``/``sprints``/``children``), so list readers accept both.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from idpf.infrastructure.command_runner import Result, items_of
from idpf.infrastructure.gh import GhClient


@dataclass
class PmuClient:
    gh: GhClient = field(default_factory=GhClient)

    def run(self, *args: str) -> Result[str]:
        return self.gh.run(["pmu", *args])

    def run_json(self, *args: str) -> Result[Any]:
        return self.gh.run_json(["pmu", *args])

    def current_sprint(self) -> Result[Any]:
        return self.run_json("microsprint", "current", "--json")

    def sprints(self) -> list[Any]:
        return items_of(self.run_json("microsprint", "list", "--json").unwrap_or(None), "sprints", "items")

    def start_sprint(self, name: str) -> Result[str]:
        return self.run("microsprint", "start", "--name", name)

    def close_sprint(self, *, skip_retro: bool = False) -> Result[str]:
        args = ["microsprint", "close"]
        if skip_retro:
            args.append("--skip-retro")
        return self.run(*args)

    def add_to_sprint(self, number: int) -> Result[str]:
        return self.run("microsprint", "add", str(number))

    def remove_from_sprint(self, number: int) -> Result[str]:
        return self.run("microsprint", "remove", str(number))

    def current_release(self) -> Any:
        data = self.run_json("release", "current", "--json").unwrap_or(None)
        if isinstance(data, dict):
            return data.get("name") or data.get("version") or None
        return data or None

    def open_releases(self) -> list[Any]:
        return items_of(self.run_json("release", "list", "--open", "--json").unwrap_or(None), "releases", "items")

    def release_table(self) -> Result[str]:
        return self.run("release", "list")

    def view_issue(self, number: int) -> dict | None:
        data = self.run_json("view", str(number), "--json").unwrap_or(None)
        return data if isinstance(data, dict) else None

    def list_issues(self, *filters: str) -> list[Any]:
        return items_of(self.run_json("list", *filters, "--json").unwrap_or(None), "items")

    def sub_issues(self, number: int) -> list[Any]:
        return items_of(self.run_json("sub", "list", str(number), "--json").unwrap_or(None), "children")

    def move_to_release(self, number: int, release: str) -> Result[str]:
        return self.run("move", str(number), "--release", release)
